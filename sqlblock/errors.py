__all__ = ['SqlBlockError', 'SchemaError', 'QueryError', 'DialectError', 'MigrationError']


class SqlBlockError(Exception):
    """Base exception for everything raised by sqlblock."""


class SchemaError(SqlBlockError):
    pass


class QueryError(SqlBlockError):
    pass


class DialectError(SqlBlockError):
    pass


class MigrationError(SqlBlockError):
    pass
