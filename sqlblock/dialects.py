"""Per-database rendering rules.

A dialect only knows the small things that actually differ between the
databases we care about: how parameters are written, how identifiers are
quoted, whether RETURNING exists and what some of the type names are called.
"""

import re

from .errors import DialectError, QueryError

__all__ = ['Dialect', 'PostgreSQL', 'SQLite', 'MySQL', 'get_dialect', 'all_dialects']

_IDENTIFIER = re.compile(r'[A-Za-z_][A-Za-z0-9_]*')

# Not every keyword, just the ones people actually name their columns after.
_RESERVED = frozenset({
    'ALL', 'AND', 'AS', 'ASC', 'BETWEEN', 'BY', 'CASE', 'CHECK', 'COLUMN',
    'CONSTRAINT', 'CREATE', 'DEFAULT', 'DELETE', 'DESC', 'DISTINCT', 'DROP',
    'ELSE', 'FOR', 'FOREIGN', 'FROM', 'GROUP', 'HAVING', 'IN', 'INDEX',
    'INSERT', 'INTO', 'IS', 'JOIN', 'KEY', 'LIKE', 'LIMIT', 'NOT', 'NULL',
    'OFFSET', 'ON', 'OR', 'ORDER', 'PRIMARY', 'REFERENCES', 'SELECT', 'SET',
    'TABLE', 'THEN', 'TO', 'UNION', 'UNIQUE', 'UPDATE', 'USER', 'USING',
    'VALUES', 'WHEN', 'WHERE', 'WITH',
})

_PLACEHOLDERS = {
    'numeric_dollar': lambda index: f'${index}',
    'qmark': lambda index: '?',
    'format': lambda index: '%s',
}

_dialects = {}


class Dialect:
    def __init_subclass__(cls, *, name, paramstyle, quote='"', returning=True, ilike=True,
                          type_overrides=None, aliases=(), **kwargs):
        super().__init_subclass__(**kwargs)
        if paramstyle not in _PLACEHOLDERS:
            raise DialectError(f'unknown paramstyle {paramstyle!r}')

        cls.name = name
        cls.paramstyle = paramstyle
        cls.quote = quote
        cls.supports_returning = returning
        cls.supports_ilike = ilike
        cls.type_overrides = type_overrides or {}

        instance = cls()
        for key in (name, *aliases):
            _dialects[key] = instance

    def __repr__(self):
        return f'<{self.__class__.__name__} name={self.name!r}>'

    def placeholder(self, index):
        """Return the placeholder for the parameter at *index* (1-based)."""
        return _PLACEHOLDERS[self.paramstyle](index)

    def quote_identifier(self, name):
        return '.'.join(map(self._quote_part, name.split('.')))

    def _quote_part(self, part):
        if part == '*' or (_IDENTIFIER.fullmatch(part) and part.upper() not in _RESERVED):
            return part

        q = self.quote
        return f'{q}{part.replace(q, q * 2)}{q}'

    def type_sql(self, type):
        sql = type.sql
        return self.type_overrides.get(sql, sql)

    def check_returning(self):
        if not self.supports_returning:
            raise QueryError(f'{self.name} does not support RETURNING')

    def check_ilike(self):
        if not self.supports_ilike:
            raise QueryError(f'{self.name} does not support ILIKE')


class PostgreSQL(Dialect, name='postgresql', paramstyle='numeric_dollar', aliases=('postgres', 'psql')):
    pass


class SQLite(Dialect, name='sqlite', paramstyle='qmark', ilike=False, type_overrides={
    'SERIAL': 'INTEGER',
    'BIGSERIAL': 'INTEGER',
    'SMALLSERIAL': 'INTEGER',
    'BYTEA': 'BLOB',
    'JSONB': 'TEXT',
    'JSON': 'TEXT',
}):
    pass


class MySQL(Dialect, name='mysql', paramstyle='format', quote='`', returning=False, ilike=False, type_overrides={
    'SERIAL': 'INT AUTO_INCREMENT',
    'BIGSERIAL': 'BIGINT AUTO_INCREMENT',
    'SMALLSERIAL': 'SMALLINT AUTO_INCREMENT',
    'BYTEA': 'BLOB',
    'JSONB': 'JSON',
    'TIMESTAMP WITH TIME ZONE': 'TIMESTAMP',
}):
    pass


def get_dialect(dialect=None):
    """Resolve *dialect* to a Dialect instance.

    None gives PostgreSQL, since that's what asyncpg talks to.
    """
    if dialect is None:
        return _dialects['postgresql']
    if isinstance(dialect, Dialect):
        return dialect

    try:
        return _dialects[str(dialect).lower()]
    except KeyError:
        raise DialectError(f'unknown dialect {dialect!r}') from None


def all_dialects():
    return sorted({d.name for d in _dialects.values()})
