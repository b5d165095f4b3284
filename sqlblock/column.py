import inspect as _inspect

from .dialects import get_dialect
from .errors import SchemaError
from .expressions import Operators

__all__ = [
    'Type', 'Binary', 'Boolean', 'Date', 'Double', 'Float', 'Integer',
    'BigInteger', 'BigInt', 'SmallInteger', 'SmallInt', 'Serial', 'BigSerial',
    'SmallSerial', 'Timestamp', 'Interval', 'Numeric', 'String', 'Text',
    'JSON', 'JSONB', 'Array', 'ForeignKey', 'Column', 'Index',
]


class Type:
    def __init_subclass__(cls, *, sql=None, real_type=True, **kwargs):
        super().__init_subclass__(**kwargs)
        cls.real_type = real_type
        if sql is not None:
            cls.sql = sql

    def __repr__(self):
        return f'<{self.__class__.__name__} sql={self.sql!r}>'

class Binary(Type, sql='BYTEA'): pass
class Boolean(Type, sql='BOOLEAN'): pass
class Date(Type, sql='DATE'): pass
class Double(Type, sql='REAL'): pass
class Float(Type, sql='FLOAT'): pass
class Integer(Type, sql='INTEGER'): pass
class BigInteger(Type, sql='BIGINT'): pass
BigInt = BigInteger
class SmallInteger(Type, sql='SMALLINT'): pass
SmallInt = SmallInteger
class Serial(Type, sql='SERIAL', real_type=False): pass
class BigSerial(Type, sql='BIGSERIAL', real_type=False): pass
class SmallSerial(Type, sql='SMALLSERIAL', real_type=False): pass

class Timestamp(Type):
    def __init__(self, *, timezone=False):
        self.timezone = timezone

    @property
    def sql(self):
        if self.timezone:
            return 'TIMESTAMP WITH TIME ZONE'
        return 'TIMESTAMP'

class Interval(Type):
    def __init__(self, *, field=None):
        self.field = field

    @property
    def sql(self):
        if self.field:
            return 'INTERVAL ' + self.field
        return 'INTERVAL'

class Numeric(Type):
    def __init__(self, *, precision=None, scale=0):
        if precision is not None:
            if not 0 <= precision <= 1000:
                raise SchemaError('precision must be 0 <= precision <= 1000')

        self.precision = precision
        self.scale = scale

    @property
    def sql(self):
        if self.precision is None:
            return 'NUMERIC'
        return f'NUMERIC({self.precision}, {self.scale})'

class String(Type):
    def __init__(self, *, length=None, fixed=False):
        self.length = length
        self.fixed = fixed

        if fixed and length is None:
            raise SchemaError('Cannot have fixed string with no length')

    @property
    def sql(self):
        if self.length is None:
            return 'TEXT'
        if self.fixed:
            return f'CHAR({self.length})'
        return f'VARCHAR({self.length})'

class Text(String, sql='TEXT'):
    def __init__(self):
        super().__init__()

class JSON(Type, sql='JSON'): pass
class JSONB(Type, sql='JSONB'): pass


def _check_type(type):
    if _inspect.isclass(type):
        type = type()

    if not isinstance(type, Type):
        raise TypeError('type should be derived from Type')

    return type

class Array(Type):
    def __init__(self, type):
        self.inner = _check_type(type)

    @property
    def sql(self):
        return f'{self.inner.sql}[]'


def _check_action(action, name):
    action = action.upper()
    valid_actions = ['NO ACTION', 'RESTRICT', 'CASCADE', 'SET NULL', 'SET DEFAULT']
    if action not in valid_actions:
        raise SchemaError(f'{name!r} must be one of {valid_actions}')
    return action


def _format_default(default, type):
    if isinstance(default, str) and isinstance(type, String):
        escaped = default.replace("'", "''")
        return f"'{escaped}'"
    if isinstance(default, bool):
        return str(default).upper()
    return f'({default})'


class ForeignKey(Operators):
    __slots__ = ('column', 'type', 'on_delete', 'on_update', 'nullable', 'name', 'table')

    def __init__(self, column, *, type=None, on_delete='CASCADE', on_update='NO ACTION', nullable=True):
        if type is None:
            type = Integer

        self.column = column
        self.type = _check_type(type)
        self.on_delete = _check_action(on_delete, 'on_delete')
        self.on_update = _check_action(on_update, 'on_update')
        self.nullable = nullable
        self.name = None    # Will be set via descriptor protocol.
        self.table = None   # This too.

    def __set_name__(self, owner, name):
        self.name = name
        self.table = owner

    def __repr__(self):
        return f'<ForeignKey {self.name!r} -> {self.references_table.__tablename__}.{self.column.name}>'

    @property
    def references_table(self):
        return self.column.table

    def compile(self, compiler):
        return compiler.column(self)

    def create_sql(self, dialect=None):
        if self.name is None:
            raise RuntimeError('ForeignKey should be defined inside a Table subclass')

        dialect = get_dialect(dialect)
        quote = dialect.quote_identifier
        sql = (
            f'{quote(self.name)} {dialect.type_sql(self.type)} '
            f'REFERENCES {quote(self.references_table.__tablename__)} ({quote(self.column.name)}) '
            f'ON DELETE {self.on_delete} ON UPDATE {self.on_update}'
        )
        if not self.nullable:
            sql += ' NOT NULL'
        return sql


class Column(Operators):
    __slots__ = ('type', 'primary_key', 'nullable', 'default', 'unique', 'name', 'table')

    def __init__(self, type, *, primary_key=False, nullable=False, unique=False, default=None):
        if sum(map(bool, (unique, primary_key, default is not None))) > 1:
            raise ValueError('cannot specify primary_key, unique, and default at the same time')

        self.type = _check_type(type)
        self.nullable = nullable
        self.unique = unique
        self.primary_key = primary_key
        self.default = default
        self.name = None    # Will be set via descriptor protocol.
        self.table = None   # This too.

    def __set_name__(self, owner, name):
        self.name = name
        self.table = owner

    def __repr__(self):
        table = self.table.__tablename__ if self.table is not None else None
        return f'<Column {table}.{self.name} {self.type.sql}>'

    def compile(self, compiler):
        return compiler.column(self)

    def create_sql(self, dialect=None):
        if self.name is None:
            raise RuntimeError('Column should be defined inside a Table subclass')

        dialect = get_dialect(dialect)
        builder = [dialect.quote_identifier(self.name), dialect.type_sql(self.type)]
        build = builder.append

        default = self.default
        if default is not None:
            build('DEFAULT')
            build(_format_default(default, self.type))
        elif self.unique:
            build('UNIQUE')
        elif self.primary_key:
            build('PRIMARY KEY')

        nullable_string = 'NULL'
        if not self.nullable:
            nullable_string = 'NOT NULL'
        build(nullable_string)

        return ' '.join(builder)


class Index:
    def __init__(self, *columns, unique=False):
        if not columns:
            raise SchemaError('an index needs at least one column')

        self.columns = columns
        self.unique = unique
        self.name = None    # Will be set via descriptor protocol.
        self.table = None   # This too.

    def __set_name__(self, owner, name):
        self.table = owner
        self.name = name

    def create_sql(self, dialect=None):
        if self.table is None:
            raise RuntimeError('Index should be defined inside a Table subclass')

        dialect = get_dialect(dialect)
        quote = dialect.quote_identifier
        builder = ['CREATE']

        if self.unique:
            builder.append('UNIQUE')

        columns = ', '.join(
            quote(c.name if isinstance(c, (Column, ForeignKey)) else c)
            for c in self.columns
        )
        builder.extend([
            'INDEX IF NOT EXISTS',
            quote(self.name),
            'ON',
            quote(self.table.__tablename__),
            f'({columns});'
        ])
        return ' '.join(builder)
