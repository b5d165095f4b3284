import itertools

from .column import Column, ForeignKey, Index
from .dialects import get_dialect
from .query import Delete, Insert, Select, Update

__all__ = ['Table', 'all_tables']


class Table:
    def __init_subclass__(cls, *, table_name='', **kwargs):
        super().__init_subclass__(**kwargs)
        cls.__tablename__ = table_name or cls.__name__.lower()

        cls.columns = [v for v in cls.__dict__.values() if isinstance(v, (Column, ForeignKey))]
        cls.indexes = [v for v in cls.__dict__.values() if isinstance(v, Index)]

        cls.__create_extra__ = getattr(cls, '__create_extra__', [])

    def __init__(self, **values):
        names = {c.name for c in self.columns}
        unknown = values.keys() - names
        if unknown:
            raise TypeError(f'{self.__class__.__name__} has no columns {sorted(unknown)}')

        for name in names:
            setattr(self, name, values.get(name))

    def __repr__(self):
        values = ' '.join(f'{c.name}={getattr(self, c.name)!r}' for c in self.columns)
        return f'<{self.__class__.__name__} {values}>'

    def __eq__(self, other):
        if not isinstance(other, self.__class__):
            return NotImplemented
        return self.to_dict() == other.to_dict()

    def to_dict(self):
        return {c.name: getattr(self, c.name) for c in self.columns}

    @classmethod
    def from_record(cls, record):
        """Build an instance out of a database record (or any mapping).

        Keys that aren't columns of this table, like the ones a join brings
        in, are skipped.
        """
        names = {c.name for c in cls.columns}
        return cls(**{k: v for k, v in dict(record).items() if k in names})

    @classmethod
    def create_sql(cls, *, exist_ok=True, dialect=None):
        """Return the CREATE TABLE statement for this table"""
        dialect = get_dialect(dialect)
        builder = ['CREATE TABLE']
        build = builder.append

        if exist_ok:
            build('IF NOT EXISTS')
        build(dialect.quote_identifier(cls.__tablename__))

        column_sql = (c.create_sql(dialect) for c in cls.columns)
        column_statements = ',\n'.join(itertools.chain(column_sql, cls.__create_extra__))
        build(f'(\n{column_statements}\n);')

        statements = [' '.join(builder)]
        statements.extend(i.create_sql(dialect) for i in cls.indexes)
        return '\n'.join(statements)

    @classmethod
    def drop_sql(cls, *, missing_ok=True, dialect=None):
        dialect = get_dialect(dialect)
        builder = ['DROP TABLE']
        if missing_ok:
            builder.append('IF EXISTS')
        builder.append(f'{dialect.quote_identifier(cls.__tablename__)};')
        return ' '.join(builder)

    @classmethod
    def select(cls, *columns):
        return Select(cls, *columns)

    @classmethod
    def insert(cls, *columns):
        return Insert(cls, *columns)

    @classmethod
    def update(cls, *columns):
        return Update(cls, *columns)

    @classmethod
    def delete(cls):
        return Delete(cls)


def all_tables():
    return Table.__subclasses__()
