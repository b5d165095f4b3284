"""Statement builders.

A statement starts with one of select(), insert(), update() or delete() and
gets its clauses chained on afterwards::

    update(Users).where(Users.id == 1).set(name='Chiaki')

Every clause method returns a new statement, so a half-built statement can be
reused as a base for several queries. The clauses are always rendered in the
order SQL wants them, regardless of the order they were chained in.
"""

import collections
import copy
import enum

from more_itertools import collapse

from .dialects import get_dialect
from .errors import QueryError
from .expressions import Compiler, Comparison, Expression, Identifier, _condition, and_

__all__ = [
    'StatementType', 'Compiled', 'Statement', 'Select', 'Insert', 'Update',
    'Delete', 'select', 'insert', 'update', 'delete', 'compile_statement',
]

Compiled = collections.namedtuple('Compiled', 'sql args')

_JOIN_KINDS = ('INNER', 'LEFT', 'RIGHT', 'FULL', 'CROSS')


class StatementType(enum.Enum):
    SELECT = 'SELECT'
    INSERT = 'INSERT'
    UPDATE = 'UPDATE'
    DELETE = 'DELETE'

_SELECT, _INSERT, _UPDATE, _DELETE = StatementType


def _table_name(table):
    if isinstance(table, str):
        return table
    try:
        return table.__tablename__
    except AttributeError:
        raise TypeError(f'expected a Table or a table name, not {table!r}') from None


def _lookup(table, name):
    if isinstance(table, str):
        return Identifier(name)

    for column in table.columns:
        if column.name == name:
            return column
    raise QueryError(f'{table.__tablename__} has no column {name!r}')


def _field(table, field):
    if isinstance(field, str):
        return _lookup(table, field)
    if isinstance(field, Expression):
        return field
    raise TypeError(f'expected a column or a column name, not {field!r}')


def _field_name(field):
    return getattr(field, 'name', None)


def _check_count(count, clause):
    if isinstance(count, bool) or not isinstance(count, int):
        raise TypeError(f'{clause} must be an int')
    if count < 0:
        raise QueryError(f'{clause} must not be negative')
    return count


class Statement:
    """The first block of a statement plus all the clauses chained onto it."""
    kind = None

    def __init__(self, table, *fields):
        self.table = table
        self.table_name = _table_name(table)
        self.fields = tuple(_field(table, f) for f in collapse(fields))

        self._where = ()
        self._returning = None
        self._rows = ()
        self._assignments = ()
        self._joins = ()
        self._order = ()
        self._limit = None
        self._offset = None

    def __repr__(self):
        return f'<{self.__class__.__name__} table={self.table_name!r}>'

    def __str__(self):
        return self.compile().sql

    def _clone(self, **attrs):
        new = copy.copy(self)
        for name, value in attrs.items():
            setattr(new, name, value)
        return new

    def _require(self, clause, *kinds):
        if self.kind not in kinds:
            raise QueryError(f'{clause} is not valid in a {self.kind.value} statement')

    @property
    def model(self):
        """The Table class rows of this statement map to, if any."""
        if isinstance(self.table, str):
            return None
        if self._returning is not None:
            return None if self._returning else self.table
        if self.kind is _SELECT and not self.fields and not self._joins:
            return self.table
        return None

    # ------ WHERE ------

    def where(self, *conditions, **equals):
        """Add a WHERE condition. Repeated calls are ANDed together.

        Strings are taken as raw SQL. Keyword arguments are equality tests.
        """
        self._require('WHERE', _SELECT, _UPDATE, _DELETE)

        new_conditions = [_condition(c) for c in conditions]
        new_conditions.extend(
            Comparison(_lookup(self.table, name), '=', value)
            for name, value in equals.items()
        )
        if not new_conditions:
            raise QueryError('WHERE needs at least one condition')

        return self._clone(_where=(*self._where, *new_conditions))

    where_clause = where

    # ------ INSERT ------

    def values(self, *values, **named):
        """Add a row of values. Calling this more than once inserts several rows."""
        self._require('VALUES', _INSERT)
        if values and named:
            raise QueryError('cannot mix positional and named values in one row')

        fields = self.fields
        if named:
            if not fields and not self._rows:
                fields = tuple(_lookup(self.table, name) for name in named)
            names = [_field_name(f) for f in fields]
            if set(named) != set(names):
                raise QueryError(f'named values must be exactly {names}')
            values = tuple(named[name] for name in names)

        if not values:
            raise QueryError('VALUES needs at least one value')
        if fields and len(values) != len(fields):
            raise QueryError(f'expected {len(fields)} values, got {len(values)}')
        if self._rows and len(values) != len(self._rows[0]):
            raise QueryError('every row must have the same number of values')

        return self._clone(fields=fields, _rows=(*self._rows, tuple(values)))

    # ------ UPDATE ------

    def set(self, mapping=None, **named):
        """Add column assignments. Keys may be column names or columns."""
        self._require('SET', _UPDATE)

        items = list(mapping.items()) if mapping else []
        items.extend(named.items())
        if not items:
            raise QueryError('SET needs at least one column')

        allowed = {_field_name(f) for f in self.fields}
        assignments = dict(self._assignments)
        for key, value in items:
            name = _field_name(_field(self.table, key))
            if name is None:
                raise QueryError(f'cannot assign to {key!r}')
            if allowed and name not in allowed:
                raise QueryError(f'{name!r} is not one of the fields of this UPDATE')
            assignments[name] = value

        return self._clone(_assignments=tuple(assignments.items()))

    # ------ SELECT ------

    def join(self, table, on=None, *, kind='INNER'):
        self._require('JOIN', _SELECT)

        kind = kind.upper()
        if kind not in _JOIN_KINDS:
            raise QueryError(f'join kind must be one of {_JOIN_KINDS}')
        if kind == 'CROSS':
            if on is not None:
                raise QueryError('a CROSS JOIN takes no ON condition')
        elif on is None:
            raise QueryError(f'a {kind} JOIN needs an ON condition')
        else:
            on = _condition(on)

        _table_name(table)
        return self._clone(_joins=(*self._joins, (kind, table, on)))

    def left_join(self, table, on):
        return self.join(table, on, kind='LEFT')

    def order_by(self, *columns):
        self._require('ORDER BY', _SELECT)
        order = tuple(_field(self.table, c) for c in collapse(columns))
        if not order:
            raise QueryError('ORDER BY needs at least one column')
        return self._clone(_order=(*self._order, *order))

    def limit(self, count):
        self._require('LIMIT', _SELECT)
        return self._clone(_limit=_check_count(count, 'LIMIT'))

    def offset(self, count):
        self._require('OFFSET', _SELECT)
        return self._clone(_offset=_check_count(count, 'OFFSET'))

    # ------ RETURNING ------

    def returning(self, *columns):
        """Return rows from a write. Without columns every column comes back."""
        self._require('RETURNING', _INSERT, _UPDATE, _DELETE)
        fields = tuple(_field(self.table, c) for c in collapse(columns))
        return self._clone(_returning=fields)

    # ------ compiling ------

    def _compile_where(self, compiler, build):
        if self._where:
            build('WHERE')
            build(compiler.process(and_(*self._where)))

    def _compile_returning(self, compiler, build):
        if self._returning is None:
            return

        compiler.dialect.check_returning()
        build('RETURNING')
        build(', '.join(map(compiler.process, self._returning)) or '*')

    def _compile(self, compiler, build):
        raise NotImplementedError

    def compile(self, dialect=None):
        compiler = Compiler(get_dialect(dialect), qualify=bool(self._joins))
        builder = []
        self._compile(compiler, builder.append)
        return Compiled(' '.join(builder), compiler.args)


class Select(Statement):
    kind = _SELECT

    def _compile(self, compiler, build):
        build('SELECT')
        build(', '.join(map(compiler.process, self.fields)) or '*')
        build('FROM')
        build(compiler.identifier(self.table_name))

        for kind, table, on in self._joins:
            build(f'{kind} JOIN')
            build(compiler.identifier(_table_name(table)))
            if on is not None:
                build('ON')
                build(compiler.process(on))

        self._compile_where(compiler, build)

        if self._order:
            build('ORDER BY')
            build(', '.join(map(compiler.process, self._order)))
        if self._limit is not None:
            build(f'LIMIT {self._limit}')
        if self._offset is not None:
            build(f'OFFSET {self._offset}')


class Insert(Statement):
    kind = _INSERT

    def _compile(self, compiler, build):
        if not self._rows:
            raise QueryError('an INSERT needs VALUES')

        build('INSERT INTO')
        build(compiler.identifier(self.table_name))
        if self.fields:
            names = (compiler.identifier(_field_name(f)) for f in self.fields)
            build(f'({", ".join(names)})')

        build('VALUES')
        build(', '.join(
            f'({", ".join(map(compiler.process, row))})'
            for row in self._rows
        ))
        self._compile_returning(compiler, build)


class Update(Statement):
    kind = _UPDATE

    def _compile(self, compiler, build):
        if not self._assignments:
            raise QueryError('an UPDATE needs a SET clause')

        build('UPDATE')
        build(compiler.identifier(self.table_name))
        build('SET')
        build(', '.join(
            f'{compiler.identifier(name)} = {compiler.process(value)}'
            for name, value in self._assignments
        ))
        self._compile_where(compiler, build)
        self._compile_returning(compiler, build)


class Delete(Statement):
    kind = _DELETE

    def __init__(self, table):
        super().__init__(table)

    def _compile(self, compiler, build):
        build('DELETE FROM')
        build(compiler.identifier(self.table_name))
        self._compile_where(compiler, build)
        self._compile_returning(compiler, build)


def select(table, *fields):
    return Select(table, *fields)


def insert(table, *fields):
    return Insert(table, *fields)


def update(table, *fields):
    return Update(table, *fields)


def delete(table):
    return Delete(table)


def compile_statement(statement, dialect=None):
    """Render *statement* into SQL and its bound arguments."""
    if not isinstance(statement, Statement):
        raise TypeError(f'expected a statement, not {type(statement).__name__}')
    return statement.compile(dialect)
