"""SQL expressions, mostly for the WHERE clause.

Expressions don't know anything about the database they'll end up in. They
get rendered by a Compiler, which knows the dialect and collects the bound
arguments in the order their placeholders appear.
"""

from .errors import QueryError

__all__ = [
    'Expression', 'Operators', 'Raw', 'Param', 'Identifier', 'Comparison',
    'In', 'Between', 'IsNull', 'And', 'Or', 'Not', 'Ordering', 'Compiler',
    'raw', 'and_', 'or_', 'not_',
]


class Compiler:
    def __init__(self, dialect, *, qualify=False):
        self.dialect = dialect
        self.qualify = qualify
        self.args = []

    def add_param(self, value):
        self.args.append(value)
        return self.dialect.placeholder(len(self.args))

    def identifier(self, name):
        return self.dialect.quote_identifier(name)

    def column(self, column):
        if self.qualify and column.table is not None:
            return self.identifier(f'{column.table.__tablename__}.{column.name}')
        return self.identifier(column.name)

    def process(self, expression):
        return _coerce(expression).compile(self)


def _coerce(value):
    if isinstance(value, Expression):
        return value
    return Param(value)


class Expression:
    __slots__ = ()

    def compile(self, compiler):
        raise NotImplementedError

    def __and__(self, other):
        return and_(self, other)

    def __rand__(self, other):
        return and_(other, self)

    def __or__(self, other):
        return or_(self, other)

    def __ror__(self, other):
        return or_(other, self)

    def __invert__(self):
        return Not(self)


class Operators(Expression):
    """Mixin that turns Python operators into conditions."""
    __slots__ = ()

    def __eq__(self, other):
        return Comparison(self, '=', other)

    def __ne__(self, other):
        return Comparison(self, '<>', other)

    def __lt__(self, other):
        return Comparison(self, '<', other)

    def __le__(self, other):
        return Comparison(self, '<=', other)

    def __gt__(self, other):
        return Comparison(self, '>', other)

    def __ge__(self, other):
        return Comparison(self, '>=', other)

    # Defining __eq__ removes the inherited hash.
    __hash__ = Expression.__hash__

    def in_(self, values):
        return In(self, values)

    def not_in(self, values):
        return In(self, values, negated=True)

    def like(self, pattern):
        return Comparison(self, 'LIKE', pattern)

    def ilike(self, pattern):
        return Comparison(self, 'ILIKE', pattern)

    def between(self, low, high):
        return Between(self, low, high)

    def is_null(self):
        return IsNull(self)

    def is_not_null(self):
        return IsNull(self, negated=True)

    def asc(self):
        return Ordering(self)

    def desc(self):
        return Ordering(self, descending=True)


class Raw(Expression):
    __slots__ = ('text',)

    def __init__(self, text):
        if not isinstance(text, str):
            raise TypeError(f'raw SQL must be a str, not {type(text).__name__}')
        self.text = text

    def __repr__(self):
        return f'raw({self.text!r})'

    def compile(self, compiler):
        return self.text

raw = Raw


class Param(Expression):
    __slots__ = ('value',)

    def __init__(self, value):
        self.value = value

    def __repr__(self):
        return f'Param({self.value!r})'

    def compile(self, compiler):
        return compiler.add_param(self.value)


class Identifier(Operators):
    """A column (or table) referenced by name rather than by a Column."""
    __slots__ = ('name',)

    def __init__(self, name):
        self.name = name

    def __repr__(self):
        return f'Identifier({self.name!r})'

    def compile(self, compiler):
        return compiler.identifier(self.name)


class Comparison(Expression):
    __slots__ = ('left', 'op', 'right')

    def __init__(self, left, op, right):
        self.left = _coerce(left)
        self.op = op
        self.right = right if right is None else _coerce(right)

    def __repr__(self):
        return f'<Comparison {self.left!r} {self.op} {self.right!r}>'

    def __bool__(self):
        # Lets `column in some_list` keep working.
        if self.op == '=':
            return self.left is self.right
        if self.op == '<>':
            return self.left is not self.right
        raise TypeError('boolean value of a comparison is not defined')

    def compile(self, compiler):
        left = self.left.compile(compiler)
        if self.right is None:
            if self.op == '=':
                return f'{left} IS NULL'
            if self.op == '<>':
                return f'{left} IS NOT NULL'
            raise QueryError(f'cannot compare with NULL using {self.op}')
        if self.op == 'ILIKE':
            compiler.dialect.check_ilike()

        return f'{left} {self.op} {self.right.compile(compiler)}'


class In(Expression):
    __slots__ = ('column', 'values', 'negated')

    def __init__(self, column, values, negated=False):
        if isinstance(values, (str, bytes)):
            raise TypeError('IN expects an iterable of values, not a string')

        self.column = _coerce(column)
        self.values = [_coerce(v) for v in values]
        self.negated = negated

    def compile(self, compiler):
        if not self.values:
            # x IN () isn't valid SQL, but it's never true anyway.
            return '1 = 1' if self.negated else '1 = 0'

        column = self.column.compile(compiler)
        values = ', '.join(v.compile(compiler) for v in self.values)
        op = 'NOT IN' if self.negated else 'IN'
        return f'{column} {op} ({values})'


class Between(Expression):
    __slots__ = ('column', 'low', 'high')

    def __init__(self, column, low, high):
        self.column = _coerce(column)
        self.low = _coerce(low)
        self.high = _coerce(high)

    def compile(self, compiler):
        return (
            f'{self.column.compile(compiler)} BETWEEN '
            f'{self.low.compile(compiler)} AND {self.high.compile(compiler)}'
        )


class IsNull(Expression):
    __slots__ = ('column', 'negated')

    def __init__(self, column, negated=False):
        self.column = _coerce(column)
        self.negated = negated

    def compile(self, compiler):
        null = 'IS NOT NULL' if self.negated else 'IS NULL'
        return f'{self.column.compile(compiler)} {null}'


class _Group(Expression):
    __slots__ = ('conditions',)
    op = None

    def __init__(self, *conditions):
        flattened = []
        for condition in conditions:
            condition = _condition(condition)
            if type(condition) is type(self):
                flattened.extend(condition.conditions)
            else:
                flattened.append(condition)
        self.conditions = flattened

    def __repr__(self):
        return f'<{self.__class__.__name__} {self.conditions!r}>'

    def compile(self, compiler):
        parts = []
        nested = len(self.conditions) > 1
        for condition in self.conditions:
            sql = condition.compile(compiler)
            if nested and isinstance(condition, (_Group, Raw)):
                sql = f'({sql})'
            parts.append(sql)
        return f' {self.op} '.join(parts)


class And(_Group):
    __slots__ = ()
    op = 'AND'


class Or(_Group):
    __slots__ = ()
    op = 'OR'


class Not(Expression):
    __slots__ = ('condition',)

    def __init__(self, condition):
        self.condition = _condition(condition)

    def compile(self, compiler):
        return f'NOT ({self.condition.compile(compiler)})'


class Ordering(Expression):
    __slots__ = ('column', 'descending')

    def __init__(self, column, descending=False):
        self.column = column if isinstance(column, Expression) else Identifier(column)
        self.descending = descending

    def compile(self, compiler):
        direction = 'DESC' if self.descending else 'ASC'
        return f'{self.column.compile(compiler)} {direction}'


def _condition(condition):
    """Strings in a condition position are raw SQL, like "id = 1"."""
    if isinstance(condition, str):
        return Raw(condition)
    if isinstance(condition, Expression):
        return condition
    raise TypeError(f'expected a condition, got {type(condition).__name__}')


def _combine(cls, conditions):
    if not conditions:
        raise QueryError(f'{cls.op} needs at least one condition')
    if len(conditions) == 1:
        return _condition(conditions[0])
    return cls(*conditions)


def and_(*conditions):
    return _combine(And, conditions)


def or_(*conditions):
    return _combine(Or, conditions)


def not_(condition):
    return Not(condition)
