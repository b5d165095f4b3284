import contextlib

import pytest


class FakeConnection:
    """Stands in for an asyncpg connection, remembering what it was asked to run."""

    def __init__(self, records=(), fail_on=None):
        self.records = list(records)
        self.fail_on = fail_on
        self.executed = []
        self.transactions = []

    def _run(self, sql, args):
        if self.fail_on is not None and self.fail_on in sql:
            raise RuntimeError(f'boom: {sql}')
        self.executed.append((sql, args))

    async def execute(self, sql, *args):
        self._run(sql, args)
        return 'OK'

    async def fetch(self, sql, *args):
        self._run(sql, args)
        return self.records

    async def fetchrow(self, sql, *args):
        self._run(sql, args)
        return self.records[0] if self.records else None

    async def fetchval(self, sql, *args, column=0):
        self._run(sql, args)
        if not self.records:
            return None
        return list(self.records[0].values())[column]

    @contextlib.asynccontextmanager
    async def transaction(self):
        state = {'committed': False}
        self.transactions.append(state)
        yield
        state['committed'] = True

    @property
    def statements(self):
        return [sql for sql, _ in self.executed]


@pytest.fixture
def connection():
    return FakeConnection()


@pytest.fixture
def make_connection():
    return FakeConnection
