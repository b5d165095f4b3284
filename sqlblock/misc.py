import json
import logging

import asyncpg

from .dialects import PostgreSQL
from .query import compile_statement

__all__ = ['create_pool', 'execute', 'fetch', 'fetchrow', 'fetchval']

log = logging.getLogger(__name__)

# asyncpg only ever talks to PostgreSQL.
_dialect = PostgreSQL()


async def _set_codec(conn):
    await conn.set_type_codec(
        'jsonb',
        schema='pg_catalog',
        encoder=json.dumps,
        decoder=json.loads,
        format='text'
    )


async def create_pool(dsn, *, init=None, **kwargs):
    if init is None:
        async def new_init(conn):
            await _set_codec(conn)
    else:
        async def new_init(conn):
            await _set_codec(conn)
            await init(conn)

    return await asyncpg.create_pool(dsn, init=new_init, **kwargs)


def _compile(statement):
    sql, args = compile_statement(statement, _dialect)
    log.debug('%s %r', sql, args)
    return sql, args


async def execute(connection, statement):
    """Run a statement and return the status string."""
    sql, args = _compile(statement)
    return await connection.execute(sql, *args)


async def fetch(connection, statement):
    """Run a statement and return its rows.

    Rows come back as instances of the statement's table when there is one
    to map to, otherwise as the connection's own records.
    """
    sql, args = _compile(statement)
    records = await connection.fetch(sql, *args)

    model = statement.model
    if model is None:
        return records
    return [model.from_record(r) for r in records]


async def fetchrow(connection, statement):
    sql, args = _compile(statement)
    record = await connection.fetchrow(sql, *args)

    model = statement.model
    if record is None or model is None:
        return record
    return model.from_record(record)


async def fetchval(connection, statement, column=0):
    sql, args = _compile(statement)
    return await connection.fetchval(sql, *args, column=column)
