#!/usr/bin/env python3

import asyncio
import contextlib
import datetime
import importlib
import logging
import os
import sys

import click

from . import migration
from .dialects import all_dialects, get_dialect
from .errors import SqlBlockError
from .misc import create_pool
from .table import all_tables


@contextlib.contextmanager
def log(stream=False):
    logging.getLogger('asyncpg').setLevel(logging.WARNING)

    os.makedirs('logs', exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.INFO)
    timestamp = datetime.datetime.now().strftime('%Y-%m-%d_%H-%M-%S')
    handler = logging.FileHandler(
        filename=f'logs/sqlblock-{timestamp}.log',
        encoding='utf-8',
        mode='w'
    )
    fmt = logging.Formatter('[{asctime}] ({levelname:<7}) {name}: {message}', '%Y-%m-%d %H:%M:%S', style='{')
    handler.setFormatter(fmt)
    root.addHandler(handler)

    if stream:
        stream_handler = logging.StreamHandler()
        stream_handler.setFormatter(fmt)
        root.addHandler(stream_handler)

    try:
        yield
    finally:
        for hdlr in root.handlers[:]:
            hdlr.close()
            root.removeHandler(hdlr)


def _load_config(name):
    try:
        return importlib.import_module(name)
    except ImportError:
        raise click.ClickException(
            f'Could not import config module {name!r}. '
            'Copy configtemplate.py to config.py and fill it in.'
        ) from None


def _load_tables(module_name):
    try:
        importlib.import_module(module_name)
    except ImportError as e:
        raise click.ClickException(f'Could not load {module_name}: {e}') from None

    tables = [t for t in all_tables() if t.__module__ == module_name]
    if not tables:
        raise click.ClickException(f'{module_name} has no tables')
    return tables


def _dsn(config):
    return f'postgresql://{config.psql_user}:{config.psql_pass}@{config.psql_host}/{config.psql_db}'


def _directory(config):
    return getattr(config, 'migrations_directory', None) or migration.DEFAULT_DIRECTORY


async def _with_connection(config, func):
    pool = await create_pool(_dsn(config), command_timeout=getattr(config, 'command_timeout', 60))
    try:
        async with pool.acquire() as conn:
            return await func(conn)
    finally:
        await pool.close()


def _run(ctx, func):
    config = _load_config(ctx.obj['config'])
    with log(ctx.obj['log_stream']):
        try:
            return asyncio.run(_with_connection(config, func))
        except SqlBlockError as e:
            raise click.ClickException(str(e)) from e


#--------------MAIN---------------

@click.group()
@click.option('--config', 'config_name', default='config', metavar='[module]', help='Config module to load')
@click.option('--log-stream', is_flag=True, help='Adds a stderr stream-handler for logging')
@click.pass_context
def main(ctx, config_name, log_stream):
    ctx.ensure_object(dict)
    ctx.obj['config'] = config_name
    ctx.obj['log_stream'] = log_stream


@main.command()
@click.argument('module')
@click.option('--dialect', type=click.Choice(all_dialects()), default=None, help='Defaults to the config, then postgresql')
@click.pass_context
def schema(ctx, module, dialect):
    """Print the CREATE statements for the tables in a module"""
    if dialect is None:
        with contextlib.suppress(click.ClickException):
            dialect = getattr(_load_config(ctx.obj['config']), 'dialect', None)

    try:
        dialect = get_dialect(dialect)
    except SqlBlockError as e:
        raise click.ClickException(str(e)) from e

    for table in _load_tables(module):
        click.echo(table.create_sql(dialect=dialect))


@main.command()
@click.argument('module')
@click.option('-v', '--verbose', is_flag=True)
@click.pass_context
def init(ctx, module, verbose):
    """Create the tables in a module"""
    tables = _load_tables(module)
    directory = _directory(_load_config(ctx.obj['config']))

    async def run(conn):
        return await migration.init(connection=conn, directory=directory, tables=tables, verbose=verbose)

    created = _run(ctx, run)
    click.echo(f'Created {len(created)} table(s)')


@main.command()
@click.argument('description')
@click.pass_context
def revision(ctx, description):
    """Write a new, empty migration script"""
    directory = _directory(_load_config(ctx.obj['config']))
    try:
        path = migration.new_revision(description, directory=directory)
    except SqlBlockError as e:
        raise click.ClickException(str(e)) from e
    click.echo(f'Created {path}')


def _migrate_command(downgrade):
    action = 'downgrade' if downgrade else 'upgrade'

    @click.argument('module')
    # click doesn't like None as a default so we have to settle with an empty string
    @click.option('--version', default='', metavar='[version]', help='Version to migrate to, defaults to latest')
    @click.option('-v', '--verbose', is_flag=True)
    @click.pass_context
    def command(ctx, module, version, verbose):
        tables = _load_tables(module)
        directory = _directory(_load_config(ctx.obj['config']))

        async def run(conn):
            return await migration.migrate(
                version or None,
                connection=conn,
                downgrade=downgrade,
                directory=directory,
                tables=tables,
                verbose=verbose,
            )

        applied = _run(ctx, run)
        click.echo(f'{action.capitalize()} successful, {len(applied)} step(s) applied')

    command.__doc__ = f'{action.capitalize()} the tables in a module to a version'
    return main.command(name=action)(command)

upgrade = _migrate_command(downgrade=False)
downgrade = _migrate_command(downgrade=True)


if __name__ == '__main__':
    sys.exit(main())
