"""Schema migrations.

A migration script is a Python file named ``YYYYmmddHHMMSS_description.py``.
It defines ``upgrade_<table>`` and ``downgrade_<table>`` entries, each one
either a string of SQL or a coroutine function taking the connection.

The version each table is at is kept in a ``.revisions`` JSON file next to
the scripts.
"""

import collections
import inspect
import itertools
import json
import logging
import operator
import pathlib
import re
from datetime import datetime, timezone

from .errors import MigrationError
from .table import all_tables

__all__ = ['DEFAULT_DIRECTORY', 'Migration', 'migrate', 'init', 'new_revision']

log = logging.getLogger(__name__)

DEFAULT_DIRECTORY = pathlib.Path('migrations')
_REVISIONS_FILE_NAME = '.revisions'
_VERSION = re.compile(r'\d{14}')

def _format_timestamp(timestamp):
    # strftime isn't guaranteed to pad datetime.min with zeros.
    # This breaks strptime which requires zero-padded years and can also mess
    # up comparisons.
    return timestamp.strftime('%Y%m%d%H%M%S').zfill(14)

_MIN_TIMESTAMP = _format_timestamp(datetime.min)
_MAX_TIMESTAMP = _format_timestamp(datetime.max)


Migration = collections.namedtuple('Migration', 'version table file step')


def _file_version(name):
    return name[:14]

def _get_revisions(directory):
    file = pathlib.Path(directory) / _REVISIONS_FILE_NAME

    try:
        return json.loads(file.read_text(encoding='utf-8'))
    except FileNotFoundError:
        return {}

def _write_revisions(revisions, directory):
    file = pathlib.Path(directory) / _REVISIONS_FILE_NAME

    with file.open('w', encoding='utf-8') as f:
        json.dump(revisions, f, indent=4)


def _scripts(directory, *, reverse=False):
    return sorted(
        (p for p in pathlib.Path(directory).glob('*.py') if _VERSION.match(p.stem)),
        reverse=reverse,
    )

def _load_script(script):
    namespace = {'__name__': f'migration_{script.stem}'}
    to_compile = compile(script.read_text(encoding='utf-8'), script.name, 'exec')
    exec(to_compile, namespace)
    return namespace


def _get_migrations(directory, revisions, target, *, downgrade=False):
    action = 'downgrade' if downgrade else 'upgrade'

    for script in _scripts(directory, reverse=downgrade):
        version = _file_version(script.stem)

        for name, value in _load_script(script).items():
            action_, _, table = name.partition('_')
            if action_ != action or table not in revisions:
                continue

            current = revisions[table]
            if downgrade:
                pending = target < version <= current
            else:
                pending = current < version <= target

            if pending:
                yield Migration(version, table, script.stem, value)


async def _apply_migration(to_execute, *, connection):
    if callable(to_execute):
        await to_execute(connection)
    else:
        await connection.execute(to_execute)

def _get_source(obj):
    try:
        return inspect.getsource(obj)
    except (TypeError, OSError):
        return obj


def _check_version(version, downgrade):
    if version is None:
        return _MIN_TIMESTAMP if downgrade else _MAX_TIMESTAMP
    if isinstance(version, datetime):
        return _format_timestamp(version)

    version = str(version)
    if not _VERSION.fullmatch(version):
        raise MigrationError(f'version must be a YYYYmmddHHMMSS timestamp, not {version!r}')
    return version


async def migrate(version=None, *, connection, downgrade=False, directory=DEFAULT_DIRECTORY,
                  tables=None, verbose=False):
    """Upgrade (or downgrade) every table to *version*.

    Without a version this goes all the way, to the newest script on upgrade
    and to before the first one on downgrade. Returns the applied migrations.
    """
    version = _check_version(version, downgrade)
    directory = pathlib.Path(directory)
    action = 'downgrade' if downgrade else 'upgrade'

    if tables is None:
        tables = all_tables()

    stored = _get_revisions(directory)
    revisions = {t.__tablename__: stored.get(t.__tablename__, _MIN_TIMESTAMP) for t in tables}

    # sorted() is stable, so each table's steps stay in version order.
    table_key = operator.attrgetter('table')
    migrations = sorted(_get_migrations(directory, revisions, version, downgrade=downgrade), key=table_key)
    applied = []

    async with connection.transaction():
        for table_name, steps in itertools.groupby(migrations, table_key):
            for migration in steps:
                log.info('applying %s_%s from %s', action, table_name, migration.file)
                if verbose:
                    log.info('%s', _get_source(migration.step))

                try:
                    await _apply_migration(migration.step, connection=connection)
                except Exception:
                    log.exception('Error from %s_%s in %s', action, table_name, migration.file)
                    raise

                revisions[table_name] = version if downgrade else migration.version
                applied.append(migration)

    stored.update(revisions)
    directory.mkdir(parents=True, exist_ok=True)
    _write_revisions(stored, directory)
    return applied


def _last_migration(directory):
    return max((_file_version(p.stem) for p in _scripts(directory)), default=_MIN_TIMESTAMP)

async def init(*, connection, directory=DEFAULT_DIRECTORY, tables=None, verbose=False):
    """Create every table and mark it as being at the newest revision."""
    directory = pathlib.Path(directory)
    file = directory / _REVISIONS_FILE_NAME
    if file.exists():
        raise MigrationError('cannot initialize the database more than once')

    # We can safely use the latest migration because when we initially create
    # all the tables we use the current schema which has the migrations already
    # applied.
    revision = _last_migration(directory)
    log.info('writing newest revision %s to each table', revision)

    if tables is None:
        tables = all_tables()

    revisions = {}
    async with connection.transaction():
        for table in tables:
            log.info('creating table %s', table.__tablename__)
            sql = table.create_sql()
            if verbose:
                log.info('schema:\n%s', sql)

            await connection.execute(sql)
            revisions[table.__tablename__] = revision

    directory.mkdir(parents=True, exist_ok=True)
    _write_revisions(revisions, directory)
    return revisions


_SCRIPT_TEMPLATE = '''\
r"""Created on {created} UTC

{description}
"""

'''

def new_revision(description, *, directory=DEFAULT_DIRECTORY, now=None):
    """Write an empty migration script and return its path."""
    if '"""' in description:
        raise MigrationError('a revision description cannot contain """')

    slug = re.sub(r'\W+', '_', description.lower()).strip('_')
    if not slug:
        raise MigrationError('a revision needs a description')

    now = now or datetime.now(timezone.utc)
    directory = pathlib.Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    path = directory / f'{_format_timestamp(now)}_{slug}.py'
    if path.exists():
        raise MigrationError(f'{path.name} already exists')

    created = now.strftime('%Y-%m-%d %H:%M:%S')
    path.write_text(_SCRIPT_TEMPLATE.format(created=created, description=description), encoding='utf-8')
    log.info('created revision %s', path.name)
    return path
