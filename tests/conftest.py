#-------------------------------------------------------------------------bh-
# pytest configuration and fixtures for table-shuffle tests
#-------------------------------------------------------------------------eh-

import logging
import os
import sys
from pathlib import Path

import pytest

# Add project src and tests to path for imports
PROJ_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJ_ROOT / 'src'))
sys.path.insert(0, str(PROJ_ROOT / 'tests'))

from fixtures.fake_db import FakeConnection, FakeEngine, FakeResult

DB_ENV_VARS = ('DB_USER', 'DB_PASSWORD', 'DB_HOST', 'DB_PORT', 'DB_OPTION_FILE')


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """
    Run in an empty directory with no DB_* variables set.

    load_dotenv() writes straight into os.environ, so the environment is
    snapshotted and put back afterwards.
    """
    saved = dict(os.environ)
    for name in DB_ENV_VARS:
        os.environ.pop(name, None)
    monkeypatch.chdir(tmp_path)
    yield tmp_path
    os.environ.clear()
    os.environ.update(saved)


@pytest.fixture
def users_columns():
    """Catalog rows for a users(id, name, email, created_at) table."""
    return [
        {'column_name': 'id', 'column_key': 'PRI'},
        {'column_name': 'name', 'column_key': ''},
        {'column_name': 'email', 'column_key': 'UNI'},
        {'column_name': 'created_at', 'column_key': ''},
    ]


@pytest.fixture
def fake_conn(users_columns):
    """
    Connection that knows a 3-row users table and nothing else.

    The catalog lookup answers only for table 'users'; other tables come
    back missing.
    """
    def tables(sql, params):
        return FakeResult([(params['table'],)] if params.get('table') == 'users' else [])

    return FakeConnection([
        ('information_schema.SCHEMATA', FakeResult([('mydb',)])),
        ('information_schema.TABLES', tables),
        ('information_schema.COLUMNS', FakeResult(users_columns)),
        ('@@SESSION', FakeResult([{
            'bulk_insert_buffer_size': 8388608,
            'unique_checks': 1,
            'foreign_key_checks': 1,
        }])),
        ('COUNT(DISTINCT', FakeResult([(3, 3)])),
        ('UPDATE ', FakeResult(rowcount=3)),
    ])


@pytest.fixture
def fake_engine(fake_conn):
    return FakeEngine(fake_conn)


@pytest.fixture(autouse=True)
def restore_root_logging():
    """The CLI reconfigures the root logger; put it back after each test."""
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
