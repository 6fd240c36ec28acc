import pytest
from datetime import timedelta
from cachelib import SimpleCache

from spider_bookmarks.config.config import Config
from spider_bookmarks.database.storage import MemStorage, SQLStorage
from spider_bookmarks.web.server import create_app


def test_defaults_validate():
    summary = Config.validate({'STORAGE_BACKEND': 'memory'})

    assert summary['storage_backend'] == 'memory'
    assert summary['database_url'] is None
    assert summary['session_lifetime_days'] == Config.SESSION_LIFETIME_DAYS


@pytest.mark.parametrize('overrides', [
    {'SESSION_SECRET': ''},
    {'STORAGE_BACKEND': 'redis'},
    {'STORAGE_BACKEND': 'sql', 'DATABASE_URL': ''},
    {'LOG_LEVEL': 'LOUD'},
    {'SESSION_LIFETIME_DAYS': 0},
    {'PORT': 'abc'},
    {'PORT': 0},
    {'PORT': 70000},
    {'PORT': True},
    {'OLLAMA_TIMEOUT': -1},
    {'OLLAMA_TIMEOUT': 'soon'},
    {'STORAGE_BACKEND': 'sql', 'DATABASE_URL': 'sqlite:///:memory:'},
])
def test_invalid_settings_rejected(overrides):
    with pytest.raises(ValueError):
        Config.validate(overrides)


def test_memory_database_allowed_when_testing():
    summary = Config.validate({
        'STORAGE_BACKEND': 'sql',
        'DATABASE_URL': 'sqlite:///:memory:',
        'TESTING': True,
        'PORT': 8080,
        'OLLAMA_TIMEOUT': 5,
    })
    assert summary['database_url'] == 'sqlite:///:memory:'


def test_create_app_builds_memory_storage():
    app = create_app({'STORAGE_BACKEND': 'memory', 'SESSION_CACHELIB': SimpleCache()})

    assert isinstance(app.extensions['storage'], MemStorage)
    assert app.config['PERMANENT_SESSION_LIFETIME'] == timedelta(days=Config.SESSION_LIFETIME_DAYS)
    assert app.config['SESSION_COOKIE_HTTPONLY'] is True
    assert app.config['SESSION_COOKIE_SECURE'] is False


def test_create_app_builds_sql_storage():
    app = create_app({
        'STORAGE_BACKEND': 'sql',
        'DATABASE_URL': 'sqlite:///:memory:',
        'TESTING': True,
        'SESSION_CACHELIB': SimpleCache(),
        'SESSION_LIFETIME_DAYS': 1,
    })

    assert isinstance(app.extensions['storage'], SQLStorage)
    assert app.config['PERMANENT_SESSION_LIFETIME'] == timedelta(days=1)

    response = app.test_client().get('/health')
    assert response.get_json() == {'status': 'ok', 'storage': 'sql'}
    app.extensions['storage'].db.dispose()
