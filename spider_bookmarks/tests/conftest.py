import pytest
from cachelib import SimpleCache

from spider_bookmarks.database.db import DatabaseManager
from spider_bookmarks.database.storage import MemStorage, SQLStorage
from spider_bookmarks.web.server import create_app


class FakeChatEngine:
    """Records the messages it was asked about and answers with a canned reply"""

    def __init__(self):
        self.calls = []

    def generate_response(self, messages):
        self.calls.append(messages)
        return {'content': 'Try grouping bookmarks by project.', 'success': True}


@pytest.fixture
def db_manager():
    """In-memory SQLite database with all tables created"""
    db = DatabaseManager('sqlite:///:memory:')
    db.init_db()
    yield db
    db.drop_db()
    db.dispose()


@pytest.fixture(params=['memory', 'sql'])
def storage(request):
    """Every storage backend, so behaviour is checked against both"""
    if request.param == 'memory':
        yield MemStorage()
    else:
        db = DatabaseManager('sqlite:///:memory:')
        db.init_db()
        yield SQLStorage(db)
        db.dispose()


@pytest.fixture
def chat_engine():
    return FakeChatEngine()


@pytest.fixture
def app(storage, chat_engine):
    app = create_app(
        overrides={
            'TESTING': True,
            'SESSION_SECRET': 'test-secret',
            'SESSION_CACHELIB': SimpleCache(),
            'STORAGE_BACKEND': 'sql' if isinstance(storage, SQLStorage) else 'memory',
        },
        storage=storage,
        chat_engine=chat_engine,
    )
    yield app


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def other_client(app):
    """A second browser with its own cookie jar"""
    return app.test_client()


def register(client, username='alice', password='secret123'):
    return client.post('/api/register', json={'username': username, 'password': password})


@pytest.fixture
def alice(client):
    """Client logged in as alice"""
    response = register(client, 'alice')
    assert response.status_code == 201
    return client


@pytest.fixture
def bob(other_client):
    """Second client logged in as bob"""
    response = register(other_client, 'bob')
    assert response.status_code == 201
    return other_client
