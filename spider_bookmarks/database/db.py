from sqlalchemy import create_engine, text
from sqlalchemy.orm import sessionmaker, scoped_session
from sqlalchemy.pool import StaticPool
from contextlib import contextmanager
from typing import Generator
from .models import Base
import logging

logger = logging.getLogger(__name__)


def is_memory_url(database_url: str) -> bool:
    """True for SQLite URLs whose database only lives in process memory"""
    return database_url.startswith('sqlite') and (
        ':memory:' in database_url or database_url in ('sqlite://', 'sqlite:///')
    )


def _engine_options(database_url: str) -> dict:
    """SQLite needs a shared connection when it lives in memory"""
    if database_url.startswith('sqlite'):
        options = {'connect_args': {'check_same_thread': False}}
        # One connection for every thread, so only safe for single-threaded tests
        if is_memory_url(database_url):
            options['poolclass'] = StaticPool
        return options
    return {'pool_pre_ping': True}


class DatabaseManager:
    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = create_engine(database_url, **_engine_options(database_url))
        self.SessionFactory = sessionmaker(bind=self.engine, expire_on_commit=False)
        self.ScopedSession = scoped_session(self.SessionFactory)

    def init_db(self) -> None:
        """Initialize the database, creating all tables"""
        try:
            Base.metadata.create_all(self.engine)
            logger.info("Database initialized successfully")
        except Exception as e:
            logger.error(f"Error initializing database: {e}")
            raise

    def drop_db(self) -> None:
        """Drop all tables (useful for testing)"""
        try:
            Base.metadata.drop_all(self.engine)
            logger.info("Database tables dropped successfully")
        except Exception as e:
            logger.error(f"Error dropping database tables: {e}")
            raise

    def check_connection(self) -> bool:
        """Run a trivial query to confirm the database answers"""
        with self.get_session() as session:
            session.execute(text("SELECT 1"))
        return True

    @contextmanager
    def get_session(self) -> Generator:
        """Get a database session with automatic commit, rollback and cleanup"""
        session = self.ScopedSession()
        try:
            yield session
            session.commit()
        except Exception as e:
            session.rollback()
            logger.error(f"Database session error: {e}")
            raise
        finally:
            session.close()
            self.ScopedSession.remove()

    def dispose(self) -> None:
        self.ScopedSession.remove()
        self.engine.dispose()
