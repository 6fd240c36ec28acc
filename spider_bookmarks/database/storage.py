"""
Storage backends for users, categories and bookmarks.

Every backend hands out plain records from ``records.py``. Ownership is not
checked here; the route layer compares ``user_id`` before it calls a
mutating method.
"""

import logging
import threading
from datetime import datetime
from typing import Dict, List, Optional, Any

from sqlalchemy.exc import IntegrityError

from .records import User, Category, Bookmark, copy_record
from .db import DatabaseManager
from . import models

logger = logging.getLogger(__name__)

# Fields a bookmark update may touch. id, user_id and created_at never change.
BOOKMARK_UPDATABLE_FIELDS = ('name', 'url', 'username', 'password', 'category_id')


class DuplicateUsernameError(ValueError):
    """Raised when a username is already taken"""


class Storage:
    """
    Interface every storage backend implements.
    """

    # User methods
    def get_user(self, user_id: int) -> Optional[User]:
        raise NotImplementedError

    def get_user_by_username(self, username: str) -> Optional[User]:
        raise NotImplementedError

    def create_user(self, username: str, password: str) -> User:
        raise NotImplementedError

    # Category methods
    def get_categories(self, user_id: int) -> List[Category]:
        raise NotImplementedError

    def get_category_by_id(self, category_id: int) -> Optional[Category]:
        raise NotImplementedError

    def create_category(self, name: str, user_id: int) -> Category:
        raise NotImplementedError

    def delete_category(self, category_id: int) -> bool:
        raise NotImplementedError

    # Bookmark methods
    def get_bookmarks(self, user_id: int) -> List[Bookmark]:
        raise NotImplementedError

    def get_bookmark_by_id(self, bookmark_id: int) -> Optional[Bookmark]:
        raise NotImplementedError

    def get_bookmarks_by_category(self, category_id: int) -> List[Bookmark]:
        raise NotImplementedError

    def create_bookmark(self, name: str, url: str, user_id: int,
                        username: Optional[str] = None, password: Optional[str] = None,
                        category_id: Optional[int] = None) -> Bookmark:
        raise NotImplementedError

    def update_bookmark(self, bookmark_id: int, changes: Dict[str, Any]) -> Optional[Bookmark]:
        raise NotImplementedError

    def delete_bookmark(self, bookmark_id: int) -> bool:
        raise NotImplementedError


def _filter_changes(changes: Dict[str, Any]) -> Dict[str, Any]:
    unknown = set(changes) - set(BOOKMARK_UPDATABLE_FIELDS)
    if unknown:
        raise ValueError(f"Cannot update bookmark fields: {', '.join(sorted(unknown))}")
    return dict(changes)


class MemStorage(Storage):
    """Dict-backed storage with auto-incrementing ids, lost on restart."""

    def __init__(self):
        self._lock = threading.RLock()
        self.users: Dict[int, User] = {}
        self.categories: Dict[int, Category] = {}
        self.bookmarks: Dict[int, Bookmark] = {}
        self.user_id_counter = 1
        self.category_id_counter = 1
        self.bookmark_id_counter = 1

    def get_user(self, user_id):
        with self._lock:
            return copy_record(self.users.get(user_id))

    def get_user_by_username(self, username):
        with self._lock:
            for user in self.users.values():
                if user.username == username:
                    return copy_record(user)
            return None

    def create_user(self, username, password):
        with self._lock:
            if any(u.username == username for u in self.users.values()):
                raise DuplicateUsernameError(username)
            user = User(id=self.user_id_counter, username=username, password=password)
            self.user_id_counter += 1
            self.users[user.id] = user
            return copy_record(user)

    def get_categories(self, user_id):
        with self._lock:
            return [copy_record(c) for c in self.categories.values() if c.user_id == user_id]

    def get_category_by_id(self, category_id):
        with self._lock:
            return copy_record(self.categories.get(category_id))

    def create_category(self, name, user_id):
        with self._lock:
            category = Category(id=self.category_id_counter, name=name, user_id=user_id)
            self.category_id_counter += 1
            self.categories[category.id] = category
            return copy_record(category)

    def delete_category(self, category_id):
        with self._lock:
            if self.categories.pop(category_id, None) is None:
                return False
            for bookmark in self.bookmarks.values():
                if bookmark.category_id == category_id:
                    bookmark.category_id = None
            return True

    def get_bookmarks(self, user_id):
        with self._lock:
            return [copy_record(b) for b in self.bookmarks.values() if b.user_id == user_id]

    def get_bookmark_by_id(self, bookmark_id):
        with self._lock:
            return copy_record(self.bookmarks.get(bookmark_id))

    def get_bookmarks_by_category(self, category_id):
        with self._lock:
            return [copy_record(b) for b in self.bookmarks.values() if b.category_id == category_id]

    def create_bookmark(self, name, url, user_id, username=None, password=None, category_id=None):
        with self._lock:
            bookmark = Bookmark(
                id=self.bookmark_id_counter,
                name=name,
                url=url,
                user_id=user_id,
                username=username,
                password=password,
                category_id=category_id,
                created_at=datetime.now(),
            )
            self.bookmark_id_counter += 1
            self.bookmarks[bookmark.id] = bookmark
            return copy_record(bookmark)

    def update_bookmark(self, bookmark_id, changes):
        changes = _filter_changes(changes)
        with self._lock:
            existing = self.bookmarks.get(bookmark_id)
            if existing is None:
                return None
            for key, value in changes.items():
                setattr(existing, key, value)
            return copy_record(existing)

    def delete_bookmark(self, bookmark_id):
        with self._lock:
            return self.bookmarks.pop(bookmark_id, None) is not None


# Integer primary keys are signed 64-bit; larger ids cannot exist
MAX_ROW_ID = 2 ** 63 - 1


def _storable_id(row_id) -> bool:
    return -MAX_ROW_ID - 1 <= row_id <= MAX_ROW_ID


class SQLStorage(Storage):
    """SQLAlchemy-backed storage; ids come from the database sequences."""

    def __init__(self, db: DatabaseManager):
        self.db = db

    def get_user(self, user_id):
        if not _storable_id(user_id):
            return None
        with self.db.get_session() as session:
            user = session.get(models.User, user_id)
            return user.to_record() if user else None

    def get_user_by_username(self, username):
        with self.db.get_session() as session:
            user = session.query(models.User).filter(models.User.username == username).first()
            return user.to_record() if user else None

    def create_user(self, username, password):
        try:
            with self.db.get_session() as session:
                user = models.User(username=username, password=password)
                session.add(user)
                session.flush()
                return user.to_record()
        except IntegrityError as e:
            raise DuplicateUsernameError(username) from e

    def get_categories(self, user_id):
        with self.db.get_session() as session:
            rows = (session.query(models.Category)
                    .filter(models.Category.user_id == user_id)
                    .order_by(models.Category.id)
                    .all())
            return [row.to_record() for row in rows]

    def get_category_by_id(self, category_id):
        if not _storable_id(category_id):
            return None
        with self.db.get_session() as session:
            category = session.get(models.Category, category_id)
            return category.to_record() if category else None

    def create_category(self, name, user_id):
        with self.db.get_session() as session:
            category = models.Category(name=name, user_id=user_id)
            session.add(category)
            session.flush()
            return category.to_record()

    def delete_category(self, category_id):
        if not _storable_id(category_id):
            return False
        with self.db.get_session() as session:
            category = session.get(models.Category, category_id)
            if category is None:
                return False
            (session.query(models.Bookmark)
             .filter(models.Bookmark.category_id == category_id)
             .update({models.Bookmark.category_id: None}, synchronize_session=False))
            session.delete(category)
            return True

    def get_bookmarks(self, user_id):
        with self.db.get_session() as session:
            rows = (session.query(models.Bookmark)
                    .filter(models.Bookmark.user_id == user_id)
                    .order_by(models.Bookmark.id)
                    .all())
            return [row.to_record() for row in rows]

    def get_bookmark_by_id(self, bookmark_id):
        if not _storable_id(bookmark_id):
            return None
        with self.db.get_session() as session:
            bookmark = session.get(models.Bookmark, bookmark_id)
            return bookmark.to_record() if bookmark else None

    def get_bookmarks_by_category(self, category_id):
        if not _storable_id(category_id):
            return []
        with self.db.get_session() as session:
            rows = (session.query(models.Bookmark)
                    .filter(models.Bookmark.category_id == category_id)
                    .order_by(models.Bookmark.id)
                    .all())
            return [row.to_record() for row in rows]

    def create_bookmark(self, name, url, user_id, username=None, password=None, category_id=None):
        with self.db.get_session() as session:
            bookmark = models.Bookmark(
                name=name,
                url=url,
                user_id=user_id,
                username=username,
                password=password,
                category_id=category_id,
                created_at=datetime.now(),
            )
            session.add(bookmark)
            session.flush()
            return bookmark.to_record()

    def update_bookmark(self, bookmark_id, changes):
        changes = _filter_changes(changes)
        if not _storable_id(bookmark_id):
            return None
        with self.db.get_session() as session:
            bookmark = session.get(models.Bookmark, bookmark_id)
            if bookmark is None:
                return None
            for key, value in changes.items():
                setattr(bookmark, key, value)
            session.flush()
            return bookmark.to_record()

    def delete_bookmark(self, bookmark_id):
        if not _storable_id(bookmark_id):
            return False
        with self.db.get_session() as session:
            bookmark = session.get(models.Bookmark, bookmark_id)
            if bookmark is None:
                return False
            session.delete(bookmark)
            return True


def create_storage(settings: Dict[str, Any]) -> Storage:
    """Build the backend named by STORAGE_BACKEND"""
    backend = settings.get('STORAGE_BACKEND', 'memory')
    if backend == 'memory':
        logger.info("Using in-memory storage")
        return MemStorage()
    if backend == 'sql':
        db = DatabaseManager(settings['DATABASE_URL'])
        db.init_db()
        logger.info(f"Using SQL storage at {db.engine.url.render_as_string(hide_password=True)}")
        return SQLStorage(db)
    raise ValueError(f"Unknown storage backend: {backend}")
