"""
Plain records returned by every storage backend.
Route handlers only ever see these, never ORM objects.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Dict, Any, Optional


@dataclass
class User:
    id: int
    username: str
    password: str  # "<hex digest>.<hex salt>"

    def to_dict(self) -> Dict[str, Any]:
        """Public view of the user; the password hash is never exposed"""
        return {'id': self.id, 'username': self.username}


@dataclass
class Category:
    id: int
    name: str
    user_id: int

    def to_dict(self) -> Dict[str, Any]:
        return {'id': self.id, 'name': self.name, 'userId': self.user_id}


@dataclass
class Bookmark:
    id: int
    name: str
    url: str
    user_id: int
    username: Optional[str] = None
    password: Optional[str] = None
    category_id: Optional[int] = None
    created_at: datetime = field(default_factory=datetime.now)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.id,
            'name': self.name,
            'url': self.url,
            'username': self.username,
            'password': self.password,
            'categoryId': self.category_id,
            'userId': self.user_id,
            'createdAt': self.created_at.isoformat() if self.created_at else None,
        }


def copy_record(record):
    """Shallow copy so callers cannot mutate what a backend holds"""
    return replace(record) if record is not None else None
