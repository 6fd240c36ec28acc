from sqlalchemy import Column, Integer, String, DateTime, ForeignKey, Text
from sqlalchemy.orm import relationship, declarative_base
from sqlalchemy.sql import func

from .records import User as UserRecord, Category as CategoryRecord, Bookmark as BookmarkRecord

Base = declarative_base()


class User(Base):
    __tablename__ = 'users'

    id = Column(Integer, primary_key=True)
    username = Column(String(255), unique=True, nullable=False)
    password = Column(String(255), nullable=False)

    categories = relationship("Category", back_populates="user")
    bookmarks = relationship("Bookmark", back_populates="user")

    def to_record(self) -> UserRecord:
        return UserRecord(id=self.id, username=self.username, password=self.password)


class Category(Base):
    __tablename__ = 'categories'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)

    user = relationship("User", back_populates="categories")
    bookmarks = relationship("Bookmark", back_populates="category")

    def to_record(self) -> CategoryRecord:
        return CategoryRecord(id=self.id, name=self.name, user_id=self.user_id)


class Bookmark(Base):
    __tablename__ = 'bookmarks'

    id = Column(Integer, primary_key=True)
    name = Column(String(255), nullable=False)
    url = Column(Text, nullable=False)
    username = Column(String(255))  # credentials for the bookmarked site
    password = Column(String(255))
    category_id = Column(Integer, ForeignKey('categories.id'), index=True)
    user_id = Column(Integer, ForeignKey('users.id'), nullable=False, index=True)
    created_at = Column(DateTime, default=func.now())

    user = relationship("User", back_populates="bookmarks")
    category = relationship("Category", back_populates="bookmarks")

    def to_record(self) -> BookmarkRecord:
        return BookmarkRecord(
            id=self.id,
            name=self.name,
            url=self.url,
            user_id=self.user_id,
            username=self.username,
            password=self.password,
            category_id=self.category_id,
            created_at=self.created_at,
        )

    def __repr__(self):
        return f"<Bookmark(id={self.id}, name={self.name!r}, user_id={self.user_id})>"
