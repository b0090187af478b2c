"""
Barrels - Demo database models.

A small library/blog schema used by the seeding CLI defaults and the
SQLAlchemy store tests. Primary keys are autoincrement integers assigned
by the database, so fixtures can only reference each other by position.

Seedable model names are the class names lower-cased:
author, book, tag, post.
"""

from datetime import datetime, UTC

from sqlalchemy import (
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Table,
    Text,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all SQLAlchemy models."""

    pass


post_tags = Table(
    "post_tags",
    Base.metadata,
    Column("post_id", ForeignKey("posts.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Author(Base):
    """Author model - no associations of its own."""

    __tablename__ = "authors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str | None] = mapped_column(String(255), nullable=True)

    def __repr__(self) -> str:
        return f"<Author(id={self.id}, name={self.name})>"


class Book(Base):
    """
    Book model.

    `author` is required (non-nullable FK) and must be resolved at insert
    time; `editor` is optional and resolved in the deferred pass.
    """

    __tablename__ = "books"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    author_id: Mapped[int] = mapped_column(
        ForeignKey("authors.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    editor_id: Mapped[int | None] = mapped_column(
        ForeignKey("authors.id", ondelete="SET NULL"),
        nullable=True,
    )

    # Relationships
    author: Mapped["Author"] = relationship("Author", foreign_keys=[author_id])
    editor: Mapped["Author | None"] = relationship("Author", foreign_keys=[editor_id])

    def __repr__(self) -> str:
        return f"<Book(id={self.id}, title={self.title})>"


class Tag(Base):
    """Tag model - target of the post/tag many-to-many."""

    __tablename__ = "tags"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False, unique=True)

    def __repr__(self) -> str:
        return f"<Tag(id={self.id}, name={self.name})>"


class Post(Base):
    """
    Post model.

    Both associations are optional: `author` (many-to-one, nullable FK)
    and `tags` (many-to-many through post_tags).
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(String(300), nullable=False)
    body: Mapped[str | None] = mapped_column(Text, nullable=True)
    author_id: Mapped[int | None] = mapped_column(
        ForeignKey("authors.id", ondelete="SET NULL"),
        nullable=True,
    )
    published_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=lambda: datetime.now(UTC),
        nullable=False,
    )

    # Relationships
    author: Mapped["Author | None"] = relationship("Author")
    tags: Mapped[list["Tag"]] = relationship("Tag", secondary=post_tags)

    def __repr__(self) -> str:
        return f"<Post(id={self.id}, title={self.title})>"
