"""
Content models: what the learner saves and how it is grouped.

Implements:
- Bookmark: A saved web reference, the unit of study
- Category: Single grouping label per bookmark (nullable)
- Tag: Free-form labels, many-to-many with bookmarks

Review fields on Bookmark (last_reviewed_at, next_review_at) are written only
by the revision scheduler after a quiz attempt.
"""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING, List

from sqlalchemy import Column, DateTime, ForeignKey, Index, String, Table, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, new_id

if TYPE_CHECKING:
    from .quiz import Question, QuizAttempt


bookmark_tags = Table(
    "bookmark_tags",
    Base.metadata,
    Column("bookmark_id", ForeignKey("bookmarks.id", ondelete="CASCADE"), primary_key=True),
    Column("tag_id", ForeignKey("tags.id", ondelete="CASCADE"), primary_key=True),
)


class Category(Base):
    """Grouping label used as an analytics key."""

    __tablename__ = "categories"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    color: Mapped[str | None] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    bookmarks: Mapped[List[Bookmark]] = relationship(back_populates="category")

    def __repr__(self) -> str:
        return f"<Category {self.name}>"


class Tag(Base):
    """Free-form label attached to bookmarks."""

    __tablename__ = "tags"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    name: Mapped[str] = mapped_column(Text, nullable=False, unique=True)

    bookmarks: Mapped[List[Bookmark]] = relationship(
        secondary=bookmark_tags, back_populates="tags"
    )

    def __repr__(self) -> str:
        return f"<Tag {self.name}>"


class Bookmark(Base):
    """
    A saved web page with optional extracted content.

    Deleting a bookmark cascades to its questions and quiz attempts
    (and through attempts, to their answers).
    """

    __tablename__ = "bookmarks"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    url: Mapped[str] = mapped_column(Text, nullable=False)
    content: Mapped[str | None] = mapped_column(Text)
    category_id: Mapped[str | None] = mapped_column(
        ForeignKey("categories.id", ondelete="SET NULL")
    )

    # Review schedule
    last_reviewed_at: Mapped[datetime | None] = mapped_column(DateTime)
    next_review_at: Mapped[datetime | None] = mapped_column(DateTime)

    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    # Relationships
    category: Mapped[Category | None] = relationship(back_populates="bookmarks")
    tags: Mapped[List[Tag]] = relationship(secondary=bookmark_tags, back_populates="bookmarks")
    questions: Mapped[List[Question]] = relationship(
        back_populates="bookmark",
        cascade="all, delete-orphan",
        order_by="Question.position",
    )
    attempts: Mapped[List[QuizAttempt]] = relationship(
        back_populates="bookmark",
        cascade="all, delete-orphan",
        order_by="QuizAttempt.attempted_at",
    )

    __table_args__ = (
        Index("idx_bookmarks_next_review", "next_review_at"),
        Index("idx_bookmarks_category", "category_id"),
    )

    def __repr__(self) -> str:
        return f"<Bookmark {self.title!r} next_review={self.next_review_at}>"

    @property
    def category_name(self) -> str | None:
        return self.category.name if self.category else None
