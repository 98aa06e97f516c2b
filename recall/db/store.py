"""
Content Store repository.

The single read/write interface the core uses: point lookups, filtered and
ordered list queries over bookmarks, categories, questions, attempts and
answers, and an atomic write scope for quiz submissions.

Usage:
    with session_scope() as session:
        store = ContentStore(session)
        due = store.due_bookmarks(now, limit=5)
"""

from __future__ import annotations

import functools
from collections.abc import Callable, Generator, Iterable
from contextlib import contextmanager
from datetime import datetime
from typing import TypeVar

from loguru import logger
from sqlalchemy import func, or_, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, selectinload

from recall.db.models import Bookmark, Category, Question, QuizAttempt, Tag, UserAnswer
from recall.exceptions import NotFoundError, StoreFailure

T = TypeVar("T")


def _store_op(fn: Callable[..., T]) -> Callable[..., T]:
    """Surface driver errors as StoreFailure; the caller owns retry policy."""

    @functools.wraps(fn)
    def wrapper(*args, **kwargs):
        try:
            return fn(*args, **kwargs)
        except SQLAlchemyError as e:
            logger.error(f"Content store {fn.__name__} failed: {e}")
            raise StoreFailure(f"{fn.__name__} failed: {e}") from e

    return wrapper


class ContentStore:
    """Data access layer for the learner's content and quiz history."""

    def __init__(self, session: Session):
        self.session = session

    # ========================================
    # Transactions
    # ========================================

    @contextmanager
    def atomic(self) -> Generator[ContentStore, None, None]:
        """
        Commit everything written inside the block as one transaction.

        On any error the transaction is rolled back; driver errors are
        re-raised as StoreFailure, everything else propagates unchanged.
        """
        try:
            yield self
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.error(f"Atomic write rolled back: {e}")
            raise StoreFailure(f"write failed: {e}") from e
        except Exception:  # Intentionally broad - rollback on any error before re-raising
            self.session.rollback()
            raise

    # ========================================
    # Point lookups
    # ========================================

    @_store_op
    def get_bookmark(self, bookmark_id: str) -> Bookmark:
        bookmark = self.session.get(Bookmark, bookmark_id)
        if bookmark is None:
            raise NotFoundError("Bookmark", bookmark_id)
        return bookmark

    @_store_op
    def get_category(self, category_id: str) -> Category:
        category = self.session.get(Category, category_id)
        if category is None:
            raise NotFoundError("Category", category_id)
        return category

    @_store_op
    def get_attempt(self, attempt_id: str) -> QuizAttempt:
        stmt = (
            select(QuizAttempt)
            .where(QuizAttempt.id == attempt_id)
            .options(
                selectinload(QuizAttempt.bookmark),
                selectinload(QuizAttempt.answers).selectinload(UserAnswer.question),
            )
        )
        attempt = self.session.scalars(stmt).first()
        if attempt is None:
            raise NotFoundError("QuizAttempt", attempt_id)
        return attempt

    @_store_op
    def get_questions(self, question_ids: Iterable[str]) -> dict[str, Question]:
        """Fetch questions by id; ids that no longer exist are simply absent."""
        ids = list(set(question_ids))
        if not ids:
            return {}
        stmt = select(Question).where(Question.id.in_(ids))
        return {q.id: q for q in self.session.scalars(stmt)}

    # ========================================
    # Counts
    # ========================================

    @_store_op
    def count_bookmarks(self) -> int:
        return self.session.scalar(select(func.count()).select_from(Bookmark)) or 0

    @_store_op
    def count_categories(self) -> int:
        return self.session.scalar(select(func.count()).select_from(Category)) or 0

    @_store_op
    def count_scheduled(self) -> int:
        """Bookmarks with a scheduled next review."""
        stmt = select(func.count()).select_from(Bookmark).where(Bookmark.next_review_at.isnot(None))
        return self.session.scalar(stmt) or 0

    @_store_op
    def count_reviewed(self, since: datetime | None = None) -> int:
        """Bookmarks with at least one completed review (optionally since a time)."""
        stmt = select(func.count()).select_from(Bookmark).where(Bookmark.last_reviewed_at.isnot(None))
        if since is not None:
            stmt = stmt.where(Bookmark.last_reviewed_at >= since)
        return self.session.scalar(stmt) or 0

    @_store_op
    def count_never_reviewed(self) -> int:
        stmt = select(func.count()).select_from(Bookmark).where(Bookmark.last_reviewed_at.is_(None))
        return self.session.scalar(stmt) or 0

    @_store_op
    def count_next_review_before(self, moment: datetime, inclusive: bool = True) -> int:
        column = Bookmark.next_review_at
        condition = column <= moment if inclusive else column < moment
        stmt = select(func.count()).select_from(Bookmark).where(condition)
        return self.session.scalar(stmt) or 0

    # ========================================
    # List queries
    # ========================================

    @staticmethod
    def _due_condition(now: datetime):
        return or_(
            Bookmark.next_review_at <= now,
            # Never reviewed
            (Bookmark.next_review_at.is_(None)) & (Bookmark.last_reviewed_at.is_(None)),
        )

    @_store_op
    def due_bookmarks(self, now: datetime, limit: int | None = None) -> list[Bookmark]:
        """Due bookmarks, earliest deadline first (unscheduled first), then oldest."""
        stmt = (
            select(Bookmark)
            .where(self._due_condition(now))
            .options(selectinload(Bookmark.category), selectinload(Bookmark.questions))
            .order_by(Bookmark.next_review_at.asc().nulls_first(), Bookmark.created_at.asc())
        )
        if limit is not None:
            stmt = stmt.limit(max(limit, 0))
        return list(self.session.scalars(stmt))

    @_store_op
    def count_due(self, now: datetime) -> int:
        stmt = select(func.count()).select_from(Bookmark).where(self._due_condition(now))
        return self.session.scalar(stmt) or 0

    @_store_op
    def list_bookmarks(self, with_history: bool = False) -> list[Bookmark]:
        """All bookmarks in creation order, optionally with attempts and answers loaded."""
        stmt = select(Bookmark).order_by(Bookmark.created_at.asc(), Bookmark.id.asc())
        options = [selectinload(Bookmark.category), selectinload(Bookmark.questions)]
        if with_history:
            options.append(
                selectinload(Bookmark.attempts)
                .selectinload(QuizAttempt.answers)
                .selectinload(UserAnswer.question)
            )
        return list(self.session.scalars(stmt.options(*options)))

    @_store_op
    def list_categories(self) -> list[Category]:
        stmt = select(Category).order_by(Category.created_at.asc(), Category.name.asc())
        return list(self.session.scalars(stmt))

    @_store_op
    def list_category_bookmarks(self, category_id: str) -> list[Bookmark]:
        stmt = (
            select(Bookmark)
            .where(Bookmark.category_id == category_id)
            .options(
                selectinload(Bookmark.attempts)
                .selectinload(QuizAttempt.answers)
                .selectinload(UserAnswer.question)
            )
            .order_by(Bookmark.created_at.asc(), Bookmark.id.asc())
        )
        return list(self.session.scalars(stmt))

    @_store_op
    def list_attempts(
        self,
        since: datetime | None = None,
        bookmark_id: str | None = None,
        category_id: str | None = None,
        newest_first: bool = False,
    ) -> list[QuizAttempt]:
        """Attempts with bookmark, category and answers (with questions) loaded."""
        stmt = select(QuizAttempt).options(
            selectinload(QuizAttempt.bookmark).selectinload(Bookmark.category),
            selectinload(QuizAttempt.answers).selectinload(UserAnswer.question),
        )
        if since is not None:
            stmt = stmt.where(QuizAttempt.attempted_at >= since)
        if bookmark_id is not None:
            stmt = stmt.where(QuizAttempt.bookmark_id == bookmark_id)
        if category_id is not None:
            stmt = stmt.join(QuizAttempt.bookmark).where(Bookmark.category_id == category_id)
        order = QuizAttempt.attempted_at.desc() if newest_first else QuizAttempt.attempted_at.asc()
        return list(self.session.scalars(stmt.order_by(order)))

    # ========================================
    # Writes
    # ========================================

    @_store_op
    def add_category(self, name: str, color: str | None = None) -> Category:
        category = Category(name=name, color=color)
        self.session.add(category)
        self.session.flush()
        return category

    @_store_op
    def add_bookmark(
        self,
        title: str,
        url: str,
        content: str | None = None,
        category_id: str | None = None,
        tags: Iterable[str] = (),
        created_at: datetime | None = None,
    ) -> Bookmark:
        bookmark = Bookmark(title=title, url=url, content=content, category_id=category_id)
        if created_at is not None:
            bookmark.created_at = created_at
        for name in tags:
            tag = self.session.scalars(select(Tag).where(Tag.name == name)).first()
            bookmark.tags.append(tag or Tag(name=name))
        self.session.add(bookmark)
        self.session.flush()
        return bookmark

    @_store_op
    def replace_questions(self, bookmark: Bookmark, questions: list[Question]) -> list[Question]:
        """Full regeneration: delete the bookmark's questions and insert the new set."""
        bookmark.questions.clear()
        self.session.flush()
        for position, question in enumerate(questions):
            question.position = position
            bookmark.questions.append(question)
        self.session.flush()
        return list(bookmark.questions)

    @_store_op
    def add_attempt(
        self,
        bookmark_id: str,
        score: float,
        total_questions: int,
        time_taken: int,
        attempted_at: datetime,
        answers: Iterable[UserAnswer],
    ) -> QuizAttempt:
        """Stage an attempt with all of its answers; committed by atomic()."""
        attempt = QuizAttempt(
            bookmark=self.get_bookmark(bookmark_id),
            score=score,
            total_questions=total_questions,
            time_taken=time_taken,
            attempted_at=attempted_at,
        )
        attempt.answers.extend(answers)
        self.session.add(attempt)
        self.session.flush()
        return attempt

    @_store_op
    def update_schedule(
        self, bookmark: Bookmark, last_reviewed_at: datetime, next_review_at: datetime
    ) -> Bookmark:
        bookmark.last_reviewed_at = last_reviewed_at
        bookmark.next_review_at = next_review_at
        self.session.flush()
        return bookmark

    @_store_op
    def delete_bookmark(self, bookmark_id: str) -> None:
        self.session.delete(self.get_bookmark(bookmark_id))
        self.session.flush()
