"""
Pytest Configuration and Fixtures.

This file configures pytest and provides shared fixtures for all tests:
an in-memory SQLite content store, a fixed reference clock and a small
builder for bookmarks, questions and attempts.
"""
from __future__ import annotations

import sys
from datetime import datetime, timedelta
from pathlib import Path

import pytest
from sqlalchemy.orm import Session
from sqlalchemy.pool import StaticPool

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from recall.config import Settings
from recall.db import ContentStore, init_db, make_engine
from recall.db.models import Bookmark, Category, Question, QuizAttempt, UserAnswer

# Saturday afternoon, well after the 09:00 review hour
NOW = datetime(2025, 3, 15, 14, 30)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (require database)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")
    config.addinivalue_line("markers", "slow: Slow tests")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their location."""
    for item in items:
        if "unit" in str(item.fspath):
            item.add_marker(pytest.mark.unit)
        elif "integration" in str(item.fspath):
            item.add_marker(pytest.mark.integration)
        elif "smoke" in str(item.fspath):
            item.add_marker(pytest.mark.smoke)


@pytest.fixture(scope="session")
def project_root():
    """Return the project root directory."""
    return PROJECT_ROOT


@pytest.fixture
def engine():
    """Fresh in-memory database per test."""
    engine = make_engine("sqlite://", poolclass=StaticPool)
    init_db(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    with Session(engine, expire_on_commit=False) as session:
        yield session


@pytest.fixture
def store(session):
    return ContentStore(session)


@pytest.fixture
def now():
    return NOW


@pytest.fixture
def clock(now):
    """Reference clock pinned to NOW."""
    return lambda: now


@pytest.fixture
def settings():
    """Default settings, ignoring any local .env file."""
    return Settings(_env_file=None)


class DataBuilder:
    """Creates content relative to a fixed reference time."""

    def __init__(self, store: ContentStore, now: datetime):
        self.store = store
        self.now = now
        self._created = 0

    def category(self, name: str) -> Category:
        return self.store.add_category(name)

    def bookmark(self, title: str, category: Category | None = None) -> Bookmark:
        """Bookmarks are created a year back, one second apart, in call order."""
        self._created += 1
        return self.store.add_bookmark(
            title=title,
            url=f"https://example.com/{self._created}",
            category_id=category.id if category else None,
            created_at=self.now - timedelta(days=365) + timedelta(seconds=self._created),
        )

    def question(
        self,
        bookmark: Bookmark,
        type: str = "mcq",
        text: str | None = None,
        correct_answer: str = "Paris",
        options: list[str] | None = None,
    ) -> Question:
        if type == "mcq" and options is None:
            options = [correct_answer, "London", "Berlin", "Madrid"]
        question = Question(
            bookmark_id=bookmark.id,
            type=type,
            question_text=text or f"Question {len(bookmark.questions) + 1} on {bookmark.title}",
            options=options,
            correct_answer=correct_answer,
            position=len(bookmark.questions),
        )
        bookmark.questions.append(question)
        self.store.session.flush()
        return question

    def attempt(
        self,
        bookmark: Bookmark,
        score: float,
        days_ago: float = 0,
        answers: list[tuple[Question, bool]] = (),
    ) -> QuizAttempt:
        return self.store.add_attempt(
            bookmark_id=bookmark.id,
            score=score,
            total_questions=max(len(answers), 1),
            time_taken=60,
            attempted_at=self.now - timedelta(days=days_ago),
            answers=[UserAnswer(question_id=q.id, is_correct=ok) for q, ok in answers],
        )

    def attempts(self, bookmark: Bookmark, scores: list[float], start_days_ago: int | None = None) -> list[QuizAttempt]:
        """One attempt per score, oldest first, a day apart, ending today."""
        start = len(scores) - 1 if start_days_ago is None else start_days_ago
        return [self.attempt(bookmark, score, days_ago=start - i) for i, score in enumerate(scores)]

    def schedule(
        self, bookmark: Bookmark, last_reviewed_at: datetime | None, next_review_at: datetime | None
    ) -> Bookmark:
        bookmark.last_reviewed_at = last_reviewed_at
        bookmark.next_review_at = next_review_at
        self.store.session.flush()
        return bookmark


@pytest.fixture
def build(store, now):
    return DataBuilder(store, now)
