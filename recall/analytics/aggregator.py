"""
Analytics Aggregator - score statistics and trends from attempt history.

Read-only. Every method recomputes from the content store on each call; there
are no incremental counters, so results always match the latest writes.

Provides:
- Global analytics (dashboard headline numbers)
- Category analytics (average, weak bookmarks, 30-day retention series)
- Bookmark analytics (progression, weak questions)
- Performance trend (fixed-length daily series)
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass, field
from datetime import datetime, timedelta

from loguru import logger

from recall.config import Settings, get_settings
from recall.db.models import Bookmark, QuizAttempt
from recall.db.store import ContentStore
from recall.study.stats import (
    DayBucket,
    average,
    compare_weeks,
    daily_series,
    days_between,
    round2,
    start_of_day,
)

UNCATEGORIZED = "Uncategorized"


# =============================================================================
# Result types
# =============================================================================


@dataclass
class CategoryScore:
    """Attempt scores grouped under one category, in attempt order (oldest first)."""
    category_id: str | None
    name: str
    scores: list[float] = field(default_factory=list)
    attempted_at: list[datetime] = field(default_factory=list)

    @property
    def avg_score(self) -> float:
        return average(self.scores)

    @property
    def attempts(self) -> int:
        return len(self.scores)

    def to_dict(self) -> dict:
        return {
            "id": self.category_id,
            "name": self.name,
            "avg_score": round2(self.avg_score),
            "attempts": self.attempts,
        }


@dataclass
class QuestionStat:
    """Correct/incorrect tallies for one question across attempts."""
    question_id: str
    question_text: str | None
    question_type: str | None
    correct: int = 0
    incorrect: int = 0

    @property
    def total(self) -> int:
        return self.correct + self.incorrect

    @property
    def correct_rate(self) -> float:
        return self.correct / self.total if self.total else 0.0

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "type": self.question_type,
            "correct": self.correct,
            "incorrect": self.incorrect,
            "correct_rate": round2(self.correct_rate),
        }


@dataclass
class ProgressPoint:
    """One attempt in a bookmark's score progression."""
    date: datetime
    score: float
    time_taken: int

    def to_dict(self) -> dict:
        return {"date": self.date.isoformat(), "score": self.score, "time_taken": self.time_taken}


@dataclass
class GlobalAnalytics:
    """Headline numbers across the learner's whole library."""
    total_bookmarks: int
    total_categories: int
    total_attempts: int
    global_avg_score: float
    weakest_category: CategoryScore | None
    due_reviews_count: int
    improvement_trend: float
    review_compliance_rate: float
    this_week_attempts: int
    last_week_attempts: int

    def to_dict(self) -> dict:
        return {
            "total_bookmarks": self.total_bookmarks,
            "total_categories": self.total_categories,
            "total_attempts": self.total_attempts,
            "global_avg_score": self.global_avg_score,
            "weakest_category": self.weakest_category.to_dict() if self.weakest_category else None,
            "due_reviews_count": self.due_reviews_count,
            "improvement_trend": self.improvement_trend,
            "review_compliance_rate": self.review_compliance_rate,
            "this_week_attempts": self.this_week_attempts,
            "last_week_attempts": self.last_week_attempts,
        }


@dataclass
class CategoryAnalytics:
    id: str
    name: str
    total_bookmarks: int
    total_attempts: int
    avg_score: float
    weak_bookmarks: list[dict]
    retention_trend: list[DayBucket]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "name": self.name,
            "total_bookmarks": self.total_bookmarks,
            "total_attempts": self.total_attempts,
            "avg_score": self.avg_score,
            "weak_bookmarks": self.weak_bookmarks,
            "retention_trend": [day.to_dict() for day in self.retention_trend],
        }


@dataclass
class BookmarkAnalytics:
    id: str
    title: str
    category: str | None
    total_attempts: int
    avg_score: float
    score_progression: list[ProgressPoint]
    last_reviewed_at: datetime | None
    next_review_at: datetime | None
    days_since_last_review: int | None
    total_questions: int
    weak_questions: list[QuestionStat]

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "title": self.title,
            "category": self.category,
            "total_attempts": self.total_attempts,
            "avg_score": self.avg_score,
            "score_progression": [p.to_dict() for p in self.score_progression],
            "last_reviewed_at": self.last_reviewed_at.isoformat() if self.last_reviewed_at else None,
            "next_review_at": self.next_review_at.isoformat() if self.next_review_at else None,
            "days_since_last_review": self.days_since_last_review,
            "total_questions": self.total_questions,
            "weak_questions": [q.to_dict() for q in self.weak_questions],
        }


# =============================================================================
# Shared aggregations (also used by the insight engine)
# =============================================================================


def group_by_category(attempts: Iterable[QuizAttempt]) -> list[CategoryScore]:
    """Group attempt scores by category in first-encountered order."""
    groups: dict[str | None, CategoryScore] = {}
    for attempt in attempts:
        category = attempt.bookmark.category if attempt.bookmark else None
        key = category.id if category else None
        if key not in groups:
            groups[key] = CategoryScore(key, category.name if category else UNCATEGORIZED)
        groups[key].scores.append(attempt.score)
        groups[key].attempted_at.append(attempt.attempted_at)
    return list(groups.values())


def question_stats(attempts: Iterable[QuizAttempt]) -> list[QuestionStat]:
    """Per-question tallies in first-answered order; answers to deleted questions are ignored."""
    stats: dict[str, QuestionStat] = {}
    for attempt in attempts:
        for answer in attempt.answers:
            if answer.question_id is None:
                continue
            if answer.question_id not in stats:
                question = answer.question
                stats[answer.question_id] = QuestionStat(
                    question_id=answer.question_id,
                    question_text=question.question_text if question else None,
                    question_type=question.type if question else None,
                )
            if answer.is_correct:
                stats[answer.question_id].correct += 1
            else:
                stats[answer.question_id].incorrect += 1
    return list(stats.values())


def bookmark_average(bookmark: Bookmark) -> float | None:
    """Average of all attempts on a bookmark, None if it has none."""
    if not bookmark.attempts:
        return None
    return average(a.score for a in bookmark.attempts)


# =============================================================================
# Aggregator
# =============================================================================


class AnalyticsAggregator:
    """Computes analytics from the current state of the content store."""

    def __init__(
        self,
        store: ContentStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock or self.settings.now

    def global_analytics(self) -> GlobalAnalytics:
        """Totals, averages, weakest category, due count, weekly trend and compliance."""
        now = self.clock()
        attempts = self.store.list_attempts()

        weakest = None
        for group in group_by_category(attempts):
            if weakest is None or group.avg_score < weakest.avg_score:
                weakest = group

        weeks = compare_weeks(attempts, now)

        scheduled = self.store.count_scheduled()
        completed = self.store.count_reviewed()
        compliance = completed / scheduled * 100 if scheduled > 0 else 100.0

        return GlobalAnalytics(
            total_bookmarks=self.store.count_bookmarks(),
            total_categories=self.store.count_categories(),
            total_attempts=len(attempts),
            global_avg_score=round2(average(a.score for a in attempts)),
            weakest_category=weakest,
            due_reviews_count=self.store.count_due(now),
            improvement_trend=round2(weeks.delta),
            review_compliance_rate=round2(compliance),
            this_week_attempts=weeks.current_attempts,
            last_week_attempts=weeks.previous_attempts,
        )

    def category_analytics(self, category_id: str) -> CategoryAnalytics:
        """Average, weak bookmarks and a daily retention series for one category."""
        category = self.store.get_category(category_id)
        bookmarks = self.store.list_category_bookmarks(category_id)
        attempts = [a for b in bookmarks for a in b.attempts]

        weak_bookmarks = []
        for bookmark in bookmarks:
            avg = bookmark_average(bookmark)
            if avg is not None and avg < self.settings.weak_score_threshold:
                weak_bookmarks.append({"id": bookmark.id, "title": bookmark.title, "avg_score": round2(avg)})

        return CategoryAnalytics(
            id=category.id,
            name=category.name,
            total_bookmarks=len(bookmarks),
            total_attempts=len(attempts),
            avg_score=round2(average(a.score for a in attempts)),
            weak_bookmarks=weak_bookmarks,
            retention_trend=daily_series(attempts, self.clock(), self.settings.retention_window_days),
        )

    def all_category_analytics(self) -> list[CategoryAnalytics]:
        """Analytics for every category, weakest average first."""
        results = [self.category_analytics(c.id) for c in self.store.list_categories()]
        results.sort(key=lambda c: c.avg_score)
        return results

    def bookmark_analytics(self, bookmark_id: str) -> BookmarkAnalytics:
        """Progression, review recency and weak questions for one bookmark."""
        bookmark = self.store.get_bookmark(bookmark_id)
        attempts = self.store.list_attempts(bookmark_id=bookmark_id)
        now = self.clock()

        weak_questions = [q for q in question_stats(attempts) if q.correct_rate < 0.5]
        weak_questions.sort(key=lambda q: q.correct_rate)

        days_since = None
        if bookmark.last_reviewed_at is not None:
            days_since = days_between(bookmark.last_reviewed_at, now)

        return BookmarkAnalytics(
            id=bookmark.id,
            title=bookmark.title,
            category=bookmark.category_name,
            total_attempts=len(attempts),
            avg_score=round2(average(a.score for a in attempts)),
            score_progression=[ProgressPoint(a.attempted_at, a.score, a.time_taken) for a in attempts],
            last_reviewed_at=bookmark.last_reviewed_at,
            next_review_at=bookmark.next_review_at,
            days_since_last_review=days_since,
            total_questions=len(bookmark.questions),
            weak_questions=weak_questions,
        )

    def performance_trend(self, days: int = 30) -> list[DayBucket]:
        """One entry per calendar day for the last `days` days, oldest first."""
        if days <= 0:
            return []
        now = self.clock()
        since = start_of_day(now) - timedelta(days=days - 1)
        attempts = self.store.list_attempts(since=since)
        logger.debug(f"Performance trend over {days} days from {len(attempts)} attempts")
        return daily_series(attempts, now, days)
