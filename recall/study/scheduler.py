"""
Revision Scheduler - Rule-based spaced repetition.

Rules (fixed three tiers, configurable via Settings):
- Score >= 80 -> review in 5 days
- Score 50-79 -> review in 3 days
- Score < 50  -> review in 1 day

Every scheduled review lands at 09:00 reference time, so all reviews due on a
calendar day are batched together regardless of when the quiz was taken.

A bookmark is due when its next review time has passed, or when it has never
been reviewed or scheduled.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import datetime, time, timedelta

from loguru import logger

from recall.config import Settings, get_settings
from recall.db.models import Bookmark, Question, QuestionType
from recall.db.store import ContentStore
from recall.study.stats import average, round2, start_of_day


@dataclass
class ScheduleUpdate:
    """Review fields written to a bookmark after an attempt."""
    bookmark_id: str
    last_reviewed_at: datetime
    next_review_at: datetime


@dataclass
class ScoredBookmark:
    """A bookmark ranked by its recent quiz performance."""
    bookmark: Bookmark
    avg_recent_score: float
    attempt_count: int
    last_attempt_at: datetime | None

    def to_dict(self) -> dict:
        return {
            "id": self.bookmark.id,
            "title": self.bookmark.title,
            "category": self.bookmark.category_name,
            "avg_score": round2(self.avg_recent_score),
            "attempt_count": self.attempt_count,
            "last_attempt_at": self.last_attempt_at.isoformat() if self.last_attempt_at else None,
        }


@dataclass
class DailyReviewSet:
    """Bookmarks and one representative question each for today's quick review."""
    bookmarks: list[Bookmark] = field(default_factory=list)
    questions: list[Question] = field(default_factory=list)
    total_due: int = 0


@dataclass
class ReviewStats:
    """Counts for the review overview."""
    due_today: int
    overdue: int
    never_reviewed: int
    reviewed_this_week: int


def representative_question(bookmark: Bookmark) -> Question | None:
    """First multiple-choice question (cheapest to grade), else the first of any type."""
    questions = sorted(bookmark.questions, key=lambda q: q.position)
    for question in questions:
        if question.type == QuestionType.MCQ.value:
            return question
    return questions[0] if questions else None


class RevisionScheduler:
    """
    Computes review timestamps and selects bookmarks for review.

    Holds no state beyond its collaborators; every call reads the store.
    """

    def __init__(
        self,
        store: ContentStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        """
        Initialize the scheduler.

        Args:
            store: Content store for the current request
            settings: Schedule thresholds and intervals (defaults to get_settings())
            clock: Returns the reference "now" (defaults to Settings.now)
        """
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock or self.settings.now

    def interval_days(self, score: float) -> int:
        """Days until the next review for a score."""
        if score >= self.settings.review_strong_threshold:
            return self.settings.review_interval_strong_days
        if score >= self.settings.review_medium_threshold:
            return self.settings.review_interval_medium_days
        return self.settings.review_interval_weak_days

    def next_review_date(self, score: float, now: datetime | None = None) -> datetime:
        """Next review time for a score, normalized to the configured review hour."""
        now = now or self.clock()
        target_day = now.date() + timedelta(days=self.interval_days(score))
        return datetime.combine(target_day, time(hour=self.settings.review_hour))

    def record_attempt(
        self, bookmark: Bookmark | str, score: float, now: datetime | None = None
    ) -> ScheduleUpdate:
        """
        Write last/next review times for a bookmark after an attempt.

        Runs inside the caller's transaction (see QuizService) so the schedule
        always reflects the attempt it was computed from.
        """
        now = now or self.clock()
        if isinstance(bookmark, str):
            bookmark = self.store.get_bookmark(bookmark)
        next_review_at = self.next_review_date(score, now)
        self.store.update_schedule(bookmark, last_reviewed_at=now, next_review_at=next_review_at)

        logger.info(
            f"Updated revision schedule for bookmark {bookmark.id}: "
            f"next review at {next_review_at.isoformat()}"
        )
        return ScheduleUpdate(bookmark.id, now, next_review_at)

    def due_bookmarks(self, limit: int = 10) -> list[Bookmark]:
        """Bookmarks due for review, earliest deadline first, never-scheduled first."""
        return self.store.due_bookmarks(self.clock(), limit=max(limit, 0))

    def ranked_by_weakness(self) -> list[ScoredBookmark]:
        """Every attempted bookmark, weakest recent average first."""
        recent_n = self.settings.weak_recent_attempts
        scored = []
        for bookmark in self.store.list_bookmarks(with_history=True):
            attempts = sorted(bookmark.attempts, key=lambda a: a.attempted_at)[-recent_n:]
            if not attempts:
                continue
            scored.append(
                ScoredBookmark(
                    bookmark=bookmark,
                    avg_recent_score=average(a.score for a in attempts),
                    attempt_count=len(attempts),
                    last_attempt_at=attempts[-1].attempted_at,
                )
            )
        # Stable sort keeps creation order among equal averages
        scored.sort(key=lambda s: s.avg_recent_score)
        return scored

    def weakest_bookmarks(self, limit: int = 10) -> list[ScoredBookmark]:
        """Attempted bookmarks with the lowest recent averages."""
        return self.ranked_by_weakness()[: max(limit, 0)]

    def daily_review_set(self) -> DailyReviewSet:
        """
        Build today's quick review.

        Due bookmarks come first and keep their order; weak bookmarks that are
        not already due are appended. total_due counts the whole union, while
        the returned bookmarks (and questions) are capped at daily_review_size.
        """
        size = self.settings.daily_review_size
        due = self.due_bookmarks(self.settings.daily_review_due_limit)
        weak = self.weakest_bookmarks(self.settings.daily_review_weak_limit)

        combined = list(due)
        seen = {b.id for b in due}
        for item in weak:
            if item.bookmark.id not in seen:
                combined.append(item.bookmark)
                seen.add(item.bookmark.id)

        selected = combined[:size]
        questions = []
        for bookmark in selected:
            question = representative_question(bookmark)
            if question is not None:
                questions.append(question)

        return DailyReviewSet(bookmarks=selected, questions=questions[:size], total_due=len(combined))

    def review_stats(self) -> ReviewStats:
        """Due-today, overdue, never-reviewed and reviewed-this-week counts."""
        now = self.clock()
        end_of_today = start_of_day(now) + timedelta(days=1) - timedelta(microseconds=1)
        return ReviewStats(
            due_today=self.store.count_next_review_before(end_of_today, inclusive=True),
            overdue=self.store.count_next_review_before(now, inclusive=False),
            never_reviewed=self.store.count_never_reviewed(),
            reviewed_this_week=self.store.count_reviewed(since=now - timedelta(days=7)),
        )
