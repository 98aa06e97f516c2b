"""
Insight Engine - rule-based findings about study performance.

No learned parameters: every insight comes from a fixed threshold applied to
the same attempt history the scheduler and aggregator read. Scoped insights
(category, bookmark) reuse the global thresholds so the three views never
contradict each other.

Insights are sorted by priority: critical < warning < info < positive.
Ties keep the order in which rules fired.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any

from recall.config import Settings, get_settings
from recall.db.models import Bookmark, QuestionType, QuizAttempt
from recall.db.store import ContentStore
from recall.analytics.aggregator import CategoryScore, group_by_category, question_stats
from recall.study.stats import active_days, average, compare_weeks, days_between, newest_vs_oldest


class InsightPriority(str, Enum):
    CRITICAL = "critical"
    WARNING = "warning"
    INFO = "info"
    POSITIVE = "positive"

    @property
    def rank(self) -> int:
        return _PRIORITY_ORDER[self]


_PRIORITY_ORDER = {
    InsightPriority.CRITICAL: 0,
    InsightPriority.WARNING: 1,
    InsightPriority.INFO: 2,
    InsightPriority.POSITIVE: 3,
}

QUESTION_TYPE_LABELS = {
    QuestionType.MCQ: "multiple choice",
    QuestionType.SHORT: "short answer",
    QuestionType.SCENARIO: "scenario-based",
    QuestionType.FLASHCARD: "flashcard",
}


@dataclass
class Insight:
    """A short rule-derived finding."""
    type: str
    priority: InsightPriority
    message: str
    metric: float | None = None
    details: dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> dict:
        data = {"type": self.type, "priority": self.priority.value, "message": self.message}
        if self.metric is not None:
            data["metric"] = self.metric
        data.update(self.details)
        return data


def sort_insights(insights: list[Insight]) -> list[Insight]:
    """Stable sort by priority rank."""
    return sorted(insights, key=lambda i: i.priority.rank)


def _plural(count: int, word: str) -> str:
    return f"{count} {word}" if count == 1 else f"{count} {word}s"


class InsightEngine:
    """
    Derives insights from attempt history.

    Thresholds:
    - Weekly decline: more than 5 points below last week
    - Weak category: at least 3 attempts averaging under 50
    - Strong category: average of 80 or more
    - Retention decay: at least 5 attempts, newest 3 trail oldest 3 by over 15
    - Question type weakness: at least 10 answers, under 50% correct
    - Consistency: 5+ active days in 7 is high, 2 or fewer is low
    - Streak: 3+ consecutive active days
    """

    WEEKLY_DECLINE_POINTS = 5.0
    WEAK_CATEGORY_MIN_ATTEMPTS = 3
    WEAK_CATEGORY_SCORE = 50.0
    STRONG_CATEGORY_SCORE = 80.0
    DECAY_MIN_ATTEMPTS = 5
    DECAY_WINDOW = 3
    DECAY_POINTS = 15.0
    TREND_POINTS = 10.0
    QUESTION_TYPE_MIN_ANSWERS = 10
    WEAK_CORRECT_RATE = 0.5
    WEAK_QUESTION_MIN_ANSWERS = 2
    CONSISTENCY_HIGH_DAYS = 5
    CONSISTENCY_LOW_DAYS = 2
    STREAK_MIN_DAYS = 3
    STREAK_LOOKBACK_DAYS = 30
    OVERDUE_DAYS = 7
    MISSED_REVIEW_SAMPLE = 5

    def __init__(
        self,
        store: ContentStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock or self.settings.now

    # ========================================
    # Global insights
    # ========================================

    def insights(self) -> list[Insight]:
        """Run every global rule against the full history."""
        now = self.clock()
        attempts = self.store.list_attempts()
        bookmarks = self.store.list_bookmarks()
        categories = group_by_category(attempts)

        found: list[Insight] = []
        found.extend(self._weekly_trend(attempts, now))
        found.extend(self._missed_reviews(bookmarks, now))
        found.extend(self._weak_categories(categories))
        found.extend(self._retention_decay(categories))
        found.extend(self._question_type_weakness(attempts))
        found.extend(self._consistency(attempts, now))
        found.extend(self._streak(attempts, now))
        return sort_insights(found)

    def _weekly_trend(self, attempts: Sequence[QuizAttempt], now: datetime) -> list[Insight]:
        weeks = compare_weeks(attempts, now)
        if not weeks.comparable:
            return []
        delta = weeks.delta
        if delta > 0:
            return [Insight(
                type="improvement",
                priority=InsightPriority.POSITIVE,
                message=f"You improved {delta:.0f}% this week compared to last week!",
                metric=delta,
            )]
        if delta < -self.WEEKLY_DECLINE_POINTS:
            return [Insight(
                type="decline",
                priority=InsightPriority.WARNING,
                message=f"Your scores dropped {abs(delta):.0f}% this week. Consider reviewing more frequently.",
                metric=delta,
            )]
        return []

    def _missed_reviews(self, bookmarks: Sequence[Bookmark], now: datetime) -> list[Insight]:
        missed = [
            b for b in bookmarks
            if b.next_review_at is not None
            and b.next_review_at < now
            and (b.last_reviewed_at is None or b.last_reviewed_at < b.next_review_at)
        ]
        if not missed:
            return []
        return [Insight(
            type="missed_reviews",
            priority=InsightPriority.WARNING,
            message=f"You missed {_plural(len(missed), 'scheduled review')}.",
            metric=len(missed),
            details={
                "bookmarks": [{"id": b.id, "title": b.title} for b in missed[: self.MISSED_REVIEW_SAMPLE]]
            },
        )]

    def _is_weak_category(self, group: CategoryScore) -> bool:
        return (
            group.attempts >= self.WEAK_CATEGORY_MIN_ATTEMPTS
            and group.avg_score < self.WEAK_CATEGORY_SCORE
        )

    def _is_decaying(self, scores: Sequence[float]) -> bool:
        if len(scores) < self.DECAY_MIN_ATTEMPTS:
            return False
        newest, oldest = newest_vs_oldest(scores, self.DECAY_WINDOW)
        return oldest - newest > self.DECAY_POINTS

    def _weak_categories(self, categories: Sequence[CategoryScore]) -> list[Insight]:
        return [
            Insight(
                type="weak_category",
                priority=InsightPriority.CRITICAL,
                message=(
                    f'You struggle with "{group.name}" topics '
                    f"(avg score: {group.avg_score:.0f}%). Focus more on this area."
                ),
                metric=group.avg_score,
                details={"category": group.name},
            )
            for group in categories
            if self._is_weak_category(group)
        ]

    def _retention_decay(self, categories: Sequence[CategoryScore]) -> list[Insight]:
        found = []
        for group in categories:
            if not self._is_decaying(group.scores):
                continue
            span_days = max(0, days_between(min(group.attempted_at), max(group.attempted_at)))
            found.append(Insight(
                type="retention_decay",
                priority=InsightPriority.WARNING,
                message=(
                    f'You tend to forget "{group.name}" topics after about '
                    f"{max(2, round(span_days / 2))} days."
                ),
                metric=span_days,
                details={"category": group.name},
            ))
        return found

    def _question_type_weakness(self, attempts: Sequence[QuizAttempt]) -> list[Insight]:
        totals = {qt: [0, 0] for qt in QuestionType}  # [correct, total]
        for attempt in attempts:
            for answer in attempt.answers:
                if answer.question is None:
                    continue
                try:
                    question_type = QuestionType(answer.question.type)
                except ValueError:
                    continue
                totals[question_type][1] += 1
                if answer.is_correct:
                    totals[question_type][0] += 1

        found = []
        for question_type, (correct, total) in totals.items():
            if total < self.QUESTION_TYPE_MIN_ANSWERS:
                continue
            rate = correct / total * 100
            if rate < self.WEAK_CORRECT_RATE * 100:
                label = QUESTION_TYPE_LABELS[question_type]
                found.append(Insight(
                    type="question_type_weakness",
                    priority=InsightPriority.INFO,
                    message=f"{label.capitalize()} questions score lower ({rate:.0f}%) than other types.",
                    metric=rate,
                    details={"question_type": question_type.value},
                ))
        return found

    def _consistency(self, attempts: Sequence[QuizAttempt], now: datetime) -> list[Insight]:
        days = len(active_days(attempts, now - timedelta(days=7)))
        if days >= self.CONSISTENCY_HIGH_DAYS:
            return [Insight(
                type="consistency",
                priority=InsightPriority.POSITIVE,
                message=f"Great consistency! You've studied {days} days this week.",
                metric=days,
            )]
        if days <= self.CONSISTENCY_LOW_DAYS and attempts:
            return [Insight(
                type="consistency",
                priority=InsightPriority.WARNING,
                message=f"You've only studied {_plural(days, 'day')} this week. Try to be more consistent.",
                metric=days,
            )]
        return []

    def study_streak(self, attempts: Sequence[QuizAttempt], now: datetime) -> int:
        """
        Consecutive active days walking back from today.

        Today without an attempt does not end the streak (the day is not
        over yet); any earlier gap does.
        """
        studied = {a.attempted_at.date() for a in attempts}
        today = now.date()
        streak = 0
        for offset in range(self.STREAK_LOOKBACK_DAYS):
            if today - timedelta(days=offset) in studied:
                streak += 1
            elif offset > 0:
                break
        return streak

    def _streak(self, attempts: Sequence[QuizAttempt], now: datetime) -> list[Insight]:
        streak = self.study_streak(attempts, now)
        if streak < self.STREAK_MIN_DAYS:
            return []
        return [Insight(
            type="streak",
            priority=InsightPriority.POSITIVE,
            message=f"You're on a {streak}-day study streak! Keep it up!",
            metric=streak,
        )]

    # ========================================
    # Scoped insights
    # ========================================

    def category_insights(self, category_id: str) -> list[Insight]:
        """Strength, weakness and trend findings for one category."""
        category = self.store.get_category(category_id)
        attempts = self.store.list_attempts(category_id=category_id)

        if not attempts:
            return [Insight(
                type="no_data",
                priority=InsightPriority.INFO,
                message=f'No quiz attempts yet for "{category.name}". Start reviewing to get insights!',
            )]

        scores = [a.score for a in attempts]
        group = CategoryScore(category.id, category.name, scores, [a.attempted_at for a in attempts])
        avg = group.avg_score
        found: list[Insight] = []

        if avg >= self.STRONG_CATEGORY_SCORE:
            found.append(Insight(
                type="strong_category",
                priority=InsightPriority.POSITIVE,
                message=f'You\'re doing great in "{category.name}" with an average score of {avg:.0f}%!',
                metric=avg,
            ))
        elif self._is_weak_category(group):
            found.append(Insight(
                type="weak_category",
                priority=InsightPriority.CRITICAL,
                message=f'"{category.name}" needs more attention. Average score is only {avg:.0f}%.',
                metric=avg,
            ))

        if len(scores) >= self.DECAY_MIN_ATTEMPTS:
            newest, oldest = newest_vs_oldest(scores, self.DECAY_WINDOW)
            if newest > oldest + self.TREND_POINTS:
                found.append(Insight(
                    type="improving",
                    priority=InsightPriority.POSITIVE,
                    message=(
                        f'Your "{category.name}" scores are improving! '
                        f"Recent average is {newest - oldest:.0f}% higher."
                    ),
                    metric=newest - oldest,
                ))
        found.extend(self._retention_decay([group]))

        return sort_insights(found)

    def bookmark_insights(self, bookmark_id: str) -> list[Insight]:
        """Score trend, overdue review and weak question findings for one bookmark."""
        bookmark = self.store.get_bookmark(bookmark_id)
        attempts = self.store.list_attempts(bookmark_id=bookmark_id)

        if not attempts:
            return [Insight(
                type="no_attempts",
                priority=InsightPriority.INFO,
                message="No quiz attempts yet. Take a quiz to start tracking your progress!",
            )]

        found: list[Insight] = []
        avg = average(a.score for a in attempts)
        latest = attempts[-1].score

        if latest >= avg + self.TREND_POINTS:
            found.append(Insight(
                type="improving",
                priority=InsightPriority.POSITIVE,
                message=f"Great progress! Your latest score ({latest:.0f}%) is above your average ({avg:.0f}%).",
                metric=latest - avg,
            ))
        elif latest < avg - self.TREND_POINTS:
            found.append(Insight(
                type="declining",
                priority=InsightPriority.WARNING,
                message=(
                    f"Your latest score ({latest:.0f}%) dropped below your average "
                    f"({avg:.0f}%). Review recommended."
                ),
                metric=latest - avg,
            ))

        if bookmark.last_reviewed_at is not None:
            days_since = days_between(bookmark.last_reviewed_at, self.clock())
            if days_since > self.OVERDUE_DAYS:
                found.append(Insight(
                    type="overdue",
                    priority=InsightPriority.WARNING,
                    message=f"It's been {days_since} days since your last review. Time to refresh your memory!",
                    metric=days_since,
                ))

        weak = [
            q for q in question_stats(attempts)
            if q.total >= self.WEAK_QUESTION_MIN_ANSWERS and q.correct_rate < self.WEAK_CORRECT_RATE
        ]
        if weak:
            weakest = min(weak, key=lambda q: q.correct_rate)
            text = (weakest.question_text or "")[:50]
            found.append(Insight(
                type="weak_questions",
                priority=InsightPriority.INFO,
                message=f'You consistently miss {len(weak)} question(s). Focus on: "{text}..."',
                metric=len(weak),
                details={"question_id": weakest.question_id},
            ))

        return sort_insights(found)
