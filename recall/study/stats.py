"""
Shared statistics helpers for scheduling, analytics and insights.

Every "average of a list" in the core goes through `average()` with an
explicit empty policy, and every calendar-day series goes through
`daily_series()`, so the components cannot drift apart on the same data.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Protocol


class EmptyPolicy(str, Enum):
    """What an average of no values evaluates to."""
    ZERO = "zero"  # headline numbers: "0 average"
    NONE = "none"  # series points: a gap, not a zero


class Scored(Protocol):
    score: float
    attempted_at: datetime


def average(values: Iterable[float], empty: EmptyPolicy = EmptyPolicy.ZERO) -> float | None:
    """Arithmetic mean, with the empty case decided by `empty`."""
    items = list(values)
    if not items:
        return 0.0 if empty is EmptyPolicy.ZERO else None
    return sum(items) / len(items)


def round2(value: float | None) -> float | None:
    """Round to two decimals for presentation; None passes through."""
    return None if value is None else round(value, 2)


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from earlier to later (floored)."""
    return (later - earlier) // timedelta(days=1)


@dataclass(frozen=True)
class DayBucket:
    """One calendar day of attempt activity."""
    date: date
    avg_score: float | None
    attempts: int

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "avg_score": self.avg_score,
            "attempts": self.attempts,
        }


def calendar_days(now: datetime, days: int) -> list[date]:
    """The last `days` calendar days ending today, oldest first."""
    today = now.date()
    return [today - timedelta(days=offset) for offset in range(days - 1, -1, -1)]


def daily_series(attempts: Iterable[Scored], now: datetime, days: int) -> list[DayBucket]:
    """
    Fixed-length day series: one bucket per calendar day, oldest first.

    Days without attempts have avg_score None and attempts 0.
    """
    scores_by_day: dict[date, list[float]] = {day: [] for day in calendar_days(now, days)}
    for attempt in attempts:
        bucket = scores_by_day.get(attempt.attempted_at.date())
        if bucket is not None:
            bucket.append(attempt.score)
    return [
        DayBucket(day, round2(average(scores, EmptyPolicy.NONE)), len(scores))
        for day, scores in scores_by_day.items()
    ]


def active_days(attempts: Iterable[Scored], since: datetime) -> set[date]:
    """Distinct calendar days with at least one attempt at or after `since`."""
    return {a.attempted_at.date() for a in attempts if a.attempted_at >= since}


@dataclass(frozen=True)
class WeekComparison:
    """Average score of the last 7 days against the 7 days before."""
    current_avg: float
    previous_avg: float
    current_attempts: int
    previous_attempts: int

    @property
    def delta(self) -> float:
        return self.current_avg - self.previous_avg

    @property
    def comparable(self) -> bool:
        return self.current_attempts > 0 and self.previous_attempts > 0


def compare_weeks(attempts: Iterable[Scored], now: datetime) -> WeekComparison:
    """Split attempts into [now-7d, ...) and [now-14d, now-7d) windows."""
    one_week_ago = now - timedelta(days=7)
    two_weeks_ago = now - timedelta(days=14)
    current: list[float] = []
    previous: list[float] = []
    for attempt in attempts:
        if attempt.attempted_at >= one_week_ago:
            current.append(attempt.score)
        elif attempt.attempted_at >= two_weeks_ago:
            previous.append(attempt.score)
    return WeekComparison(
        current_avg=average(current),
        previous_avg=average(previous),
        current_attempts=len(current),
        previous_attempts=len(previous),
    )


def newest_vs_oldest(scores_oldest_first: Sequence[float], n: int = 3) -> tuple[float, float]:
    """(average of the newest n, average of the oldest n) scores."""
    return average(scores_oldest_first[-n:]), average(scores_oldest_first[:n])
