"""
Spaced-repetition scheduling and the shared statistics helpers.
"""

from recall.study.scheduler import DailyReviewSet, RevisionScheduler, ReviewStats, ScoredBookmark

__all__ = ["DailyReviewSet", "ReviewStats", "RevisionScheduler", "ScoredBookmark"]
