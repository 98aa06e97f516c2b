"""
Unit tests for the analytics aggregator.
"""

from datetime import date, timedelta

import pytest

from recall.analytics.aggregator import AnalyticsAggregator, group_by_category, question_stats
from recall.exceptions import NotFoundError


@pytest.fixture
def aggregator(store, settings, clock):
    return AnalyticsAggregator(store, settings, clock)


@pytest.fixture
def library(build):
    """Two categories, one uncategorized bookmark and one never-attempted bookmark."""
    networking = build.category("Networking")
    biology = build.category("Biology")

    tcp = build.bookmark("TCP", networking)
    build.attempt(tcp, 80, days_ago=9)
    build.attempt(tcp, 90, days_ago=1)

    cells = build.bookmark("Cells", biology)
    build.attempt(cells, 40, days_ago=2)

    loose = build.bookmark("Loose note")
    build.attempt(loose, 60, days_ago=3)

    untouched = build.bookmark("Untouched", networking)
    return {
        "networking": networking,
        "biology": biology,
        "tcp": tcp,
        "cells": cells,
        "loose": loose,
        "untouched": untouched,
    }


class TestGlobalAnalytics:
    def test_headline_numbers(self, aggregator, library):
        data = aggregator.global_analytics()

        assert data.total_bookmarks == 4
        assert data.total_categories == 2
        assert data.total_attempts == 4
        assert data.global_avg_score == 67.5
        assert data.weakest_category.name == "Biology"
        assert data.weakest_category.avg_score == 40.0

    def test_week_over_week(self, aggregator, library):
        """This week (90, 40, 60) against last week (80)."""
        data = aggregator.global_analytics()

        assert data.this_week_attempts == 3
        assert data.last_week_attempts == 1
        assert data.improvement_trend == -16.67

    def test_unscheduled_library_is_all_due_and_fully_compliant(self, aggregator, library):
        data = aggregator.global_analytics()

        assert data.due_reviews_count == 4
        assert data.review_compliance_rate == 100.0

    def test_compliance_rate(self, aggregator, build, now):
        reviewed = build.bookmark("reviewed")
        build.schedule(reviewed, now - timedelta(days=1), now + timedelta(days=2))
        missed = build.bookmark("missed")
        build.schedule(missed, None, now - timedelta(days=1))

        assert aggregator.global_analytics().review_compliance_rate == 50.0

    def test_empty_library(self, aggregator):
        """No data is never an error."""
        data = aggregator.global_analytics()

        assert data.total_attempts == 0
        assert data.global_avg_score == 0.0
        assert data.weakest_category is None
        assert data.improvement_trend == 0.0
        assert data.review_compliance_rate == 100.0

    def test_idempotent(self, aggregator, library):
        """Two calls with no writes in between return the same numbers."""
        assert aggregator.global_analytics().to_dict() == aggregator.global_analytics().to_dict()

    def test_weakest_tie_keeps_first_encountered(self, aggregator, build):
        first = build.category("First")
        second = build.category("Second")
        build.attempt(build.bookmark("a", first), 50, days_ago=2)
        build.attempt(build.bookmark("b", second), 50, days_ago=1)

        assert aggregator.global_analytics().weakest_category.name == "First"


class TestGroupByCategory:
    def test_uncategorized_bucket(self, store, library):
        groups = {g.name: g for g in group_by_category(store.list_attempts())}

        assert set(groups) == {"Networking", "Biology", "Uncategorized"}
        assert groups["Uncategorized"].category_id is None
        assert groups["Networking"].scores == [80, 90]


class TestCategoryAnalytics:
    def test_summary(self, aggregator, library):
        data = aggregator.category_analytics(library["networking"].id)

        assert data.name == "Networking"
        assert data.total_bookmarks == 2
        assert data.total_attempts == 2
        assert data.avg_score == 85.0
        assert data.weak_bookmarks == []

    def test_weak_bookmarks_exclude_unattempted(self, aggregator, build, library):
        shaky = build.bookmark("Shaky", library["networking"])
        build.attempt(shaky, 55, days_ago=1)

        weak = aggregator.category_analytics(library["networking"].id).weak_bookmarks

        assert weak == [{"id": shaky.id, "title": "Shaky", "avg_score": 55.0}]

    def test_retention_series_keeps_gaps(self, aggregator, library, now):
        series = aggregator.category_analytics(library["networking"].id).retention_trend

        assert len(series) == 30
        assert series[-1].date == now.date()
        by_day = {d.date: d for d in series}
        assert by_day[date(2025, 3, 14)].avg_score == 90.0
        assert by_day[date(2025, 3, 6)].avg_score == 80.0
        assert by_day[date(2025, 3, 10)].avg_score is None

    def test_all_categories_weakest_first(self, aggregator, library):
        names = [c.name for c in aggregator.all_category_analytics()]

        assert names == ["Biology", "Networking"]

    def test_unknown_category(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.category_analytics("missing")


class TestBookmarkAnalytics:
    @pytest.fixture
    def quizzed(self, build, now):
        bookmark = build.bookmark("OSI model")
        q1 = build.question(bookmark, text="Layer 3?")
        q2 = build.question(bookmark, text="Layer 2?")
        build.attempt(bookmark, 50, days_ago=2, answers=[(q1, False), (q2, True)])
        build.attempt(bookmark, 0, days_ago=1, answers=[(q1, False), (q2, False)])
        build.schedule(bookmark, now - timedelta(days=2, hours=1), now + timedelta(days=1))
        return bookmark, q1, q2

    def test_progression_and_recency(self, aggregator, quizzed):
        bookmark, _, _ = quizzed
        data = aggregator.bookmark_analytics(bookmark.id)

        assert data.total_attempts == 2
        assert data.avg_score == 25.0
        assert [p.score for p in data.score_progression] == [50, 0]
        assert data.days_since_last_review == 2
        assert data.total_questions == 2

    def test_weak_questions_below_half(self, aggregator, quizzed):
        """q2 at exactly 50% is not weak."""
        bookmark, q1, _ = quizzed
        weak = aggregator.bookmark_analytics(bookmark.id).weak_questions

        assert [q.question_id for q in weak] == [q1.id]
        assert weak[0].correct_rate == 0.0

    def test_average_of_three(self, aggregator, build):
        bookmark = build.bookmark("Three scores")
        build.attempts(bookmark, [90, 40, 70])

        assert aggregator.bookmark_analytics(bookmark.id).avg_score == 66.67

    def test_never_reviewed(self, aggregator, build):
        data = aggregator.bookmark_analytics(build.bookmark("new").id)

        assert data.days_since_last_review is None
        assert data.avg_score == 0.0
        assert data.score_progression == []

    def test_unknown_bookmark(self, aggregator):
        with pytest.raises(NotFoundError):
            aggregator.bookmark_analytics("missing")


class TestQuestionStats:
    def test_deleted_questions_ignored(self, store, build):
        bookmark = build.bookmark("b")
        kept = build.question(bookmark)
        dropped = build.question(bookmark)
        build.attempt(bookmark, 50, answers=[(kept, True), (dropped, False)])
        store.replace_questions(bookmark, [])
        store.session.expire_all()

        stats = question_stats(store.list_attempts())

        assert stats == []


class TestPerformanceTrend:
    def test_fixed_length(self, aggregator, library, now):
        trend = aggregator.performance_trend(7)

        assert len(trend) == 7
        assert trend[-1].date == now.date()
        assert trend[-2].avg_score == 90.0
        assert trend[-2].attempts == 1

    def test_zero_days(self, aggregator):
        assert aggregator.performance_trend(0) == []
