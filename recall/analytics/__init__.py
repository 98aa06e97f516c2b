"""
Analytics aggregation and rule-based insights over quiz history.
"""

from recall.analytics.aggregator import AnalyticsAggregator
from recall.analytics.insights import Insight, InsightEngine, InsightPriority

__all__ = ["AnalyticsAggregator", "Insight", "InsightEngine", "InsightPriority"]
