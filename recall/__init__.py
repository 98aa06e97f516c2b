"""
bookmark-recall: learning analytics and spaced repetition for saved web content.

Turns a learner's bookmarks into quiz practice:
- Evaluates answers (recall.quiz.evaluators)
- Schedules reviews with a fixed three-tier rule (recall.study.scheduler)
- Aggregates attempt history (recall.analytics.aggregator)
- Derives rule-based insights (recall.analytics.insights)
"""

__version__ = "1.0.0"
