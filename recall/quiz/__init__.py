"""
Quiz grading, submission and generator-output normalization.
"""

from recall.quiz.evaluators import AnswerResult, check_answer, evaluate_answer
from recall.quiz.normalizer import GeneratedQuestion, NormalizedBatch, normalize_questions
from recall.quiz.service import DailyReviewResult, QuizService, SubmissionResult

__all__ = [
    "AnswerResult",
    "DailyReviewResult",
    "GeneratedQuestion",
    "NormalizedBatch",
    "QuizService",
    "SubmissionResult",
    "check_answer",
    "evaluate_answer",
    "normalize_questions",
]
