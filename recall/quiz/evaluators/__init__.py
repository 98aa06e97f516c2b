"""
Answer evaluators for quiz questions.

Each question type (mcq, short, scenario, flashcard) has a handler with:
- check(): Grade a submitted answer and explain the result

Evaluation is pure and deterministic: the same question and answer always
produce the same result.
"""

from typing import TYPE_CHECKING

from recall.db.models.quiz import QuestionType

if TYPE_CHECKING:
    from .base import AnswerEvaluator, AnswerResult, Checkable


# Handler registry - populated by @register decorator
HANDLERS: dict[QuestionType, "AnswerEvaluator"] = {}


def register(*question_types: QuestionType):
    """Decorator to register an evaluator for one or more question types."""
    def decorator(cls):
        instance = cls()
        for question_type in question_types:
            HANDLERS[question_type] = instance
        return cls
    return decorator


def get_evaluator(question_type: "str | QuestionType") -> "AnswerEvaluator | None":
    """Get the evaluator for a question type."""
    if isinstance(question_type, str):
        try:
            question_type = QuestionType(question_type.lower())
        except ValueError:
            return None
    return HANDLERS.get(question_type)


def check_answer(question: "Checkable", submitted_answer: str | None) -> "AnswerResult":
    """Grade an answer with the evaluator registered for the question's type."""
    evaluator = get_evaluator(question.type)
    if evaluator is None:
        return AnswerResult(
            correct=False,
            feedback=f"Unsupported question type: {question.type}",
            user_answer=submitted_answer or "",
            correct_answer=question.correct_answer,
        )
    return evaluator.check(question, submitted_answer)


def evaluate_answer(question: "Checkable", submitted_answer: str | None) -> bool:
    """Return True if the submitted answer is correct for the question."""
    return check_answer(question, submitted_answer).correct


# Import handlers to trigger registration
from .base import AnswerResult
from . import mcq
from . import short_answer
from . import flashcard

__all__ = [
    "AnswerResult",
    "HANDLERS",
    "QuestionType",
    "check_answer",
    "evaluate_answer",
    "get_evaluator",
    "register",
]
