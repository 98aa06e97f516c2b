"""
MCQ (Multiple Choice Question) evaluator.

The submitted answer is the selected option text; it must equal the correct
option after trimming and lower-casing.
"""

from . import QuestionType, register
from .base import AnswerResult, Checkable, normalize


@register(QuestionType.MCQ)
class MCQEvaluator:
    """Evaluator for multiple choice questions."""

    def check(self, question: Checkable, answer: str | None) -> AnswerResult:
        user_answer = (answer or "").strip()
        is_correct = bool(user_answer) and normalize(user_answer) == normalize(question.correct_answer)

        return AnswerResult(
            correct=is_correct,
            feedback="Correct!" if is_correct else "Incorrect.",
            user_answer=user_answer,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
        )
