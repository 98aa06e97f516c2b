"""
Flashcard evaluator.

Lenient recall check: the answer is correct when it and the back of the card
contain one another (after trimming and lower-casing).
"""

from . import QuestionType, register
from .base import AnswerResult, Checkable, normalize


@register(QuestionType.FLASHCARD)
class FlashcardEvaluator:
    """Evaluator for flashcard questions."""

    def check(self, question: Checkable, answer: str | None) -> AnswerResult:
        user_answer = (answer or "").strip()
        correct = normalize(question.correct_answer)
        submitted = normalize(user_answer)

        # An empty answer is a substring of every card
        is_correct = bool(submitted) and (
            submitted in correct or correct in submitted or submitted == correct
        )

        return AnswerResult(
            correct=is_correct,
            feedback="Good recall!" if is_correct else "Keep practicing",
            user_answer=user_answer,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
        )
