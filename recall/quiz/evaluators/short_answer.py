"""
Short answer and scenario evaluator.

Approximate key-term grading for free-text answers:
- Key terms are the correct answer's whitespace tokens longer than 3 characters
- A key term matches when it is a substring of any submitted token, or a
  submitted token is a substring of it
- The answer is correct when at least half of the key terms match

A correct answer with no key terms cannot be graded this way and is never
marked correct.
"""

from . import QuestionType, register
from .base import AnswerResult, Checkable, normalize

MIN_TERM_LENGTH = 4
MATCH_THRESHOLD = 0.5


def key_terms(text: str | None) -> list[str]:
    """Tokens of the normalized text long enough to carry meaning."""
    return [token for token in normalize(text).split() if len(token) >= MIN_TERM_LENGTH]


def term_coverage(correct_answer: str | None, answer: str | None) -> float | None:
    """Fraction of key terms found in the answer, or None when there are no key terms."""
    terms = key_terms(correct_answer)
    if not terms:
        return None
    submitted = normalize(answer).split()
    matched = sum(
        1 for term in terms
        if any(token in term or term in token for token in submitted)
    )
    return matched / len(terms)


@register(QuestionType.SHORT, QuestionType.SCENARIO)
class ShortAnswerEvaluator:
    """Evaluator for short answer and scenario questions."""

    def check(self, question: Checkable, answer: str | None) -> AnswerResult:
        user_answer = (answer or "").strip()
        coverage = term_coverage(question.correct_answer, user_answer)

        if coverage is None:
            return AnswerResult(
                correct=False,
                feedback="No key terms to grade against; review the expected answer.",
                user_answer=user_answer,
                correct_answer=question.correct_answer,
                explanation=question.explanation,
            )

        is_correct = coverage >= MATCH_THRESHOLD
        return AnswerResult(
            correct=is_correct,
            feedback="Correct!" if is_correct else f"Covered {coverage:.0%} of the key points.",
            user_answer=user_answer,
            correct_answer=question.correct_answer,
            explanation=question.explanation,
        )
