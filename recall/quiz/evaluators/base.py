"""
Base protocol and types for answer evaluators.
"""

from dataclasses import dataclass
from typing import Protocol


@dataclass
class AnswerResult:
    """Result of checking an answer."""
    correct: bool
    feedback: str
    user_answer: str
    correct_answer: str
    explanation: str | None = None


class Checkable(Protocol):
    """Anything shaped like a question: a Question row or a normalized generator item."""
    type: str
    correct_answer: str
    explanation: str | None


def normalize(text: str | None) -> str:
    """Lower-case and trim; None becomes the empty string."""
    return (text or "").strip().lower()


class AnswerEvaluator(Protocol):
    """Protocol for question type evaluators."""

    def check(self, question: Checkable, answer: str | None) -> AnswerResult:
        """Grade the answer and return the result."""
        ...
