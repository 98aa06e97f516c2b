"""
Quiz models for generated questions and recorded attempts.

Implements:
- Question: Generated question owned by a bookmark
- QuizAttempt: One completed quiz session with its aggregate score
- UserAnswer: Per-question answer recorded with its parent attempt

Question Types:
- mcq: Multiple choice, options stored as an ordered JSON list
- short: Short free-text answer, graded by key-term overlap
- scenario: Applied free-text answer, graded like short
- flashcard: Front/back recall, lenient containment grading

Attempts and answers are written together and never mutated.
"""
from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import TYPE_CHECKING, List

from sqlalchemy import JSON, Boolean, DateTime, Float, ForeignKey, Index, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base, new_id

if TYPE_CHECKING:
    from .content import Bookmark


class QuestionType(str, Enum):
    """Supported question types."""
    MCQ = "mcq"
    SHORT = "short"
    SCENARIO = "scenario"
    FLASHCARD = "flashcard"


class Difficulty(str, Enum):
    """Question difficulty labels."""
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"


class Question(Base):
    """
    Quiz question generated from a bookmark's content.

    Immutable once created; regeneration deletes and recreates the set.
    `position` preserves generation order so "first available" is stable.
    """

    __tablename__ = "questions"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    bookmark_id: Mapped[str] = mapped_column(
        ForeignKey("bookmarks.id", ondelete="CASCADE"), nullable=False
    )
    type: Mapped[str] = mapped_column(String(16), nullable=False)
    question_text: Mapped[str] = mapped_column(Text, nullable=False)
    options: Mapped[list | None] = mapped_column(JSON)  # mcq only
    correct_answer: Mapped[str] = mapped_column(Text, nullable=False)
    explanation: Mapped[str | None] = mapped_column(Text)
    difficulty: Mapped[str] = mapped_column(String(8), default=Difficulty.MEDIUM.value)
    position: Mapped[int] = mapped_column(Integer, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime, default=func.now())

    bookmark: Mapped[Bookmark] = relationship(back_populates="questions")

    __table_args__ = (
        Index("idx_questions_bookmark", "bookmark_id", "position"),
    )

    def __repr__(self) -> str:
        return f"<Question {self.type} {self.question_text[:40]!r}>"


class QuizAttempt(Base):
    """
    One completed quiz session against a bookmark.

    score == 100 * correct / total_questions, derived from its answers.
    """

    __tablename__ = "quiz_attempts"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    bookmark_id: Mapped[str] = mapped_column(
        ForeignKey("bookmarks.id", ondelete="CASCADE"), nullable=False
    )
    score: Mapped[float] = mapped_column(Float, nullable=False)
    total_questions: Mapped[int] = mapped_column(Integer, nullable=False)
    time_taken: Mapped[int] = mapped_column(Integer, default=0)  # seconds
    attempted_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    bookmark: Mapped[Bookmark] = relationship(back_populates="attempts")
    answers: Mapped[List[UserAnswer]] = relationship(
        back_populates="attempt", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("idx_attempts_bookmark_time", "bookmark_id", "attempted_at"),
        Index("idx_attempts_time", "attempted_at"),
    )

    def __repr__(self) -> str:
        return f"<QuizAttempt bookmark={self.bookmark_id} score={self.score}>"

    @property
    def correct_count(self) -> int:
        return sum(1 for a in self.answers if a.is_correct)


class UserAnswer(Base):
    """A submitted answer and its correctness, owned by one attempt."""

    __tablename__ = "user_answers"

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=new_id)
    attempt_id: Mapped[str] = mapped_column(
        ForeignKey("quiz_attempts.id", ondelete="CASCADE"), nullable=False
    )
    question_id: Mapped[str | None] = mapped_column(
        ForeignKey("questions.id", ondelete="SET NULL")
    )
    submitted_answer: Mapped[str] = mapped_column(Text, nullable=False, default="")
    is_correct: Mapped[bool] = mapped_column(Boolean, nullable=False)

    attempt: Mapped[QuizAttempt] = relationship(back_populates="answers")
    question: Mapped[Question | None] = relationship()

    __table_args__ = (
        Index("idx_answers_attempt", "attempt_id"),
        Index("idx_answers_question", "question_id"),
    )
