"""
Question normalizer for generator output.

The question generator returns loosely-typed JSON. Before anything enters the
core, each item is validated into the strict question variant set:

- type must be one of mcq, short, scenario, flashcard
- question text and correct answer must be non-empty
- mcq needs at least two distinct options, one of which is the correct answer
- options are dropped for every non-mcq type
- difficulty falls back to medium when missing or unknown

Items that break a structural rule above are quarantined in `rejected` with
the reason. The two lenient rules (stray options on non-mcq items, an
unknown difficulty) are normalized in place rather than rejected.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Optional

from loguru import logger
from pydantic import AliasChoices, BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from recall.db.models import Difficulty, Question, QuestionType


class GeneratedQuestion(BaseModel):
    """A validated question as produced by the generation step."""

    model_config = ConfigDict(populate_by_name=True, str_strip_whitespace=True)

    type: QuestionType
    question_text: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("question_text", "questionText", "question", "prompt"),
    )
    correct_answer: str = Field(
        ...,
        min_length=1,
        validation_alias=AliasChoices("correct_answer", "correctAnswer", "answer"),
    )
    options: Optional[list[str]] = None
    explanation: Optional[str] = None
    difficulty: Difficulty = Difficulty.MEDIUM

    @field_validator("type", mode="before")
    @classmethod
    def _lower_type(cls, value: Any) -> Any:
        return value.strip().lower() if isinstance(value, str) else value

    @field_validator("difficulty", mode="before")
    @classmethod
    def _coerce_difficulty(cls, value: Any) -> Any:
        if isinstance(value, str) and value.strip().lower() in {d.value for d in Difficulty}:
            return value.strip().lower()
        return Difficulty.MEDIUM

    @field_validator("options", mode="before")
    @classmethod
    def _clean_options(cls, value: Any) -> Any:
        if value is None:
            return None
        if not isinstance(value, list):
            raise ValueError("options must be a list")
        return [str(o).strip() for o in value if str(o).strip()]

    @model_validator(mode="after")
    def _check_variant(self) -> GeneratedQuestion:
        if self.type is QuestionType.MCQ:
            options = self.options or []
            if len({o.lower() for o in options}) < 2:
                raise ValueError("mcq requires at least two distinct options")
            if self.correct_answer.lower() not in {o.lower() for o in options}:
                raise ValueError("mcq correct answer is not one of the options")
        else:
            self.options = None
        return self

    def to_model(self, bookmark_id: str | None = None) -> Question:
        """Build an unsaved Question row."""
        return Question(
            bookmark_id=bookmark_id,
            type=self.type.value,
            question_text=self.question_text,
            options=self.options,
            correct_answer=self.correct_answer,
            explanation=self.explanation or None,
            difficulty=self.difficulty.value,
        )


@dataclass
class RejectedItem:
    """A generator item that failed validation."""
    index: int
    raw: Any
    reason: str


@dataclass
class NormalizedBatch:
    """Result of normalizing one generator response."""
    questions: list[GeneratedQuestion] = field(default_factory=list)
    rejected: list[RejectedItem] = field(default_factory=list)


def _first_error(exc: ValidationError) -> str:
    error = exc.errors()[0]
    location = ".".join(str(part) for part in error.get("loc", ())) or "item"
    return f"{location}: {error.get('msg', 'invalid')}"


def normalize_questions(raw_items: Any) -> NormalizedBatch:
    """
    Validate a list of raw generator items.

    Args:
        raw_items: Parsed JSON from the generator. A dict with a "questions"
            key is unwrapped; anything that is not a list yields an empty batch.

    Returns:
        NormalizedBatch with accepted questions in input order and rejected items.
    """
    if isinstance(raw_items, dict):
        raw_items = raw_items.get("questions")
    if not isinstance(raw_items, list):
        logger.warning(f"Generator output is not a list of questions: {type(raw_items).__name__}")
        return NormalizedBatch()

    batch = NormalizedBatch()
    for index, item in enumerate(raw_items):
        if not isinstance(item, dict):
            batch.rejected.append(RejectedItem(index, item, "item is not an object"))
            continue
        try:
            batch.questions.append(GeneratedQuestion.model_validate(item))
        except ValidationError as e:
            batch.rejected.append(RejectedItem(index, item, _first_error(e)))

    if batch.rejected:
        logger.warning(
            f"Rejected {len(batch.rejected)} of {len(raw_items)} generated questions"
        )
    return batch
