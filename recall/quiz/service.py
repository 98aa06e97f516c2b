"""
Quiz Service - grades submissions and records them with their schedule update.

Flow for one submission:
    validate -> evaluate each answer -> score -> attempt + answers -> schedule

Everything after validation runs inside one `ContentStore.atomic()` block, so
an attempt is never visible without its answers or its schedule update.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass, field
from datetime import datetime

from loguru import logger

from recall.config import Settings, get_settings
from recall.db.models import Question, QuizAttempt, UserAnswer
from recall.db.store import ContentStore
from recall.exceptions import SubmissionValidationError
from recall.quiz.evaluators import check_answer
from recall.study.scheduler import RevisionScheduler
from recall.study.stats import round2

# (question_id, submitted answer)
AnswerInput = tuple[str, str]


@dataclass
class GradedAnswer:
    """One evaluated answer, as reported back to the learner."""
    question_id: str
    question_text: str
    submitted_answer: str
    correct_answer: str
    is_correct: bool
    explanation: str | None = None
    bookmark_id: str | None = None

    def to_dict(self) -> dict:
        return {
            "question_id": self.question_id,
            "question_text": self.question_text,
            "submitted_answer": self.submitted_answer,
            "correct_answer": self.correct_answer,
            "is_correct": self.is_correct,
            "explanation": self.explanation,
        }


@dataclass
class SubmissionResult:
    """Outcome of a single-bookmark quiz submission."""
    attempt_id: str
    score: float
    correct_count: int
    total: int
    time_taken: int
    results: list[GradedAnswer] = field(default_factory=list)
    skipped: int = 0
    next_review_at: datetime | None = None

    @property
    def weak_questions(self) -> list[GradedAnswer]:
        """Answers graded incorrect in this submission."""
        return [r for r in self.results if not r.is_correct]

    def to_dict(self) -> dict:
        return {
            "attempt_id": self.attempt_id,
            "score": self.score,
            "correct": self.correct_count,
            "total": self.total,
            "time_taken": self.time_taken,
            "results": [r.to_dict() for r in self.results],
            "weak_questions": [r.to_dict() for r in self.weak_questions],
            "skipped": self.skipped,
            "next_review_at": self.next_review_at.isoformat() if self.next_review_at else None,
        }


@dataclass
class DailyReviewResult:
    """Outcome of a daily review spanning several bookmarks."""
    score: float
    correct_count: int
    total: int
    time_taken: int
    results: list[GradedAnswer] = field(default_factory=list)
    attempt_ids: list[str] = field(default_factory=list)
    skipped: int = 0

    @property
    def bookmarks_reviewed(self) -> int:
        return len(self.attempt_ids)

    def to_dict(self) -> dict:
        return {
            "attempt_ids": list(self.attempt_ids),
            "bookmarks_reviewed": self.bookmarks_reviewed,
            "score": self.score,
            "correct": self.correct_count,
            "total": self.total,
            "time_taken": self.time_taken,
            "results": [r.to_dict() for r in self.results],
            "skipped": self.skipped,
        }


def _score(graded: Sequence[GradedAnswer]) -> float:
    if not graded:
        return 0.0
    return sum(1 for g in graded if g.is_correct) / len(graded) * 100


def _validate(answers: Sequence[AnswerInput], time_taken: int) -> None:
    if not answers:
        raise SubmissionValidationError("Submission has no answers")
    if time_taken < 0:
        raise SubmissionValidationError(f"time_taken must not be negative, got {time_taken}")


class QuizService:
    """
    Orchestrates evaluator, content store and revision scheduler.

    One instance per session; holds no state of its own.
    """

    def __init__(
        self,
        store: ContentStore,
        settings: Settings | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.store = store
        self.settings = settings or get_settings()
        self.clock = clock or self.settings.now
        self.scheduler = RevisionScheduler(store, self.settings, self.clock)

    def _grade(
        self, answers: Sequence[AnswerInput], bookmark_id: str | None = None
    ) -> tuple[list[GradedAnswer], int]:
        """
        Evaluate answers against their stored questions.

        Returns the graded answers in submission order and the number of
        answers skipped because their question no longer exists.
        """
        questions: dict[str, Question] = self.store.get_questions(qid for qid, _ in answers)

        graded = []
        skipped = 0
        for question_id, submitted in answers:
            question = questions.get(question_id)
            if question is None:
                logger.warning(f"Skipping answer for missing question {question_id}")
                skipped += 1
                continue
            if bookmark_id is not None and question.bookmark_id != bookmark_id:
                raise SubmissionValidationError(
                    f"Question {question_id} does not belong to bookmark {bookmark_id}"
                )
            result = check_answer(question, submitted)
            graded.append(
                GradedAnswer(
                    question_id=question.id,
                    question_text=question.question_text,
                    submitted_answer=submitted or "",
                    correct_answer=question.correct_answer,
                    is_correct=result.correct,
                    explanation=question.explanation,
                    bookmark_id=question.bookmark_id,
                )
            )

        if not graded:
            raise SubmissionValidationError("None of the submitted questions exist")
        return graded, skipped

    def _record(self, bookmark_id: str, graded: Sequence[GradedAnswer], time_taken: int, now: datetime):
        """Stage one attempt with its answers and schedule update (caller commits)."""
        score = _score(graded)
        attempt = self.store.add_attempt(
            bookmark_id=bookmark_id,
            score=score,
            total_questions=len(graded),
            time_taken=time_taken,
            attempted_at=now,
            answers=[
                UserAnswer(question_id=g.question_id, submitted_answer=g.submitted_answer, is_correct=g.is_correct)
                for g in graded
            ],
        )
        update = self.scheduler.record_attempt(bookmark_id, score, now=now)
        return attempt, update

    def submit_attempt(
        self, bookmark_id: str, answers: Sequence[AnswerInput], time_taken: int
    ) -> SubmissionResult:
        """
        Grade and record a quiz on one bookmark.

        Raises:
            NotFoundError: unknown bookmark
            SubmissionValidationError: empty answers, negative time, a
                question from another bookmark, or no answerable questions
            StoreFailure: the write failed and was rolled back
        """
        _validate(answers, time_taken)
        self.store.get_bookmark(bookmark_id)
        graded, skipped = self._grade(answers, bookmark_id=bookmark_id)
        now = self.clock()

        with self.store.atomic():
            attempt, update = self._record(bookmark_id, graded, time_taken, now)

        correct = sum(1 for g in graded if g.is_correct)
        logger.info(f"Quiz submitted for bookmark {bookmark_id}: {attempt.score:.2f}%")
        return SubmissionResult(
            attempt_id=attempt.id,
            score=round2(attempt.score),
            correct_count=correct,
            total=len(graded),
            time_taken=time_taken,
            results=graded,
            skipped=skipped,
            next_review_at=update.next_review_at,
        )

    def submit_daily_review(self, answers: Sequence[AnswerInput], time_taken: int) -> DailyReviewResult:
        """
        Grade a daily review whose questions span several bookmarks.

        Each bookmark gets its own attempt, scored from its own answers, and
        its own schedule update. time_taken is split across bookmarks in
        proportion to the number of answers each received.
        """
        _validate(answers, time_taken)
        graded, skipped = self._grade(answers)
        now = self.clock()

        by_bookmark: dict[str, list[GradedAnswer]] = {}
        for g in graded:
            by_bookmark.setdefault(g.bookmark_id, []).append(g)

        attempt_ids = []
        with self.store.atomic():
            for bookmark_id, bookmark_answers in by_bookmark.items():
                share = time_taken * len(bookmark_answers) // len(graded)
                attempt, _ = self._record(bookmark_id, bookmark_answers, share, now)
                attempt_ids.append(attempt.id)

        overall = _score(graded)
        logger.info(f"Daily review completed: {overall:.2f}% across {len(attempt_ids)} bookmarks")
        return DailyReviewResult(
            score=round2(overall),
            correct_count=sum(1 for g in graded if g.is_correct),
            total=len(graded),
            time_taken=time_taken,
            results=graded,
            attempt_ids=attempt_ids,
            skipped=skipped,
        )

    def attempts_for(self, bookmark_id: str) -> list[QuizAttempt]:
        """Attempts on a bookmark, newest first."""
        self.store.get_bookmark(bookmark_id)
        return self.store.list_attempts(bookmark_id=bookmark_id, newest_first=True)

    def get_attempt(self, attempt_id: str) -> QuizAttempt:
        return self.store.get_attempt(attempt_id)
