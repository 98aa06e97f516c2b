"""
Unit tests for answer evaluators.

Tests the check() method of each evaluator and the registry lookups.
"""

from dataclasses import dataclass

import pytest

from recall.quiz.evaluators import HANDLERS, QuestionType, check_answer, evaluate_answer, get_evaluator
from recall.quiz.evaluators.short_answer import key_terms, term_coverage


@dataclass
class FakeQuestion:
    type: str
    correct_answer: str
    explanation: str | None = None


class TestEvaluatorRegistry:
    """Test the evaluator registry."""

    def test_all_types_registered(self):
        """Every question type should have an evaluator."""
        assert set(HANDLERS) == set(QuestionType)

    def test_get_evaluator_by_string(self):
        """Should get evaluator by string type name, case-insensitively."""
        assert get_evaluator("mcq") is not None
        assert get_evaluator("FLASHCARD") is not None

    def test_short_and_scenario_share_evaluator(self):
        """Scenario questions are graded like short answers."""
        assert get_evaluator(QuestionType.SHORT) is get_evaluator(QuestionType.SCENARIO)

    def test_get_evaluator_invalid_type(self):
        """Should return None for invalid type."""
        assert get_evaluator("true_false") is None

    def test_unknown_type_is_incorrect(self):
        """Unsupported types never grade as correct."""
        question = FakeQuestion(type="essay", correct_answer="anything")
        result = check_answer(question, "anything")

        assert result.correct is False
        assert "Unsupported" in result.feedback
        assert evaluate_answer(question, "anything") is False


class TestMCQEvaluator:
    """Test the MCQ evaluator."""

    @pytest.fixture
    def question(self):
        return FakeQuestion(type="mcq", correct_answer="Paris", explanation="Capital of France")

    @pytest.mark.parametrize("answer", ["Paris", "paris", "  PARIS  ", "\tParis\n"])
    def test_case_and_whitespace_insensitive(self, question, answer):
        """Case and surrounding whitespace do not matter."""
        assert evaluate_answer(question, answer) is True

    def test_incorrect_answer(self, question):
        """Should mark a different option incorrect and report the right one."""
        result = check_answer(question, "London")

        assert result.correct is False
        assert result.correct_answer == "Paris"
        assert result.explanation == "Capital of France"

    def test_partial_match_is_incorrect(self, question):
        """Equality only, no containment."""
        assert evaluate_answer(question, "Par") is False

    @pytest.mark.parametrize("answer", ["", "   ", None])
    def test_empty_answer_is_incorrect(self, question, answer):
        assert evaluate_answer(question, answer) is False


class TestShortAnswerEvaluator:
    """Test short answer and scenario grading."""

    def test_key_terms_skip_short_tokens(self):
        """Only tokens longer than three characters count."""
        assert key_terms("The TCP protocol uses a three-way handshake") == [
            "protocol", "uses", "three-way", "handshake",
        ]

    def test_half_of_key_terms_is_enough(self):
        """Matching exactly half the key terms is correct."""
        question = FakeQuestion(type="short", correct_answer="encryption protects data integrity")
        # key terms: encryption, protects, data, integrity -> 2 of 4 matched
        assert evaluate_answer(question, "it is encryption for integrity") is True

    def test_below_half_is_incorrect(self):
        question = FakeQuestion(type="short", correct_answer="encryption protects data integrity")
        assert evaluate_answer(question, "something about encryption") is False

    def test_substring_matches_both_ways(self):
        """A term inside a token, or a token inside a term, both match."""
        assert term_coverage("normalization", "denormalizations") == 1.0
        assert term_coverage("normalization", "normal") == 1.0

    def test_scenario_uses_same_rule(self):
        question = FakeQuestion(type="scenario", correct_answer="rollback the deployment immediately")
        assert evaluate_answer(question, "I would rollback the deployment") is True

    def test_no_key_terms_is_incorrect(self):
        """A correct answer made only of short tokens cannot be graded."""
        question = FakeQuestion(type="short", correct_answer="yes it is")
        result = check_answer(question, "yes it is")

        assert term_coverage("yes it is", "yes it is") is None
        assert result.correct is False

    def test_empty_answer_is_incorrect(self):
        question = FakeQuestion(type="short", correct_answer="encryption protects data integrity")
        assert evaluate_answer(question, "") is False


class TestFlashcardEvaluator:
    """Test lenient flashcard grading."""

    @pytest.fixture
    def question(self):
        return FakeQuestion(type="flashcard", correct_answer="Mitochondria")

    def test_exact_answer(self, question):
        assert evaluate_answer(question, "mitochondria") is True

    def test_answer_contained_in_card(self, question):
        """A fragment of the card counts as recall."""
        assert evaluate_answer(question, "mito") is True

    def test_card_contained_in_answer(self, question):
        assert evaluate_answer(question, "the mitochondria organelle") is True

    def test_unrelated_answer(self, question):
        assert evaluate_answer(question, "ribosome") is False

    @pytest.mark.parametrize("answer", ["", "  ", None])
    def test_empty_answer_is_incorrect(self, question, answer):
        """An empty answer is contained in every card and must not pass."""
        result = check_answer(question, answer)

        assert result.correct is False
        assert result.feedback == "Keep practicing"

    def test_deterministic(self, question):
        """Same input, same result."""
        results = {check_answer(question, "mito").correct for _ in range(5)}
        assert results == {True}
