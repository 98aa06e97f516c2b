"""
Smoke Tests for CLI Commands.

These tests verify that CLI commands run without errors and produce output.
They don't validate correctness deeply - just that commands work against a
throwaway SQLite database.

Usage:
    pytest tests/smoke/test_cli_commands.py -v
    pytest tests/smoke/test_cli_commands.py -v -m smoke
"""

import json
import sys

import pytest
from loguru import logger
from typer.testing import CliRunner

from recall.cli.main import app
from recall.config import get_settings
from recall.db import ContentStore, database, init_db, session_scope
from recall.db.models import Question
from recall.quiz import QuizService

# Mark all tests in this module as smoke tests
pytestmark = pytest.mark.smoke

runner = CliRunner()


@pytest.fixture
def cli_db(tmp_path, monkeypatch):
    """Point settings and the lazy engine at a fresh database file."""
    monkeypatch.setenv("RECALL_DATABASE_URL", f"sqlite:///{tmp_path / 'recall.db'}")
    monkeypatch.delenv("RECALL_LOG_FILE", raising=False)
    get_settings.cache_clear()
    monkeypatch.setattr(database, "_engine", None)
    monkeypatch.setattr(database, "_SessionLocal", None)
    init_db()
    yield tmp_path
    database.get_engine().dispose()
    get_settings.cache_clear()


@pytest.fixture(autouse=True)
def restore_logger():
    """The CLI callback replaces loguru sinks with ones bound to the runner streams."""
    yield
    logger.remove()
    logger.add(sys.stderr)


@pytest.fixture
def seeded(cli_db):
    """One category, one bookmark with a single mcq question, one attempt."""
    with session_scope() as session:
        store = ContentStore(session)
        category = store.add_category("Geography")
        bookmark = store.add_bookmark("Capitals", "https://example.com/capitals", category_id=category.id)
        question = Question(
            type="mcq",
            question_text="Capital of France?",
            options=["Paris", "London"],
            correct_answer="Paris",
        )
        store.replace_questions(bookmark, [question])
        ids = {"category": category.id, "bookmark": bookmark.id, "question": question.id}

    with session_scope() as session:
        QuizService(ContentStore(session)).submit_attempt(ids["bookmark"], [(ids["question"], "London")], 12)
    return ids


def invoke(*args, **kwargs):
    return runner.invoke(app, list(args), **kwargs)


class TestCLIHelp:
    """Test that help commands work."""

    def test_main_help(self):
        """Main help should list the commands."""
        result = invoke("--help")

        assert result.exit_code == 0, result.output
        for command in ("due", "weakest", "daily", "stats", "insights"):
            assert command in result.output

    def test_version(self):
        result = invoke("version")

        assert result.exit_code == 0
        assert "bookmark-recall" in result.output


class TestCLIEmptyDatabase:
    def test_init(self, cli_db):
        result = invoke("init")

        assert result.exit_code == 0, result.output
        assert "Database ready" in result.output

    def test_stats(self, cli_db):
        result = invoke("stats")

        assert result.exit_code == 0, result.output
        assert "Recall Stats" in result.output

    def test_insights_empty(self, cli_db):
        result = invoke("insights")

        assert result.exit_code == 0, result.output
        assert "No insights yet" in result.output

    def test_daily_empty(self, cli_db):
        result = invoke("daily")

        assert result.exit_code == 0
        assert "No review needed" in result.output


class TestCLIWithData:
    def test_stats_json(self, seeded):
        result = invoke("stats", "--json")

        assert result.exit_code == 0, result.output
        data = json.loads(result.stdout)
        assert data["total_attempts"] == 1
        assert data["weakest_category"]["name"] == "Geography"

    @pytest.mark.parametrize(
        "command",
        [
            ["due"],
            ["weakest"],
            ["daily"],
            ["reviews"],
            ["trend", "--days", "7"],
            ["category"],
            ["insights"],
        ],
    )
    def test_read_commands_run(self, seeded, command):
        result = invoke(*command)

        assert result.exit_code == 0, result.output

    def test_category_detail(self, seeded):
        result = invoke("category", seeded["category"])

        assert result.exit_code == 0, result.output
        assert "Geography" in result.output

    def test_bookmark_detail(self, seeded):
        result = invoke("bookmark", seeded["bookmark"])

        assert result.exit_code == 0, result.output
        assert "Capitals" in result.output

    def test_scoped_insights_json(self, seeded):
        result = invoke("insights", "--bookmark", seeded["bookmark"], "--json")

        assert result.exit_code == 0, result.output
        assert isinstance(json.loads(result.stdout), list)

    def test_quiz_by_option_number(self, seeded):
        """Answering '1' picks the first option."""
        result = invoke("quiz", seeded["bookmark"], input="1\n")

        assert result.exit_code == 0, result.output
        assert "100.0%" in result.output

    def test_history(self, seeded):
        result = invoke("history", seeded["bookmark"])

        assert result.exit_code == 0, result.output
        assert "0/1" in result.output


class TestCLIContent:
    def test_add_and_import(self, cli_db, tmp_path):
        result = invoke("add-bookmark", "Cells", "https://example.com/cells")
        assert result.exit_code == 0, result.output

        with session_scope() as session:
            bookmark_id = ContentStore(session).list_bookmarks()[0].id

        path = tmp_path / "questions.json"
        path.write_text(json.dumps({
            "questions": [
                {"type": "flashcard", "question": "Powerhouse?", "answer": "Mitochondria"},
                {"type": "mcq", "question": "Broken", "options": ["a"], "answer": "a"},
            ]
        }))

        result = invoke("import-questions", bookmark_id, str(path))

        assert result.exit_code == 0, result.output
        assert "Imported 1 questions" in result.output
        assert "rejected" in result.output

    def test_delete_bookmark(self, seeded):
        result = invoke("delete", seeded["bookmark"], "--yes")

        assert result.exit_code == 0, result.output
        assert "Deleted" in result.output
        with session_scope() as session:
            store = ContentStore(session)
            assert store.list_bookmarks() == []
            assert store.list_attempts() == []

    def test_delete_declined_keeps_bookmark(self, seeded):
        result = invoke("delete", seeded["bookmark"], input="n\n")

        assert result.exit_code == 0, result.output
        with session_scope() as session:
            assert len(ContentStore(session).list_bookmarks()) == 1

    def test_delete_unknown_bookmark(self, cli_db):
        result = invoke("delete", "does-not-exist", "--yes")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_add_category(self, cli_db):
        result = invoke("add-category", "Physics")

        assert result.exit_code == 0, result.output
        assert "Physics" in result.output


class TestCLIErrors:
    def test_unknown_bookmark_exits_nonzero(self, cli_db):
        """Core errors become a red message and exit code 1."""
        result = invoke("bookmark", "does-not-exist")

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_unknown_category_for_insights(self, cli_db):
        result = invoke("insights", "--category", "does-not-exist")

        assert result.exit_code == 1

    def test_conflicting_scopes(self, cli_db):
        result = invoke("insights", "--category", "a", "--bookmark", "b")

        assert result.exit_code == 1
