"""
Typer CLI for bookmark-recall.

Commands:
    recall init                       - Create database tables
    recall add-category NAME          - Add a category
    recall add-bookmark TITLE URL     - Add a bookmark
    recall import-questions ID FILE   - Load generated questions for a bookmark
    recall quiz ID                    - Take a quiz on one bookmark
    recall history ID                 - List past attempts on a bookmark
    recall due                        - Bookmarks due for review
    recall weakest                    - Weakest bookmarks by recent scores
    recall daily [--take]             - Today's quick review
    recall reviews                    - Review schedule overview
    recall stats                      - Dashboard headline numbers
    recall trend                      - Daily performance series
    recall category [ID]              - Category analytics
    recall bookmark ID                - Bookmark analytics and insights
    recall insights                   - Rule-based study insights

Usage:
    recall --help
    recall --log-level DEBUG stats
    recall insights --category <id>
"""

from __future__ import annotations

import json
import sys
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path
from typing import Annotated, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from sqlalchemy.exc import SQLAlchemyError

from recall import __version__
from recall.analytics import AnalyticsAggregator, Insight, InsightEngine
from recall.config import get_settings
from recall.db import ContentStore, init_db, session_scope
from recall.db.models import Question, QuestionType
from recall.exceptions import RecallError
from recall.quiz import QuizService, normalize_questions
from recall.study import RevisionScheduler

app = typer.Typer(
    name="recall",
    help="Bookmark Recall - spaced-repetition quizzes and learning analytics for your bookmarks",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

PRIORITY_STYLES = {
    "critical": "bold red",
    "warning": "yellow",
    "info": "cyan",
    "positive": "green",
}


def _configure_logging(level: str) -> None:
    """Install the stderr sink (and the file sink when log_file is set)."""
    settings = get_settings()
    logger.remove()
    logger.add(
        sys.stderr,
        level=level,
        format="<dim>{time:HH:mm:ss}</dim> | <level>{level: <8}</level> | {message}",
    )
    if settings.log_file:
        logger.add(settings.log_file, level=level, rotation="10 MB", retention=5)


@app.callback()
def main_callback(
    log_level: Annotated[
        Optional[str], typer.Option("--log-level", "-l", help="DEBUG, INFO, WARNING or ERROR")
    ] = None,
) -> None:
    """
    Bookmark Recall.

    Quiz yourself on saved bookmarks, get reviews scheduled by score, and see
    where your retention is slipping.
    """
    _configure_logging((log_level or get_settings().log_level).upper())


@contextmanager
def _store() -> Generator[ContentStore, None, None]:
    """One session per command; core errors become a red message and exit code 1."""
    try:
        with session_scope() as session:
            yield ContentStore(session)
    except RecallError as e:
        logger.debug(f"Command failed: {e!r}")
        console.print(f"[red]✗ {e}[/red]")
        raise typer.Exit(code=1)


def _fmt_score(value: float | None) -> str:
    if value is None:
        return "[dim]-[/dim]"
    color = "green" if value >= 80 else "yellow" if value >= 50 else "red"
    return f"[{color}]{value:.1f}%[/{color}]"


def _fmt_time(value) -> str:
    return value.strftime("%Y-%m-%d %H:%M") if value else "[dim]never[/dim]"


def _print_insights(insights: list[Insight]) -> None:
    if not insights:
        console.print("[dim]No insights yet.[/dim]")
        return
    for insight in insights:
        style = PRIORITY_STYLES[insight.priority.value]
        console.print(f"[{style}]● {insight.priority.value.upper():<8}[/{style}] {insight.message}")


# =============================================================================
# Content Commands
# =============================================================================


@app.command()
def init() -> None:
    """Create database tables."""
    try:
        init_db()
    except SQLAlchemyError as e:
        console.print(f"[red]✗ Could not initialize database: {e}[/red]")
        raise typer.Exit(code=1)
    console.print(f"[green]✓[/green] Database ready at {get_settings().database_url}")


@app.command("add-category")
def add_category(
    name: Annotated[str, typer.Argument(help="Category name")],
    color: Annotated[Optional[str], typer.Option("--color", help="Display color")] = None,
) -> None:
    """Add a category."""
    with _store() as store:
        with store.atomic():
            category = store.add_category(name, color)
        console.print(f"[green]✓[/green] Category [bold]{category.name}[/bold] ({category.id})")


@app.command("add-bookmark")
def add_bookmark(
    title: Annotated[str, typer.Argument(help="Bookmark title")],
    url: Annotated[str, typer.Argument(help="Bookmark URL")],
    category_id: Annotated[Optional[str], typer.Option("--category", "-c", help="Category id")] = None,
    tags: Annotated[Optional[list[str]], typer.Option("--tag", "-t", help="Tag (repeatable)")] = None,
) -> None:
    """Add a bookmark."""
    with _store() as store:
        if category_id:
            store.get_category(category_id)
        with store.atomic():
            bookmark = store.add_bookmark(title, url, category_id=category_id, tags=tags or ())
        console.print(f"[green]✓[/green] Bookmark [bold]{bookmark.title}[/bold] ({bookmark.id})")


@app.command("import-questions")
def import_questions(
    bookmark_id: Annotated[str, typer.Argument(help="Bookmark id")],
    path: Annotated[Path, typer.Argument(help="JSON file of generated questions", exists=True, dir_okay=False)],
) -> None:
    """
    Replace a bookmark's questions with a generated set.

    Items that fail validation are listed and left out.
    """
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        console.print(f"[red]✗ {path} is not valid JSON: {e}[/red]")
        raise typer.Exit(code=1)

    batch = normalize_questions(raw)
    for item in batch.rejected:
        console.print(f"[yellow]⚠[/yellow] Item {item.index} rejected: {item.reason}")
    if not batch.questions:
        console.print("[red]✗ No valid questions to import[/red]")
        raise typer.Exit(code=1)

    with _store() as store:
        bookmark = store.get_bookmark(bookmark_id)
        with store.atomic():
            saved = store.replace_questions(bookmark, [q.to_model() for q in batch.questions])
        console.print(f"[green]✓[/green] Imported {len(saved)} questions for [bold]{bookmark.title}[/bold]")


@app.command()
def delete(
    bookmark_id: Annotated[str, typer.Argument(help="Bookmark id")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
) -> None:
    """Delete a bookmark with its questions and quiz history."""
    with _store() as store:
        bookmark = store.get_bookmark(bookmark_id)
        if not yes and not typer.confirm(
            f"Delete '{bookmark.title}' and {len(bookmark.attempts)} attempts?"
        ):
            raise typer.Exit()
        title = bookmark.title
        with store.atomic():
            store.delete_bookmark(bookmark_id)
        console.print(f"[green]✓[/green] Deleted [bold]{title}[/bold]")


# =============================================================================
# Quiz Commands
# =============================================================================


def _ask(question: Question, number: int) -> str:
    """Prompt for one answer; mcq accepts an option number or its text."""
    console.print(f"\n[bold cyan]Q{number}.[/bold cyan] {question.question_text}")
    options = question.options or []
    if question.type == QuestionType.MCQ.value:
        for i, option in enumerate(options, 1):
            console.print(f"  [dim]{i}.[/dim] {option}")
    answer = typer.prompt("Answer", default="", show_default=False)
    if question.type == QuestionType.MCQ.value and answer.strip().isdigit():
        index = int(answer.strip()) - 1
        if 0 <= index < len(options):
            return options[index]
    return answer


@app.command()
def quiz(bookmark_id: Annotated[str, typer.Argument(help="Bookmark id")]) -> None:
    """Take a quiz on one bookmark."""
    with _store() as store:
        bookmark = store.get_bookmark(bookmark_id)
        questions = sorted(bookmark.questions, key=lambda q: q.position)
        if not questions:
            console.print(f"[yellow]No questions for {bookmark.title}. Import some first.[/yellow]")
            raise typer.Exit(code=1)

        console.print(Panel(f"[bold]{bookmark.title}[/bold]\n{len(questions)} questions", border_style="cyan"))
        started = time.monotonic()
        answers = [(q.id, _ask(q, i)) for i, q in enumerate(questions, 1)]
        elapsed = int(time.monotonic() - started)

        result = QuizService(store).submit_attempt(bookmark.id, answers, elapsed)

        console.print()
        for graded in result.results:
            mark = "[green]✓[/green]" if graded.is_correct else "[red]✗[/red]"
            line = f"{mark} {graded.question_text}"
            if not graded.is_correct:
                line += f"\n    [dim]answer:[/dim] {graded.correct_answer}"
            console.print(line)
        console.print(
            f"\nScore: {_fmt_score(result.score)} ({result.correct_count}/{result.total}) "
            f"- next review {_fmt_time(result.next_review_at)}"
        )


@app.command()
def history(bookmark_id: Annotated[str, typer.Argument(help="Bookmark id")]) -> None:
    """List past attempts on a bookmark, newest first."""
    with _store() as store:
        attempts = QuizService(store).attempts_for(bookmark_id)
        table = Table(title="Attempts")
        table.add_column("When")
        table.add_column("Score", justify="right")
        table.add_column("Correct", justify="right")
        table.add_column("Time", justify="right")
        table.add_column("Id", style="dim")
        for attempt in attempts:
            table.add_row(
                _fmt_time(attempt.attempted_at),
                _fmt_score(attempt.score),
                f"{attempt.correct_count}/{attempt.total_questions}",
                f"{attempt.time_taken}s",
                attempt.id,
            )
        console.print(table)


# =============================================================================
# Review Commands
# =============================================================================


@app.command()
def due(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum bookmarks")] = 10,
) -> None:
    """Bookmarks due for review, earliest first."""
    with _store() as store:
        bookmarks = RevisionScheduler(store).due_bookmarks(limit)
        if not bookmarks:
            console.print("[green]Nothing due. You're all caught up![/green]")
            return
        table = Table(title=f"Due for review ({len(bookmarks)})")
        table.add_column("Title", style="bold")
        table.add_column("Category")
        table.add_column("Next review")
        table.add_column("Id", style="dim")
        for bookmark in bookmarks:
            table.add_row(
                bookmark.title,
                bookmark.category_name or "-",
                _fmt_time(bookmark.next_review_at),
                bookmark.id,
            )
        console.print(table)


@app.command()
def weakest(
    limit: Annotated[int, typer.Option("--limit", "-n", help="Maximum bookmarks")] = 10,
) -> None:
    """Bookmarks with the lowest recent quiz scores."""
    with _store() as store:
        ranked = RevisionScheduler(store).weakest_bookmarks(limit)
        if not ranked:
            console.print("[dim]No quiz attempts yet.[/dim]")
            return
        table = Table(title="Weakest bookmarks")
        table.add_column("Title", style="bold")
        table.add_column("Category")
        table.add_column("Recent avg", justify="right")
        table.add_column("Attempts", justify="right")
        for item in ranked:
            table.add_row(
                item.bookmark.title,
                item.bookmark.category_name or "-",
                _fmt_score(item.avg_recent_score),
                str(item.attempt_count),
            )
        console.print(table)


@app.command()
def daily(
    take: Annotated[bool, typer.Option("--take", help="Answer the review now")] = False,
) -> None:
    """Today's quick review: due bookmarks first, then weak ones."""
    with _store() as store:
        review = RevisionScheduler(store).daily_review_set()
        if not review.bookmarks:
            console.print("[green]No review needed today.[/green]")
            return

        titles = {b.id: b.title for b in review.bookmarks}
        table = Table(title=f"Daily review ({len(review.bookmarks)} of {review.total_due})")
        table.add_column("Bookmark", style="bold")
        table.add_column("Type")
        table.add_column("Question")
        for question in review.questions:
            table.add_row(titles.get(question.bookmark_id, "-"), question.type, question.question_text)
        console.print(table)

        if not take or not review.questions:
            return

        started = time.monotonic()
        answers = [(q.id, _ask(q, i)) for i, q in enumerate(review.questions, 1)]
        elapsed = int(time.monotonic() - started)
        result = QuizService(store).submit_daily_review(answers, elapsed)
        console.print(
            f"\nScore: {_fmt_score(result.score)} ({result.correct_count}/{result.total}) "
            f"across {result.bookmarks_reviewed} bookmarks"
        )


@app.command()
def reviews() -> None:
    """Review schedule overview."""
    with _store() as store:
        stats = RevisionScheduler(store).review_stats()
        console.print(
            Panel(
                f"Due today:          [bold]{stats.due_today}[/bold]\n"
                f"Overdue:            [bold red]{stats.overdue}[/bold red]\n"
                f"Never reviewed:     [bold]{stats.never_reviewed}[/bold]\n"
                f"Reviewed this week: [bold green]{stats.reviewed_this_week}[/bold green]",
                title="Reviews",
                border_style="cyan",
            )
        )


# =============================================================================
# Analytics Commands
# =============================================================================


@app.command()
def stats(
    as_json: Annotated[bool, typer.Option("--json", help="Print raw JSON")] = False,
) -> None:
    """Dashboard headline numbers."""
    with _store() as store:
        data = AnalyticsAggregator(store).global_analytics()
        if as_json:
            console.print_json(data=data.to_dict())
            return

        weakest_line = "[dim]-[/dim]"
        if data.weakest_category:
            weakest_line = f"{data.weakest_category.name} ({_fmt_score(data.weakest_category.avg_score)})"
        trend = data.improvement_trend
        trend_line = f"[green]+{trend:.1f}[/green]" if trend > 0 else f"[red]{trend:.1f}[/red]" if trend < 0 else "0.0"

        console.print(
            Panel(
                f"Bookmarks:          {data.total_bookmarks}\n"
                f"Categories:         {data.total_categories}\n"
                f"Attempts:           {data.total_attempts}\n"
                f"Average score:      {_fmt_score(data.global_avg_score)}\n"
                f"Weakest category:   {weakest_line}\n"
                f"Due reviews:        {data.due_reviews_count}\n"
                f"Week over week:     {trend_line} "
                f"[dim]({data.this_week_attempts} vs {data.last_week_attempts} attempts)[/dim]\n"
                f"Review compliance:  {data.review_compliance_rate:.1f}%",
                title="Recall Stats",
                border_style="cyan",
            )
        )


@app.command()
def trend(
    days: Annotated[int, typer.Option("--days", "-d", help="Days in the series")] = 30,
) -> None:
    """Average score per day, oldest first."""
    with _store() as store:
        series = AnalyticsAggregator(store).performance_trend(days)
        table = Table(title=f"Performance, last {days} days")
        table.add_column("Date")
        table.add_column("Avg score", justify="right")
        table.add_column("Attempts", justify="right")
        for day in series:
            table.add_row(day.date.isoformat(), _fmt_score(day.avg_score), str(day.attempts))
        console.print(table)


@app.command()
def category(
    category_id: Annotated[Optional[str], typer.Argument(help="Category id (omit for all)")] = None,
) -> None:
    """Category analytics; without an id, every category weakest first."""
    with _store() as store:
        aggregator = AnalyticsAggregator(store)
        if category_id is None:
            table = Table(title="Categories")
            table.add_column("Name", style="bold")
            table.add_column("Bookmarks", justify="right")
            table.add_column("Attempts", justify="right")
            table.add_column("Avg score", justify="right")
            table.add_column("Weak", justify="right")
            table.add_column("Id", style="dim")
            for item in aggregator.all_category_analytics():
                table.add_row(
                    item.name,
                    str(item.total_bookmarks),
                    str(item.total_attempts),
                    _fmt_score(item.avg_score),
                    str(len(item.weak_bookmarks)),
                    item.id,
                )
            console.print(table)
            return

        data = aggregator.category_analytics(category_id)
        console.print(
            Panel(
                f"Bookmarks: {data.total_bookmarks}   Attempts: {data.total_attempts}   "
                f"Average: {_fmt_score(data.avg_score)}",
                title=data.name,
                border_style="cyan",
            )
        )
        for weak in data.weak_bookmarks:
            console.print(f"  [red]weak[/red] {weak['title']} ({_fmt_score(weak['avg_score'])})")
        _print_insights(InsightEngine(store).category_insights(category_id))


@app.command()
def bookmark(bookmark_id: Annotated[str, typer.Argument(help="Bookmark id")]) -> None:
    """Bookmark analytics and insights."""
    with _store() as store:
        data = AnalyticsAggregator(store).bookmark_analytics(bookmark_id)
        days_since = "-" if data.days_since_last_review is None else f"{data.days_since_last_review}d ago"
        console.print(
            Panel(
                f"Category:      {data.category or '-'}\n"
                f"Attempts:      {data.total_attempts}\n"
                f"Average:       {_fmt_score(data.avg_score)}\n"
                f"Questions:     {data.total_questions}\n"
                f"Last review:   {_fmt_time(data.last_reviewed_at)} ({days_since})\n"
                f"Next review:   {_fmt_time(data.next_review_at)}",
                title=data.title,
                border_style="cyan",
            )
        )
        if data.score_progression:
            progression = " → ".join(f"{p.score:.0f}" for p in data.score_progression[-10:])
            console.print(f"Progression: {progression}")
        for stat in data.weak_questions:
            console.print(f"  [red]{stat.correct_rate:.0%}[/red] {stat.question_text}")
        _print_insights(InsightEngine(store).bookmark_insights(bookmark_id))


@app.command()
def insights(
    category_id: Annotated[Optional[str], typer.Option("--category", "-c", help="Scope to a category")] = None,
    bookmark_id: Annotated[Optional[str], typer.Option("--bookmark", "-b", help="Scope to a bookmark")] = None,
    as_json: Annotated[bool, typer.Option("--json", help="Print raw JSON")] = False,
) -> None:
    """Rule-based study insights, most urgent first."""
    if category_id and bookmark_id:
        console.print("[red]✗ Use either --category or --bookmark, not both[/red]")
        raise typer.Exit(code=1)

    with _store() as store:
        engine = InsightEngine(store)
        if category_id:
            found = engine.category_insights(category_id)
        elif bookmark_id:
            found = engine.bookmark_insights(bookmark_id)
        else:
            found = engine.insights()

        if as_json:
            console.print_json(data=[i.to_dict() for i in found])
            return
        _print_insights(found)


@app.command("version")
def show_version() -> None:
    """Show version information."""
    console.print(f"[bold]bookmark-recall[/bold] v{__version__}")


def run() -> None:
    """Entry point for the CLI."""
    app()


if __name__ == "__main__":
    run()
