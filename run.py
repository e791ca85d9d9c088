"""Entry-point for the vocabulary lessons application."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer
import uvicorn

from vocab_lessons.bootstrap import initialize_app
from vocab_lessons.logging_utils import configure_logging
from vocab_lessons.services.files import StorageError
from vocab_lessons.services.lessons import LessonStore
from vocab_lessons.services.quiz_export import render_quiz_json
from vocab_lessons.services.quizzes import QuizNotFoundError
from vocab_lessons.web import create_app
from vocab_lessons.web.server import get_max_request_bytes


LOGGER = logging.getLogger("vocab_lessons.cli")


cli = typer.Typer(add_completion=False, help="Vocabulary lessons management commands")


def _prepare_logging(data_root: Path) -> None:
    configure_logging(data_root)


DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000


def _normalize_root_path(root_path: Optional[str]) -> str:
    if root_path is None:
        return ""
    normalized = root_path.strip()
    if not normalized:
        return ""
    if not normalized.startswith("/"):
        normalized = f"/{normalized}"
    return normalized.rstrip("/")


@cli.callback(invoke_without_command=True)
def main(ctx: typer.Context) -> None:
    """Launch the web server when no explicit command is provided."""

    if ctx.invoked_subcommand is None:
        ctx.invoke(serve, host=DEFAULT_HOST, port=DEFAULT_PORT, root_path=None)


@cli.command()
def serve(
    host: str = typer.Option(DEFAULT_HOST, help="Host interface for the web server"),
    port: int = typer.Option(DEFAULT_PORT, help="Port for the web server"),
    root_path: Optional[str] = typer.Option(
        None,
        help="Prefix the application expects when mounted behind a proxy",
        envvar="VOCAB_LESSONS_ROOT_PATH",
    ),
) -> None:
    """Run the lessons API."""

    app_config = initialize_app()
    _prepare_logging(app_config.data_root)

    store = LessonStore(app_config)
    normalized_root = _normalize_root_path(root_path)
    max_request_bytes = get_max_request_bytes()
    app = create_app(
        store,
        config=app_config,
        root_path=normalized_root,
        max_request_bytes=max_request_bytes,
    )
    if max_request_bytes > 0:
        LOGGER.info("Limiting request bodies to %d bytes", max_request_bytes)

    server_config = uvicorn.Config(
        app,
        host=host,
        port=port,
        log_config=None,
        root_path=normalized_root,
    )
    server = uvicorn.Server(server_config)
    app.state.server = server
    server.run()


@cli.command("lessons")
def list_lessons() -> None:
    """Print the stored lessons and whether each has a quiz."""

    config = initialize_app()
    store = LessonStore(config)
    try:
        lessons = store.list_lessons()
    except StorageError as error:
        typer.echo(f"Could not read lessons: {error}", err=True)
        raise typer.Exit(code=1) from error

    typer.echo("Vocabulary Lessons")
    typer.echo("=" * 40)
    if not lessons:
        typer.echo("(no lessons yet)")
        return
    for entry in lessons:
        marker = "quiz" if entry.has_quiz else "no quiz"
        typer.echo(f"{entry.id}  {entry.title}  [{len(entry.flashcards)} flashcards, {marker}]")


@cli.command("check-quizzes")
def check_quizzes() -> None:
    """Verify that every stored quiz answer matches one of its option labels."""

    config = initialize_app()
    store = LessonStore(config)
    try:
        report = store.check_quizzes()
    except StorageError as error:
        typer.echo(f"Could not read quizzes: {error}", err=True)
        raise typer.Exit(code=1) from error

    if not report:
        typer.echo("All quizzes are consistent.")
        return
    for lesson_id, issues in report.items():
        typer.echo(f"Lesson {lesson_id}:")
        for issue in issues:
            typer.echo(f"  - {issue.describe()}")
    raise typer.Exit(code=1)


@cli.command("export-quiz")
def export_quiz(
    lesson_id: str = typer.Argument(..., help="Identifier of the lesson to export"),
    converted: bool = typer.Option(
        False,
        "--converted",
        help="Fold hints into the question text and map option labels to text.",
    ),
) -> None:
    """Print a lesson's quiz as JSON."""

    config = initialize_app()
    store = LessonStore(config)
    try:
        questions = store.load_quiz(lesson_id)
    except QuizNotFoundError as error:
        typer.echo(str(error), err=True)
        raise typer.Exit(code=1) from error
    except StorageError as error:
        typer.echo(f"Could not read quiz: {error}", err=True)
        raise typer.Exit(code=1) from error
    typer.echo(render_quiz_json(questions, converted=converted))


if __name__ == "__main__":
    cli()
