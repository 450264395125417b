"""Shared pieces of the save-pacer commands."""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine, Iterator
from contextlib import contextmanager
from enum import Enum
from typing import Annotated, TypeVar

import typer
from rich.console import Console
from rich.progress import (
    BarColumn,
    MofNCompleteColumn,
    Progress,
    TextColumn,
    TimeElapsedColumn,
)

from save_pacer.exceptions import SavePacerError
from save_pacer.logging import get_logger
from save_pacer.pacing import ProgressTracker, ProgressUpdate

logger = get_logger(__name__)

# All command output goes through this console so tests can capture it
console = Console()

T = TypeVar("T")


class OutputFormat(str, Enum):
    """How a command prints its result."""

    TEXT = "text"
    JSON = "json"


# Typer options as Annotated aliases (keeps B008 out of every signature)
OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option("--format", "-f", help="Print the result as text or JSON"),
]

DryRunOption = Annotated[
    bool,
    typer.Option("--dry-run", help="Save into memory instead of the database"),
]


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Run a command body on a fresh event loop.

    A failure is printed on the console and turned into exit code 1. Errors
    outside the save-pacer hierarchy are also logged with their traceback at
    DEBUG, visible with ``--verbose``.

    Raises:
        typer.Exit: With code 1 on any failure, or as raised by the command
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        raise
    except SavePacerError as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None
    except Exception as e:
        logger.opt(exception=e).debug("{}: unexpected {}", error_prefix, type(e).__name__)
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


@contextmanager
def progress_bar(tracker: ProgressTracker, description: str) -> Iterator[Progress]:
    """Show a transient bar that follows a ProgressTracker.

    The bar counts saved and discarded items against the tracker's total,
    which grows as items are enqueued.
    """
    with Progress(
        TextColumn("[bold]{task.description}[/bold]"),
        BarColumn(bar_width=40, complete_style="green", finished_style="green"),
        MofNCompleteColumn(),
        TimeElapsedColumn(),
        console=console,
        transient=True,
    ) as bar:
        task = bar.add_task(description, total=tracker.total)

        def _follow(update: ProgressUpdate) -> None:
            bar.update(task, total=update.total, completed=update.completed + update.failed)

        tracker.on_progress(_follow)
        yield bar
