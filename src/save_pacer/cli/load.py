"""Load command: throttle JSON-lines records into the database."""

from __future__ import annotations

import json
from contextlib import AbstractContextManager, nullcontext
from pathlib import Path
from typing import Annotated, Any

import typer
from pydantic import ValidationError

from save_pacer.backends import DatabaseBackend, InMemoryBackend, SaveBackend
from save_pacer.config import get_settings
from save_pacer.db import create_tables, dispose_engine
from save_pacer.items import Record
from save_pacer.logging import get_logger
from save_pacer.pacing import ProgressTracker, RateLimiter

from .common import (
    DryRunOption,
    OutputFormat,
    OutputFormatOption,
    console,
    progress_bar,
    run_async_command,
)

logger = get_logger(__name__)


def read_records(path: Path) -> list[Record]:
    """Parse a JSON-lines file into records, skipping blank lines.

    Raises:
        typer.BadParameter: If a line is not a valid record
    """
    records: list[Record] = []
    with path.open(encoding="utf-8") as handle:
        for line_number, line in enumerate(handle, start=1):
            if not line.strip():
                continue
            try:
                records.append(Record.model_validate_json(line))
            except ValidationError as e:
                raise typer.BadParameter(
                    f"{path.name}:{line_number}: invalid record ({e.error_count()} errors)"
                ) from None
    return records


def load(
    path: Annotated[
        Path,
        typer.Argument(
            exists=True,
            dir_okay=False,
            readable=True,
            help="JSON-lines file with one record per line",
        ),
    ],
    rate: Annotated[
        int | None,
        typer.Option("--rate", "-r", min=1, help="Records released per interval"),
    ] = None,
    interval: Annotated[
        float | None,
        typer.Option("--interval", min=0.0, help="Seconds between releases"),
    ] = None,
    batch_size: Annotated[
        int | None,
        typer.Option("--batch-size", "-b", min=1, help="Records per save request"),
    ] = None,
    dry_run: DryRunOption = False,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """Save every record in a JSON-lines file at a limited rate.

    Examples:
        save-pacer load records.jsonl
        save-pacer load records.jsonl --rate 5 --interval 1
        save-pacer load records.jsonl --dry-run --format json
    """
    try:
        records = read_records(path)
    except typer.BadParameter as e:
        console.print(f"[red]Error:[/red] {e}")
        raise typer.Exit(1) from None

    overrides: dict[str, Any] = {}
    if rate is not None:
        overrides["max_rate"] = rate
    if interval is not None:
        overrides["interval_seconds"] = interval
    if batch_size is not None:
        overrides["max_batch_size"] = batch_size
    config = get_settings().pacing.model_copy(update=overrides)

    async def _load() -> dict[str, Any]:
        backend: SaveBackend
        if dry_run:
            backend = InMemoryBackend()
        else:
            await create_tables()
            backend = DatabaseBackend()

        progress = ProgressTracker(name=f"load {path.name}")
        limiter = RateLimiter(config.max_rate, backend, config=config, progress=progress)
        display: AbstractContextManager[object] = (
            progress_bar(progress, f"Saving {path.name}")
            if output_format == OutputFormat.TEXT
            else nullcontext()
        )

        try:
            with display, logger.contextualize(source=path.name):
                limiter.enqueue_all(records)
                await limiter.finalize()
        finally:
            if not dry_run:
                await dispose_engine()

        update = progress.get_update()
        return {
            "total": update.total,
            "saved": update.completed,
            "ticks": limiter.tick_count,
            "max_rate": config.max_rate,
            "duration_seconds": update.elapsed_seconds,
            "dry_run": dry_run,
        }

    if output_format == OutputFormat.TEXT:
        console.print(
            f"[dim]Loading {len(records)} records from {path.name} "
            f"({config.max_rate} per {config.interval_seconds:g}s)...[/dim]"
        )

    result = run_async_command(_load(), error_prefix="Load failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps(result))
        return

    prefix = "[dim](dry-run)[/dim] " if dry_run else ""
    console.print(f"{prefix}[bold]Load Complete[/bold]")
    console.print()
    console.print(f"  [green]Saved:[/green]    {result['saved']}")
    console.print(f"  Ticks:    {result['ticks']}")
    console.print(f"  Duration: {result['duration_seconds']:.1f}s")
