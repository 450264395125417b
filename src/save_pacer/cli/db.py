"""Database commands: create tables and list stored records."""

from __future__ import annotations

import json
from typing import Annotated

import typer
from rich.table import Table

from save_pacer.db import RecordRepository, create_tables, dispose_engine, get_session
from save_pacer.items import RecordRead

from .common import OutputFormat, OutputFormatOption, console, run_async_command

app = typer.Typer(help="Inspect the record database")


@app.command("init")
def init_db() -> None:
    """Create the record tables if they do not exist."""

    async def _init() -> None:
        try:
            await create_tables()
        finally:
            await dispose_engine()

    run_async_command(_init(), error_prefix="Init failed")
    console.print("[green]Database ready.[/green]")


@app.command("list")
def list_records(
    limit: Annotated[
        int | None,
        typer.Option("--limit", "-n", min=1, help="Maximum records to show"),
    ] = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
) -> None:
    """List stored records in save order."""

    async def _list() -> list[RecordRead]:
        try:
            await create_tables()
            async with get_session() as session:
                records = await RecordRepository(session).get_all(limit=limit)
                return RecordRead.from_orm_list(records)
        finally:
            await dispose_engine()

    rows = run_async_command(_list(), error_prefix="List failed")

    if output_format == OutputFormat.JSON:
        console.print_json(json.dumps([row.model_dump(mode="json") for row in rows]))
        return

    if not rows:
        console.print("[dim]No records stored.[/dim]")
        return

    table = Table(title="Saved records")
    table.add_column("Item ID")
    table.add_column("Kind")
    table.add_column("Saves", justify="right")
    for row in rows:
        table.add_row(row.item_id, row.kind, str(row.save_count))
    console.print(table)
