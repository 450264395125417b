"""Main CLI application for save-pacer."""

from pathlib import Path
from typing import Annotated

import typer

from save_pacer import __version__
from save_pacer.cli import db as db_cmd
from save_pacer.cli import load as load_cmd
from save_pacer.cli.common import console
from save_pacer.config import get_settings
from save_pacer.logging import setup_logging

app = typer.Typer(
    name="save-pacer",
    help="Save records to a backend at a limited rate.",
    add_completion=False,
)


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"save-pacer version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """save-pacer - throttle saves to a persistence backend."""
    settings = get_settings()
    log_config = settings.logging

    setup_logging(
        level=settings.log_level,
        verbose=verbose,
        quiet=quiet,
        log_file=Path(log_config.log_file) if log_config.log_file else None,
        rotation=log_config.rotation,
        retention=log_config.retention,
        serialize=log_config.serialize,
    )


app.command("load")(load_cmd.load)
app.add_typer(db_cmd.app, name="db")


if __name__ == "__main__":
    app()
