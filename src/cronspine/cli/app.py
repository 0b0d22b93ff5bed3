"""
Root Typer application for the cronspine CLI.
"""

from __future__ import annotations

import typer
from typer import Typer

from cronspine.core.logging import configure_logging

app = Typer(
    name="cronspine",
    help="cronspine: periodic jobs driven by web requests.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)


# ── Version callback ─────────────────────────────────────────────────────


def _version_callback(value: bool) -> None:
    if value:
        from cronspine import __version__

        typer.echo(f"cronspine {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool | None = typer.Option(  # noqa: UP007
        None,
        "--version",
        "-V",
        help="Show version and exit.",
        callback=_version_callback,
        is_eager=True,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show scheduler logs."),
) -> None:
    """cronspine CLI: inspect and manage scheduled jobs."""
    configure_logging(level="DEBUG" if verbose else "WARNING", json_format=False)


# ── Sub-command registration ─────────────────────────────────────────────

from cronspine.cli.crontab import app as crontab_app  # noqa: E402
from cronspine.cli.db import app as db_app  # noqa: E402
from cronspine.cli.serve import app as serve_app  # noqa: E402

app.add_typer(crontab_app, name="crontab", help="Scheduled job management.")
app.add_typer(db_app, name="db", help="Database operations.")
app.add_typer(serve_app, name="serve", help="Start the API server.")
