"""
CLI: ``cronspine db``, database management commands.
"""

from __future__ import annotations

import typer

from cronspine.cli.utils import make_context, output_result

app = typer.Typer(no_args_is_help=True)


@app.command()
def init(
    database: str | None = typer.Option(None, "--database", "-d", help="Database path or URL"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Preview without changes"),
    json_out: bool = typer.Option(False, "--json", help="JSON output"),
) -> None:
    """Create the scheduler tables and build the crontab."""
    from cronspine.ops.database import initialize_database

    with make_context(database, dry_run=dry_run) as ctx:
        result = initialize_database(ctx)
    output_result(result, as_json=json_out, title="Database Init")
