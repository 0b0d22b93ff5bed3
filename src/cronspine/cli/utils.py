"""
CLI utility helpers: output formatting and connection management.
"""

from __future__ import annotations

import json
from collections.abc import Iterator
from contextlib import contextmanager
from dataclasses import asdict
from typing import Any

import typer
from rich.console import Console
from rich.table import Table

from cronspine.core.connection import create_connection
from cronspine.core.errors import CronSpineError
from cronspine.core.settings import CronSpineSettings
from cronspine.ops.context import OperationContext
from cronspine.ops.result import OperationResult, PagedResult

console = Console()
err_console = Console(stderr=True)


# ── Connection helper ────────────────────────────────────────────────────


@contextmanager
def make_context(
    database: str | None = None,
    *,
    dry_run: bool = False,
) -> Iterator[OperationContext]:
    """Open the store and yield an ``OperationContext`` for one CLI command.

    The connection is closed when the block exits, including on
    ``typer.Exit``.

    ``database`` is a path or URL; it defaults to ``CRONSPINE_DATABASE_URL``
    and then to ``<data_dir>/cronspine.db``.
    """
    settings = CronSpineSettings()
    try:
        conn, info = create_connection(
            database or settings.resolved_database_url(),
            init_schema=True,
            data_dir=settings.data_dir,
        )
    except CronSpineError as e:
        err_console.print(f"[bold red]Error[/bold red] (DATABASE): {e.message}")
        raise typer.Exit(code=1) from e
    ctx = OperationContext(
        conn=conn,
        settings=settings,
        backend=info.backend,
        caller="cli",
        dry_run=dry_run,
    )
    try:
        yield ctx
    finally:
        conn.close()


# ── Output helpers ───────────────────────────────────────────────────────


def _to_dict(obj: Any) -> dict[str, Any]:
    """Convert dataclass / pydantic model / dict to plain dict."""
    if hasattr(obj, "model_dump"):
        return obj.model_dump()
    if hasattr(obj, "__dataclass_fields__"):
        return asdict(obj)
    if isinstance(obj, dict):
        return obj
    return {"value": str(obj)}


def _fail(result: OperationResult) -> None:
    err = result.error
    msg = err.message if err else "Unknown error"
    code = err.code if err else "ERROR"
    err_console.print(f"[bold red]Error[/bold red] ({code}): {msg}")
    raise typer.Exit(code=1)


def print_warnings(result: OperationResult) -> None:
    for warning in result.warnings:
        err_console.print(f"[yellow]Warning:[/yellow] {warning}")


def output_result(
    result: OperationResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render an ``OperationResult`` to the terminal."""
    if not result.success:
        _fail(result)

    data = result.data

    if as_json:
        console.print_json(json.dumps(_to_dict(data), default=str))
        return

    print_warnings(result)
    _print_dict(_to_dict(data), title=title)


def output_paged(
    result: PagedResult,
    *,
    as_json: bool = False,
    title: str = "",
) -> None:
    """Render a ``PagedResult`` to the terminal."""
    if not result.success:
        _fail(result)

    items = result.data or []

    if as_json:
        payload = {
            "items": [_to_dict(d) for d in items],
            "total": result.total,
            "warnings": result.warnings,
        }
        console.print_json(json.dumps(payload, default=str))
        return

    print_warnings(result)
    if not items:
        console.print("[dim]No items.[/dim]")
        return

    print_table(items, title=title)


def print_table(items: list, *, title: str = "", columns: list[str] | None = None) -> None:
    """Render a list of dataclasses/dicts as a Rich table."""
    rows = [_to_dict(item) for item in items]
    columns = columns or list(rows[0])
    table = Table(title=title or None, show_lines=False, pad_edge=False)
    for col in columns:
        table.add_column(col, overflow="fold")
    for row in rows:
        table.add_row(*(_cell(row.get(col)) for col in columns))
    console.print(table)


def _cell(value: Any) -> str:
    if value is None:
        return "-"
    if isinstance(value, dict):
        return ", ".join(f"{k}={v}" for k, v in value.items()) or "-"
    return str(value)


def _print_dict(data: dict[str, Any], *, title: str = "") -> None:
    """Render a single dict as key-value pairs."""
    if title:
        console.print(f"[bold]{title}[/bold]")
    for k, v in data.items():
        console.print(f"  [cyan]{k}[/cyan]: {v}")
