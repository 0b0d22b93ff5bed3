"""
CLI: ``cronspine crontab``, manage the request-piggybacked scheduler.
"""

from __future__ import annotations

import json

import typer

from cronspine.cli.utils import (
    _to_dict,
    console,
    make_context,
    output_paged,
    output_result,
    print_table,
    print_warnings,
)

app = typer.Typer(no_args_is_help=True)

JOB_COLUMNS = ["identifier", "frequency", "args", "last_run", "next_due_at", "due"]


@app.command("show")
def show(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Show the crontab, last runs and scheduler flags."""
    from cronspine.ops.crontab import get_crontab

    with make_context(database) as ctx:
        result = get_crontab(ctx)
    if not result.success or json_out:
        output_result(result, as_json=json_out, title="Crontab")
        return

    view = result.data
    state = "[green]enabled[/green]" if view.enabled else "[red]disabled[/red]"
    console.print(f"[bold]Scheduler[/bold] {state}")
    if view.sandbox:
        console.print("[yellow]Sandbox mode: scheduled jobs never run[/yellow]")
    if view.maintenance:
        console.print("[yellow]Maintenance mode: requests do not trigger jobs[/yellow]")
    if not view.jobs:
        console.print("[dim]No scheduled jobs.[/dim]")
        return
    print_table(view.jobs, title="Crontab", columns=JOB_COLUMNS)


@app.command("due")
def due(
    database: str | None = typer.Option(None, "--database", "-d"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """List the jobs a request arriving now would run."""
    from cronspine.ops.crontab import list_due_jobs

    with make_context(database) as ctx:
        result = list_due_jobs(ctx)
    output_paged(result, as_json=json_out, title="Due Jobs")


@app.command("reload")
def reload(
    database: str | None = typer.Option(None, "--database", "-d"),
    dry_run: bool = typer.Option(False, "--dry-run", help="Parse sources without saving"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Rebuild the crontab from every job-definition source."""
    from cronspine.ops.crontab import reload_crontab

    with make_context(database, dry_run=dry_run) as ctx:
        result = reload_crontab(ctx)
    if not result.success or json_out:
        output_result(result, as_json=json_out, title="Reload")
        return

    summary = result.data
    if summary.dry_run:
        console.print(f"[dim]Dry run:[/dim] {summary.jobs} job(s) in {len(summary.sources)} source(s)")
    else:
        console.print(f"[bold green]{summary.notification}[/bold green] {summary.jobs} job(s)")
    for source in summary.sources:
        console.print(f"  [cyan]source[/cyan]: {source}")


@app.command("run")
def run(
    database: str | None = typer.Option(None, "--database", "-d"),
    dry_run: bool = typer.Option(False, "--dry-run", help="List due jobs without claiming"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Claim and run every due job now.

    Exits with status 1 when any job failed.
    """
    from cronspine.ops.crontab import run_pending_jobs

    with make_context(database, dry_run=dry_run) as ctx:
        result = run_pending_jobs(ctx)
    if not result.success:
        output_result(result, as_json=json_out)

    summary = result.data
    if json_out:
        console.print_json(json.dumps(_to_dict(summary), default=str))
    else:
        print_warnings(result)
        label = "Due" if summary.dry_run else "Claimed"
        console.print(f"[bold]{label}[/bold]: {', '.join(summary.claimed) or '-'}")
        if summary.skipped:
            console.print(f"[dim]Skipped[/dim]: {', '.join(summary.skipped)}")
        if summary.succeeded:
            console.print(f"[green]Succeeded[/green]: {', '.join(summary.succeeded)}")
        for failure in summary.failed:
            console.print(f"[red]Failed[/red]: {failure['job']} ({failure['error_type']}: {failure['message']})")
    if summary.failed:
        raise typer.Exit(code=1)


def _set_enabled(enabled: bool, database: str | None, dry_run: bool, json_out: bool) -> None:
    from cronspine.ops.crontab import set_scheduler_enabled

    with make_context(database, dry_run=dry_run) as ctx:
        result = set_scheduler_enabled(ctx, enabled)
    if not result.success or json_out:
        output_result(result, as_json=json_out)
        return
    state = "enabled" if enabled else "disabled"
    suffix = "" if result.data.changed else " (unchanged)"
    prefix = "[dim]Dry run:[/dim] " if dry_run else ""
    console.print(f"{prefix}Scheduler {state}{suffix}")


@app.command("enable")
def enable(
    database: str | None = typer.Option(None, "--database", "-d"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Let requests run scheduled jobs again."""
    _set_enabled(True, database, dry_run, json_out)


@app.command("disable")
def disable(
    database: str | None = typer.Option(None, "--database", "-d"),
    dry_run: bool = typer.Option(False, "--dry-run"),
    json_out: bool = typer.Option(False, "--json"),
) -> None:
    """Stop requests from running scheduled jobs (last runs are kept)."""
    _set_enabled(False, database, dry_run, json_out)
