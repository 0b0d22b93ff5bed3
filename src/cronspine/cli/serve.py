"""
CLI: ``cronspine serve``, start the API server.
"""

from __future__ import annotations

import typer
import uvicorn

from cronspine.cli.utils import console
from cronspine.core.settings import CronSpineSettings

app = typer.Typer(no_args_is_help=True)


@app.command("start")
def start(
    host: str | None = typer.Option(None, "--host", "-h", help="Bind address"),
    port: int | None = typer.Option(None, "--port", "-p", help="Bind port"),
    reload: bool = typer.Option(False, "--reload", help="Auto-reload on changes"),
    workers: int = typer.Option(1, "--workers", "-w", help="Number of workers"),
    log_level: str = typer.Option("info", "--log-level"),
) -> None:
    """Start the cronspine REST API server.

    Every worker runs due jobs after its responses; the claim in storage
    keeps two workers from running the same job twice.
    """
    from cronspine.core.logging import configure_logging

    settings = CronSpineSettings()
    host = host or settings.host
    port = port or settings.port
    configure_logging(level=log_level, json_format=settings.json_logs)

    console.print(f"[bold green]Starting cronspine API[/bold green] on {host}:{port}")
    uvicorn.run(
        "cronspine.api:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
        workers=workers,
        log_level=log_level,
    )
