"""pipewatch Command Line Interface.

Entry point for the pipewatch CLI tool.
"""

from __future__ import annotations

import logging
from pathlib import Path

import typer

from pipewatch import __version__

app = typer.Typer(
    name="pipewatch",
    help="pipewatch: live terminal monitor for a pipeline run.",
    no_args_is_help=True,
)

LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR")


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        typer.echo(f"pipewatch version {__version__}")
        raise typer.Exit()


def configure_logging(level: str, log_file: Path) -> None:
    """Send logs to a file so they never draw over the TUI."""
    normalized = level.upper()
    if normalized not in LOG_LEVELS:
        raise typer.BadParameter(
            f"log level must be one of {', '.join(LOG_LEVELS)}", param_hint="--log-level"
        )
    log_file.parent.mkdir(parents=True, exist_ok=True)
    logging.basicConfig(
        filename=str(log_file),
        level=getattr(logging, normalized),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@app.callback()
def main(
    version: bool | None = typer.Option(
        None,
        "--version",
        "-V",
        callback=version_callback,
        is_eager=True,
        help="Show version and exit.",
    ),
) -> None:
    """pipewatch: live terminal monitor for a pipeline run."""
    pass


@app.command()
def watch(
    run_id: str = typer.Argument(..., help="ID of the run to monitor."),
    api_url: str | None = typer.Option(
        None,
        "--api-url",
        "-u",
        help="Pipelines UI/API server URL (overrides settings).",
    ),
    namespace: str | None = typer.Option(
        None,
        "--namespace",
        "-n",
        help="Fallback namespace for logs and artifacts.",
    ),
    interval: float | None = typer.Option(
        None,
        "--interval",
        "-i",
        help="Refresh interval in seconds.",
    ),
    execution_id: str | None = typer.Option(
        None,
        "--execution",
        "-e",
        help="Execution ID whose step opens in the side panel.",
    ),
    log_level: str = typer.Option(
        "WARNING",
        "--log-level",
        help="Log level for the log file.",
    ),
    log_file: Path = typer.Option(
        Path("~/.cache/pipewatch/pipewatch.log").expanduser(),
        "--log-file",
        help="Where to write logs.",
    ),
) -> None:
    """Open the live monitor for RUN_ID."""
    configure_logging(log_level, log_file)

    from pipewatch.app import PipewatchApp

    PipewatchApp(
        run_id,
        api_url=api_url,
        namespace=namespace,
        refresh_interval=interval,
        execution_id=execution_id,
    ).run()


if __name__ == "__main__":
    app()
