"""synckeeper CLI - keep chat-web sessions alive.

Serve the registration API from the terminal.
"""

import os
from typing import Annotated

import typer
import uvicorn
from rich.console import Console
from rich.panel import Panel

import synckeeper
from synckeeper.api import create_app
from synckeeper.config import get_settings
from synckeeper.logging import configure_logging, get_logger, level_for_verbosity

# Configure logging early using env vars directly so import-time log calls
# are rendered consistently. main_callback() may reconfigure later.
configure_logging(
    level=os.environ.get("SYNCKEEPER_LOG_LEVEL", "WARNING"),
    json_output=os.environ.get("SYNCKEEPER_LOG_FORMAT", "console") == "json",
)

LOG = get_logger(__name__)

app = typer.Typer(
    name="synckeeper",
    help="""
    🔁 synckeeper - keep chat-web sessions alive

    \b
    Quick start:
      synckeeper serve           Serve the registration API on port 8080
      synckeeper serve 9000      Serve on another port
      synckeeper version         Show version info
    """,
    no_args_is_help=True,
    rich_markup_mode="rich",
    context_settings={"help_option_names": ["-h", "--help"]},
)
console = Console()


@app.callback(invoke_without_command=True)
def main_callback(
    ctx: typer.Context,
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            count=True,
            help="Increase verbosity (-v for info, -vv for debug)",
        ),
    ] = 0,
    log_format: Annotated[
        str | None,
        typer.Option(
            "--log-format",
            help="Log output format: console (human-readable) or json (structured)",
        ),
    ] = None,
) -> None:
    """synckeeper - keep chat-web sessions alive."""
    settings = get_settings()
    json_output = (log_format or settings.log_format) == "json"

    level = level_for_verbosity(verbose, settings.effective_log_level)
    configure_logging(level=level, json_output=json_output)


@app.command()
def version() -> None:
    """Show synckeeper version."""
    settings = get_settings()
    console.print(
        Panel(
            f"[bold cyan]synckeeper[/bold cyan] v{synckeeper.__version__}\n\n"
            f"[dim]Listen:[/dim] {settings.host}:{settings.port}\n"
            f"[dim]HTTPS:[/dim]  {'on' if settings.use_https else 'off'}",
            title="Keep chat-web sessions alive",
            border_style="cyan",
        )
    )


@app.command()
def serve(
    port: Annotated[
        int | None,
        typer.Argument(help="Port to listen on (default: SYNCKEEPER_PORT or 8080)"),
    ] = None,
    host: Annotated[
        str | None,
        typer.Option("--host", help="Interface to bind (default: SYNCKEEPER_HOST)"),
    ] = None,
) -> None:
    """Serve the credential registration API."""
    settings = get_settings()
    try:
        ssl_kwargs = settings.ssl_config()
    except ValueError as exc:
        console.print(f"[red]✗ {exc}[/red]")
        raise typer.Exit(1) from None

    bind_host = host or settings.host
    bind_port = port if port is not None else settings.port
    scheme = "https" if ssl_kwargs else "http"

    console.print(f"[green]✓ synckeeper listening on {scheme}://{bind_host}:{bind_port}[/green]")
    LOG.info("server_starting", host=bind_host, port=bind_port, https=bool(ssl_kwargs))
    uvicorn.run(
        create_app(),
        host=bind_host,
        port=bind_port,
        log_level="warning",
        **ssl_kwargs,
    )


def main() -> None:
    """Entry point for the synckeeper console script."""
    app()


if __name__ == "__main__":
    main()
