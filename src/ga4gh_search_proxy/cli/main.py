"""
Typer application for the GA4GH Search proxy.

Commands:

- ``server CONFIG``: serve the configured tables over ``gripper.GRIPSource``.
- ``list BASE_URL``: print the backend's table catalogue, one JSON line each.
- ``gen-config BASE_URL``: print a best-effort configuration as YAML.

Logs are written to stderr. A table listing cut short by a failed page fetch
prints the tables received so far; the failure is logged.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer

from ..adapters.api import SearchClient
from ..config import DEFAULT_PORT, ConfigError, dump_config, load_config
from ..core.logging import configure_logging
from ..gripper.server import DEFAULT_MAX_WORKERS, serve
from ..services import generate_config

app = typer.Typer(
    no_args_is_help=True,
    add_completion=False,
    help="Expose a GA4GH Search API as a GRIP gripper (GRIPSource) data source.",
)


@app.callback(invoke_without_command=False)
def main(
    log_level: Optional[str] = typer.Option(
        None,
        "--log-level",
        "-l",
        help="Logging level (DEBUG, INFO, WARNING, ERROR). Defaults to GA4GH_PROXY_LOG_LEVEL or INFO.",
    ),
) -> None:
    """Configure logging before running a command."""

    if log_level:
        configure_logging(log_level, force=True)


@app.command("server")
def server_command(
    config_path: Path = typer.Argument(..., help="YAML or JSON proxy configuration.", dir_okay=False),
    port: Optional[int] = typer.Option(None, "--port", "-p", help="Override the port from the configuration."),
    max_workers: int = typer.Option(DEFAULT_MAX_WORKERS, "--max-workers", min=1, help="Concurrent RPCs handled by the server."),
) -> None:
    """Start the GRIPSource server for the tables in CONFIG_PATH."""

    try:
        config = load_config(config_path)
    except ConfigError as exc:
        typer.echo(str(exc), err=True)
        raise typer.Exit(code=1) from exc

    typer.echo(f"Starting Server: {port or config.port}", err=True)
    serve(config, port=port, max_workers=max_workers)


@app.command("list")
def list_command(
    base_url: str = typer.Argument(..., help="Root URL of the GA4GH Search API."),
) -> None:
    """Print every table of the backend as a JSON line."""

    for descriptor in SearchClient(base_url).list_collections():
        typer.echo(descriptor.to_json())


@app.command("gen-config")
def gen_config_command(
    base_url: str = typer.Argument(..., help="Root URL of the GA4GH Search API."),
    port: int = typer.Option(DEFAULT_PORT, "--port", "-p", help="Port written into the generated configuration."),
) -> None:
    """Introspect table schemas and print a proxy configuration as YAML."""

    config = generate_config(SearchClient(base_url), base_url=base_url, port=port)
    typer.echo(dump_config(config), nl=False)


if __name__ == "__main__":  # pragma: no cover
    app()
