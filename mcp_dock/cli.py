"""Command line interface.

Commands:
    serve         Run the HTTP API (uvicorn) with background workers
    mcp           Run the registry tools as an MCP server over stdio
    servers       Show the configured server catalog
    check-config  Validate a configuration file
"""

import logging
import os
from typing import Annotated, Optional

from rich import box
from rich.console import Console
from rich.markup import escape
from rich.table import Table
import typer

from .config import DockConfig, load_configuration
from .domain.exceptions import ConfigurationError
from .logging_config import get_logger, setup_logging

app = typer.Typer(
    name="mcp-dock",
    help="Registry and lifecycle manager for MCP servers",
    no_args_is_help=True,
)

console = Console()
logger = get_logger(__name__)

ConfigOption = Annotated[
    Optional[str],
    typer.Option("--config", "-c", help="Path to YAML configuration file", envvar="MCP_DOCK_CONFIG"),
]


def _load(config_path: Optional[str]) -> DockConfig:
    try:
        return load_configuration(config_path, os.environ)
    except (FileNotFoundError, ConfigurationError) as e:
        console.print(f"[red]Configuration error:[/red] {escape(str(e))}")
        raise typer.Exit(1) from e


def _setup_logging(config: DockConfig) -> None:
    settings = config.settings
    setup_logging(
        level=getattr(logging, settings.log_level, logging.INFO),
        json_format=settings.json_logs,
        log_file=settings.log_file,
    )


@app.command()
def serve(
    config: ConfigOption = None,
    host: Annotated[Optional[str], typer.Option(help="Bind host (overrides config)")] = None,
    port: Annotated[Optional[int], typer.Option(help="Bind port (overrides config)")] = None,
    workers: Annotated[bool, typer.Option("--workers/--no-workers", help="Run background health checks")] = True,
) -> None:
    """Run the HTTP API."""
    import uvicorn

    from .bootstrap.runtime import create_runtime
    from .http.app import create_app

    dock_config = _load(config)
    _setup_logging(dock_config)

    runtime = create_runtime(settings=dock_config.settings, servers=dock_config.servers)
    bind_host = host or dock_config.settings.host
    bind_port = port or dock_config.settings.port
    logger.info("http_server_starting", host=bind_host, port=bind_port, servers=len(runtime.registry))

    uvicorn.run(
        create_app(runtime, background_workers=workers),
        host=bind_host,
        port=bind_port,
        log_config=None,
    )


@app.command()
def mcp(config: ConfigOption = None) -> None:
    """Run the registry tools as an MCP server over stdio."""
    from .bootstrap.runtime import create_runtime
    from .server.tools import create_mcp_server

    dock_config = _load(config)
    _setup_logging(dock_config)

    runtime = create_runtime(settings=dock_config.settings, servers=dock_config.servers)
    logger.info("mcp_server_starting", transport="stdio", servers=len(runtime.registry))
    try:
        create_mcp_server(runtime).run()
    finally:
        runtime.shutdown()


@app.command()
def servers(config: ConfigOption = None) -> None:
    """Show the configured server catalog."""
    dock_config = _load(config)

    table = Table(box=box.SIMPLE, title="MCP servers")
    table.add_column("ID", style="bold")
    table.add_column("Name")
    table.add_column("Category")
    table.add_column("API key")
    table.add_column("Tools", justify="right")

    for server in dock_config.servers:
        if server.requires_api_key:
            present = bool(os.environ.get(server.api_key_name or ""))
            key = f"[green]{server.api_key_name}[/green]" if present else f"[yellow]{server.api_key_name} (missing)[/yellow]"
        else:
            key = "[dim]-[/dim]"
        table.add_row(server.id, server.name, server.category.value, key, str(len(server.tools)))

    console.print(table)


@app.command("check-config")
def check_config(
    config: Annotated[str, typer.Argument(help="Path to YAML configuration file")],
) -> None:
    """Validate a configuration file and summarize it."""
    dock_config = _load(config)
    settings = dock_config.settings
    console.print(f"[green]OK[/green] {config}")
    console.print(f"  servers: {', '.join(s.id for s in dock_config.servers) or '(none)'}")
    console.print(f"  connect timeout: {settings.connect_timeout_s:g}s")
    console.print(f"  retention: {settings.retention.max_records_per_server} records per server")
    console.print(f"  http: {settings.host}:{settings.port}")


def main() -> None:
    """Console script entry point."""
    app()


if __name__ == "__main__":
    main()
