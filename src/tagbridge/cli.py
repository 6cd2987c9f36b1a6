"""Typer CLI entry point for tagbridge.

Bridges the synchronous Typer world to the async bridge internals via asyncio.run().
All human-facing output goes to stderr; stdout belongs to the protocol.
"""

from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Annotated, NoReturn, Optional

import typer
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from tagbridge import __version__
from tagbridge.config import BridgeConfig, load_config, validate_config
from tagbridge.dispatcher import CommandDispatcher
from tagbridge.exceptions import TagBridgeError
from tagbridge.indexer.adapter import GlobalAdapter
from tagbridge.protocol import COMMAND_PARAMS, validate_params

app = typer.Typer(
    name="tagbridge",
    help="Serve a GNU GLOBAL code index over line-delimited JSON.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)
console = Console(stderr=True)

ProjectDir = Annotated[
    Path,
    typer.Option("--dir", "-d", help="Root directory of the project to index"),
]


def _error_exit(message: str, hint: str | None = None) -> NoReturn:
    """Print a styled error and exit."""
    console.print(f"[bold red]Error:[/bold red] {escape(message)}")
    if hint:
        console.print(f"[dim]Hint: {escape(hint)}[/dim]")
    raise typer.Exit(code=1)


def _load(project_dir: Path) -> BridgeConfig:
    try:
        return load_config(project_dir)
    except TagBridgeError as exc:
        _error_exit(exc.message, hint=exc.details)


@app.command()
def serve(
    project_dir: ProjectDir,
    interval: Annotated[
        Optional[float], typer.Option("--interval", help="Seconds between index refreshes")
    ] = None,
    tcp: Annotated[bool, typer.Option("--tcp", help="Serve over TCP instead of stdio")] = False,
    host: Annotated[Optional[str], typer.Option("--host", help="TCP bind address")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="TCP bind port")] = None,
    timeout: Annotated[
        Optional[float],
        typer.Option("--timeout", help="Kill index commands after this many seconds (0 = never)"),
    ] = None,
    verbose: Annotated[bool, typer.Option("--verbose", "-v", help="Verbose output")] = False,
) -> None:
    """Serve index lookups to an agent process."""
    config = _load(project_dir)
    if interval is not None:
        config.interval = interval
    if tcp:
        config.transport = "tcp"
    if host is not None:
        config.host = host
    if port is not None:
        config.port = port
    if timeout is not None:
        config.command_timeout = timeout
    if verbose:
        config.verbose = True

    try:
        validate_config(config)
        from tagbridge.server import run_bridge

        asyncio.run(run_bridge(config))
    except KeyboardInterrupt:
        console.print("\n[yellow]Interrupted.[/yellow]")
        raise typer.Exit(code=130)
    except TagBridgeError as exc:
        _error_exit(exc.message, hint=exc.details)


@app.command()
def query(
    command: Annotated[str, typer.Argument(help="Command name, e.g. get_definition")],
    argument: Annotated[str, typer.Argument(help="Symbol, prefix or pattern")] = "",
    project_dir: ProjectDir = Path("."),
) -> None:
    """Run a single lookup and print the results as a table."""
    config = _load(project_dir)
    adapter = GlobalAdapter(
        config.project_dir,
        global_command=config.global_command,
        gtags_command=config.gtags_command,
        timeout=config.timeout,
    )
    dispatcher = CommandDispatcher(adapter)
    required = COMMAND_PARAMS.get(command)
    param_name = required[0][0] if required else "argument"
    params = {param_name: argument}

    try:
        validate_params(command, params)
        results = asyncio.run(dispatcher.dispatch(command, params))
    except TagBridgeError as exc:
        _error_exit(exc.message, hint=exc.details)

    if not results:
        console.print("[dim]No matches.[/dim]")
        return

    table = Table(
        title=escape(f"{command} {argument}"), border_style="cyan", header_style="bold cyan"
    )
    if isinstance(results[0], dict):
        table.add_column("Symbol", style="bold")
        table.add_column("Location")
        table.add_column("Code")
        for record in results:
            table.add_row(
                escape(record.get("symbol", "")),
                escape(f"{record['file']}:{record['line']}"),
                escape(record["code"]),
            )
    else:
        table.add_column("Symbol", style="bold")
        for name in results:
            table.add_row(escape(name))

    console.print(table)


@app.command()
def status(project_dir: ProjectDir = Path(".")) -> None:
    """Show resolved configuration and whether an index exists."""
    config = _load(project_dir)
    adapter = GlobalAdapter(config.project_dir)

    table = Table(title=f"tagbridge v{__version__}", border_style="cyan", header_style="bold cyan")
    table.add_column("Property", style="bold")
    table.add_column("Value")

    table.add_row("Project", escape(str(config.project_dir)))
    table.add_row(
        "Index",
        "[green]Present[/green]" if adapter.index_exists() else "[yellow]Not built[/yellow]",
    )
    table.add_row("Refresh interval", f"{config.interval:g}s")
    table.add_row("Transport", config.transport)
    table.add_row("TCP address", f"{config.host}:{config.port}")
    table.add_row(
        "Command timeout", f"{config.command_timeout:g}s" if config.timeout else "none"
    )
    table.add_row("global", escape(config.global_command))
    table.add_row("gtags", escape(config.gtags_command))

    console.print()
    console.print(table)
    console.print()
