"""Bridge startup and transports.

Startup order: make sure an index exists (fatal on failure), start the
background refresh, then serve requests over stdio or TCP until the input
closes or the process is interrupted.
"""

from __future__ import annotations

import asyncio
import contextlib
import sys

from rich.console import Console
from rich.markup import escape

from tagbridge.config import BridgeConfig
from tagbridge.dispatcher import CommandDispatcher
from tagbridge.exceptions import TransportError
from tagbridge.indexer.adapter import GlobalAdapter
from tagbridge.indexer.scheduler import RefreshScheduler
from tagbridge.session import MAX_LINE_BYTES, ProtocolSession

console = Console(stderr=True)


async def open_stdio() -> tuple[asyncio.StreamReader, asyncio.StreamWriter]:
    """Wrap the process's stdin/stdout in asyncio streams."""
    loop = asyncio.get_running_loop()

    reader = asyncio.StreamReader(limit=MAX_LINE_BYTES)
    await loop.connect_read_pipe(lambda: asyncio.StreamReaderProtocol(reader), sys.stdin)

    transport, protocol = await loop.connect_write_pipe(
        asyncio.streams.FlowControlMixin, sys.stdout
    )
    writer = asyncio.StreamWriter(transport, protocol, reader, loop)
    return reader, writer


async def serve_stdio(dispatcher: CommandDispatcher, verbose: bool = False) -> None:
    """Serve a single session on stdin/stdout until stdin is closed."""
    reader, writer = await open_stdio()
    console.print("[bold green]Ready[/bold green] listening for requests on stdin")
    session = ProtocolSession(reader, writer, dispatcher, name="stdio", verbose=verbose)
    await session.run()


async def start_tcp_server(
    dispatcher: CommandDispatcher,
    host: str,
    port: int,
    verbose: bool = False,
) -> asyncio.Server:
    """Bind the TCP transport; each connection gets its own session.

    Raises:
        TransportError: If the address cannot be bound.
    """

    async def _handle(reader: asyncio.StreamReader, writer: asyncio.StreamWriter) -> None:
        peer = writer.get_extra_info("peername")
        name = f"{peer[0]}:{peer[1]}" if peer else "tcp"
        console.print(f"[dim]Connection opened [{escape(name)}][/dim]")
        session = ProtocolSession(reader, writer, dispatcher, name=name, verbose=verbose)
        try:
            await session.run()
        finally:
            writer.close()
            with contextlib.suppress(ConnectionError):
                await writer.wait_closed()

    try:
        server = await asyncio.start_server(_handle, host, port, limit=MAX_LINE_BYTES)
    except OSError as exc:
        raise TransportError(f"Cannot listen on {host}:{port}", details=str(exc)) from exc

    console.print(f"[bold green]Ready[/bold green] listening for requests on {host}:{port}")
    return server


async def serve_tcp(
    dispatcher: CommandDispatcher,
    host: str,
    port: int,
    verbose: bool = False,
) -> None:
    """Serve TCP connections until cancelled."""
    server = await start_tcp_server(dispatcher, host, port, verbose=verbose)
    async with server:
        await server.serve_forever()


async def run_bridge(config: BridgeConfig) -> None:
    """Bootstrap the index, start refreshing it, and serve requests.

    Raises:
        IndexBootstrapError: If no index exists and building one failed.
        TransportError: If the TCP transport cannot be bound.
    """
    console.print(
        f"[bold blue]tagbridge[/bold blue] serving {escape(str(config.project_dir))} "
        f"over {config.transport}"
    )
    adapter = GlobalAdapter(
        config.project_dir,
        global_command=config.global_command,
        gtags_command=config.gtags_command,
        timeout=config.timeout,
    )
    await adapter.ensure_index()

    dispatcher = CommandDispatcher(adapter)
    scheduler = RefreshScheduler(adapter, config.interval)
    scheduler.start()
    try:
        if config.transport == "tcp":
            await serve_tcp(dispatcher, config.host, config.port, verbose=config.verbose)
        else:
            await serve_stdio(dispatcher, verbose=config.verbose)
    finally:
        await scheduler.stop()
        console.print("[dim]Shutting down.[/dim]")
