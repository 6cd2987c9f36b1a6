"""Per-connection request/response loop."""

from __future__ import annotations

import asyncio
import time
import traceback
from typing import Protocol

from rich.console import Console
from rich.markup import escape

from tagbridge.dispatcher import CommandDispatcher
from tagbridge.exceptions import MalformedRequest, TagBridgeError
from tagbridge.protocol import (
    INVALID_REQUEST_MESSAGE,
    Response,
    decode_request,
    encode_response,
)

console = Console(stderr=True)

MAX_LINE_BYTES = 1_048_576  # 1 MB
_PREVIEW_LEN = 120
_NEWLINE = b"\n"


class LineReader(Protocol):
    async def readuntil(self, separator: bytes = ...) -> bytes: ...

    async def readexactly(self, n: int) -> bytes: ...


class LineWriter(Protocol):
    def write(self, data: bytes) -> None: ...

    async def drain(self) -> None: ...


class ProtocolSession:
    """Serves one connection: one request line in, one response line out.

    Requests are handled strictly in order; the next line is not read until
    the previous response has been written. No state survives between
    requests.

    Args:
        reader: Source of newline-terminated request lines.
        writer: Sink for response lines.
        dispatcher: Runs decoded commands.
        name: Label used in log lines (e.g. "stdio" or the peer address).
        verbose: Also log how long each request took.
        max_line_bytes: The reader's buffer limit, reported when a line
            overruns it.
    """

    def __init__(
        self,
        reader: LineReader,
        writer: LineWriter,
        dispatcher: CommandDispatcher,
        name: str = "stdio",
        verbose: bool = False,
        max_line_bytes: int = MAX_LINE_BYTES,
    ) -> None:
        self._reader = reader
        self._writer = writer
        self._dispatcher = dispatcher
        self._name = name
        self._verbose = verbose
        self._max_line_bytes = max_line_bytes

    async def run(self) -> int:
        """Serve requests until the input stream is closed.

        Returns:
            Number of responses written.
        """
        handled = 0
        while True:
            try:
                line = await self._read_line()
            except asyncio.LimitOverrunError as exc:
                await self._discard_line(exc.consumed)
                response = Response.failure(
                    None,
                    INVALID_REQUEST_MESSAGE,
                    f"Request line exceeds {self._max_line_bytes} bytes.",
                )
                console.print(f"[yellow]Rejected[/yellow] [{self._name}] oversized line")
            else:
                if not line:
                    break
                if not line.strip():
                    continue
                response = await self.handle_line(line)

            try:
                await self._send(response)
            except ConnectionError as exc:
                console.print(f"[yellow]Connection lost[/yellow] [{self._name}] {escape(str(exc))}")
                return handled
            handled += 1

        console.print(f"[dim]Input closed [{self._name}], session ended.[/dim]")
        return handled

    async def handle_line(self, line: bytes | str) -> Response:
        """Decode one line, run it and build the response. Never raises."""
        try:
            request = decode_request(line)
        except MalformedRequest as exc:
            console.print(
                f"[yellow]Rejected[/yellow] [{self._name}] {escape(_preview(line))}: "
                f"{escape(exc.details or exc.message)}"
            )
            return Response.failure(exc.request_id, exc.message, exc.details)

        console.print(
            f"[bold blue]Received[/bold blue] [{self._name}] "
            f"{escape(request.command)} (ID: {escape(request.id)})"
        )
        started = time.monotonic()
        try:
            payload = await self._dispatcher.dispatch(request.command, request.params)
        except TagBridgeError as exc:
            console.print(
                f"[red]Failed[/red] [{self._name}] {escape(request.id)}: {escape(exc.message)}"
            )
            return Response.failure(request.id, exc.message, exc.details)
        except Exception as exc:  # noqa: BLE001
            console.print(
                f"[red]Unexpected error[/red] [{self._name}] {escape(request.id)}: "
                f"{escape(repr(exc))}"
            )
            return Response.failure(
                request.id, str(exc) or type(exc).__name__, traceback.format_exc()
            )

        if self._verbose:
            elapsed = time.monotonic() - started
            console.print(
                f"[dim]{escape(request.id)}: {len(payload)} result(s) in {elapsed:.3f}s[/dim]"
            )
        return Response.success(request.id, payload)

    async def _read_line(self) -> bytes:
        """Read one line; returns b"" at end of input."""
        try:
            return await self._reader.readuntil(_NEWLINE)
        except asyncio.IncompleteReadError as exc:
            # Input closed; a final line without a newline still counts
            return exc.partial

    async def _discard_line(self, consumed: int) -> None:
        """Drop the rest of an oversized line, however many reads it spans.

        The overrun leaves the buffered bytes in place, so they are consumed
        here until the line's newline (or end of input) is reached.
        """
        while True:
            await self._reader.readexactly(consumed)
            try:
                await self._reader.readuntil(_NEWLINE)
                return
            except asyncio.IncompleteReadError:
                return
            except asyncio.LimitOverrunError as exc:
                consumed = exc.consumed

    async def _send(self, response: Response) -> None:
        self._writer.write(encode_response(response))
        await self._writer.drain()


def _preview(line: bytes | str) -> str:
    if isinstance(line, bytes):
        line = line.decode("utf-8", errors="replace")
    line = line.strip()
    if len(line) > _PREVIEW_LEN:
        return line[:_PREVIEW_LEN] + "..."
    return line
