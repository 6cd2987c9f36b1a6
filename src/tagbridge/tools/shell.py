"""Async process execution for external tools."""

from __future__ import annotations

import asyncio
import contextlib
from collections.abc import Sequence
from pathlib import Path

from tagbridge.tools import ToolResult


async def run_process(
    args: Sequence[str],
    cwd: Path,
    timeout: float | None = None,
) -> ToolResult:
    """Execute a command without a shell and capture its output.

    Arguments are passed straight to the executable, so symbol names and
    patterns are never interpreted by a shell. If the awaiting task is
    cancelled, the child is killed and reaped before the cancellation
    propagates.

    Args:
        args: Executable followed by its arguments.
        cwd: Working directory for the command.
        timeout: Maximum seconds to wait. None waits indefinitely.

    Returns:
        ToolResult with stdout, stderr and the exit status. Launch failures
        and timeouts are reported in the result rather than raised.
    """
    command = " ".join(args)
    try:
        process = await asyncio.create_subprocess_exec(
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            cwd=str(cwd),
        )
    except OSError as exc:
        return ToolResult(
            success=False,
            output="",
            error=f"Failed to run command: {command}",
            stderr=str(exc),
        )

    try:
        stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout)
    except asyncio.TimeoutError:
        await _kill(process)
        return ToolResult(
            success=False,
            output="",
            error=f"Command timed out after {timeout}s: {command}",
        )
    except asyncio.CancelledError:
        await _kill(process)
        raise

    return ToolResult(
        success=process.returncode == 0,
        output=stdout.decode("utf-8", errors="replace"),
        error=f"Exit code {process.returncode}" if process.returncode != 0 else None,
        stderr=stderr.decode("utf-8", errors="replace"),
        returncode=process.returncode,
    )


async def _kill(process: asyncio.subprocess.Process) -> None:
    if process.returncode is None:
        with contextlib.suppress(ProcessLookupError):
            process.kill()
    await process.wait()
