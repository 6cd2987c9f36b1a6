"""Background refresh of the index on a fixed interval."""

from __future__ import annotations

import asyncio
from enum import Enum
from typing import Protocol

from rich.console import Console
from rich.markup import escape

from tagbridge.exceptions import ExecutionError

console = Console(stderr=True)


class IndexUpdater(Protocol):
    async def update_index_incremental(self) -> None: ...


class RefreshState(str, Enum):
    IDLE = "idle"
    REFRESHING = "refreshing"


class RefreshScheduler:
    """Runs incremental index updates without ever overlapping them.

    Ticks fire at a fixed rate, each in its own task. A tick that arrives
    while an update is still running is dropped, not queued, so a slow
    ``gtags -i`` can never pile up concurrent subprocesses.

    Args:
        updater: Object providing ``update_index_incremental()``.
        interval: Seconds between ticks.
    """

    def __init__(self, updater: IndexUpdater, interval: float) -> None:
        self._updater = updater
        self._interval = interval
        self._state = RefreshState.IDLE
        self._timer: asyncio.Task[None] | None = None
        self._ticks: set[asyncio.Task[bool]] = set()

    @property
    def state(self) -> RefreshState:
        """Current state. Only :meth:`tick` changes it."""
        return self._state

    @property
    def running(self) -> bool:
        """Return True while the background timer is active."""
        return self._timer is not None and not self._timer.done()

    async def tick(self) -> bool:
        """Run one incremental update unless one is already in progress.

        Update failures are logged and swallowed: the existing index stays as
        it was and the next tick simply tries again.

        Returns:
            True if an update ran, False if the tick was dropped.
        """
        if self._state is RefreshState.REFRESHING:
            console.print("[dim]Refresh still running, skipping tick[/dim]")
            return False

        self._state = RefreshState.REFRESHING
        try:
            await self._updater.update_index_incremental()
            console.print("[bold blue]Refresh[/bold blue] index updated")
        except ExecutionError as exc:
            detail = f": {escape(exc.details)}" if exc.details else ""
            console.print(
                f"[bold red]Refresh failed[/bold red] {escape(exc.message)}{detail}"
            )
        except Exception as exc:  # noqa: BLE001
            console.print(f"[bold red]Refresh failed[/bold red] {escape(repr(exc))}")
        finally:
            self._state = RefreshState.IDLE
        return True

    def start(self) -> None:
        """Start ticking: once immediately, then every ``interval`` seconds."""
        if self.running:
            return
        self._timer = asyncio.create_task(self._run(), name="index-refresh")

    async def stop(self) -> None:
        """Cancel the timer and any update still in flight."""
        pending: list[asyncio.Task] = list(self._ticks)
        if self._timer is not None:
            pending.append(self._timer)
            self._timer = None
        for task in pending:
            task.cancel()
        await asyncio.gather(*pending, return_exceptions=True)

    async def _run(self) -> None:
        console.print(
            f"[bold blue]Refresh[/bold blue] every {self._interval:g}s"
        )
        while True:
            task = asyncio.create_task(self.tick())
            self._ticks.add(task)
            task.add_done_callback(self._ticks.discard)
            await asyncio.sleep(self._interval)
