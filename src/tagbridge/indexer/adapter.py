"""Adapter around the GNU GLOBAL command-line tools.

``gtags`` builds and updates the on-disk index (GTAGS, GRTAGS, GPATH) and
``global`` queries it. Every invocation runs with the project root as its
working directory and goes through :func:`run_process`.
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from rich.console import Console
from rich.markup import escape

from tagbridge.exceptions import ExecutionError, IndexBootstrapError
from tagbridge.tools import ToolResult
from tagbridge.tools.shell import run_process

console = Console(stderr=True)

# global exits non-zero when a tag has no matches and says so on stderr.
# Matching on message text breaks if the tool's locale or wording changes.
_EMPTY_RESULT_MARKERS: tuple[str, ...] = ("not found",)

# Same wording, but the index itself is missing: a real failure.
_MISSING_INDEX_MARKER = "GTAGS not found"

INDEX_FILENAME = "GTAGS"


class QueryMode(str, Enum):
    """Lookup modes supported by ``global``."""

    DEFINITION = "definition"
    REFERENCE = "reference"
    COMPLETION = "completion"
    PATTERN = "pattern"


_MODE_FLAGS: dict[QueryMode, str] = {
    QueryMode.DEFINITION: "-x",
    QueryMode.REFERENCE: "-xr",
    QueryMode.COMPLETION: "-c",
    QueryMode.PATTERN: "-xg",
}


def classify_result(result: ToolResult, command: str) -> str:
    """Turn a finished tool run into output text or an ExecutionError.

    A non-zero exit whose stderr reports that nothing was found counts as a
    successful empty lookup.

    Args:
        result: The captured run.
        command: Human-readable command line, used in the error message.

    Returns:
        Captured standard output.

    Raises:
        ExecutionError: If the run failed for any other reason.
    """
    if result.success:
        return result.output

    stderr = result.stderr
    if result.returncode is not None and _MISSING_INDEX_MARKER not in stderr:
        if any(marker in stderr for marker in _EMPTY_RESULT_MARKERS):
            return result.output

    message = f"Command failed: {command}"
    if result.error:
        message = f"{message} ({result.error})"
    raise ExecutionError(message, details=stderr.strip() or None)


class GlobalAdapter:
    """Runs index builds, incremental updates and lookups for one project.

    The adapter holds no mutable state; each call is an independent
    subprocess, so concurrent calls from several sessions are safe.

    Args:
        project_dir: Root of the indexed project.
        global_command: Executable used for queries.
        gtags_command: Executable used to build and update the index.
        timeout: Optional per-command timeout in seconds. None waits forever.
    """

    def __init__(
        self,
        project_dir: Path,
        global_command: str = "global",
        gtags_command: str = "gtags",
        timeout: float | None = None,
    ) -> None:
        self._project_dir = project_dir.resolve()
        self._global = global_command
        self._gtags = gtags_command
        self._timeout = timeout

    @property
    def project_dir(self) -> Path:
        """Absolute path to the indexed project root."""
        return self._project_dir

    def index_exists(self) -> bool:
        """Return True if an index has already been built in the project root."""
        return (self._project_dir / INDEX_FILENAME).is_file()

    async def query(self, mode: QueryMode, argument: str) -> str:
        """Run a lookup and return the tool's raw output.

        Args:
            mode: Which kind of lookup to perform.
            argument: Symbol, prefix or pattern. It follows ``--`` so that a
                leading dash is never read as an option. An empty completion
                prefix is left off the command line so that every symbol is
                listed.

        Returns:
            Raw standard output, empty when nothing matched.

        Raises:
            ExecutionError: If the tool failed.
        """
        mode = QueryMode(mode)
        args = [self._global, _MODE_FLAGS[mode]]
        if argument or mode is not QueryMode.COMPLETION:
            args.extend(["--", argument])
        return await self._run(args)

    async def build_index(self) -> None:
        """Build the full index from scratch."""
        await self._run([self._gtags])

    async def update_index_incremental(self) -> None:
        """Re-scan changed files and update the existing index in place."""
        await self._run([self._gtags, "-i"])

    async def ensure_index(self) -> bool:
        """Build the index once if the project has none yet.

        Returns:
            True if a build was performed, False if an index already existed.

        Raises:
            IndexBootstrapError: If the initial build failed.
        """
        if self.index_exists():
            return False

        console.print(
            f"[bold blue]Index[/bold blue] no {INDEX_FILENAME} in "
            f"{escape(str(self._project_dir))}, building..."
        )
        try:
            await self.build_index()
        except ExecutionError as exc:
            raise IndexBootstrapError(
                f"Initial index build failed: {exc.message}", details=exc.details
            ) from exc
        console.print("[bold blue]Index[/bold blue] [green]built[/green]")
        return True

    async def _run(self, args: list[str]) -> str:
        result = await run_process(args, self._project_dir, timeout=self._timeout)
        return classify_result(result, " ".join(args))
