"""Subprocess tooling used to reach the external index tool."""

from __future__ import annotations

from dataclasses import dataclass

__all__ = ["ToolResult"]


@dataclass
class ToolResult:
    """Result from running an external command.

    Attributes:
        success: Whether the command ran and exited with status 0.
        output: Captured standard output.
        error: Short error message if the command failed or could not run.
        stderr: Captured standard error.
        returncode: Exit status, or None if the process never ran to completion.
    """

    success: bool
    output: str
    error: str | None = None
    stderr: str = ""
    returncode: int | None = None
