"""tagbridge exception hierarchy.

All exceptions inherit from TagBridgeError so the protocol session can turn
any bridge-specific failure into an error response uniformly.
"""

from __future__ import annotations


class TagBridgeError(Exception):
    """Base exception for all tagbridge errors.

    Attributes:
        details: Optional diagnostic text (stderr, parser message) sent back
            to the caller alongside the message.
    """

    def __init__(self, message: str, details: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class ConfigError(TagBridgeError):
    """Configuration-related errors (bad interval, missing project dir, etc.)."""


class MalformedRequest(TagBridgeError):
    """A request line that could not be decoded or validated."""

    def __init__(
        self,
        message: str,
        details: str | None = None,
        request_id: str | None = None,
    ) -> None:
        super().__init__(message, details)
        self.request_id = request_id


class UnknownCommand(TagBridgeError):
    """The request named a command the dispatcher does not support."""

    def __init__(self, command: str) -> None:
        super().__init__(f"Unknown command: {command}")
        self.command = command


class ExecutionError(TagBridgeError):
    """The external index tool failed for reasons other than empty results."""


class IndexBootstrapError(ExecutionError):
    """The initial index build failed; the bridge cannot start serving."""


class TransportError(TagBridgeError):
    """The transport could not be opened (e.g. the TCP port is already bound)."""
