"""Maps protocol commands onto index lookups."""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Any

from tagbridge.exceptions import UnknownCommand
from tagbridge.indexer.adapter import GlobalAdapter, QueryMode
from tagbridge.indexer.parser import LocationRecord, parse_locations, parse_symbols


class CommandDispatcher:
    """Runs the closed set of lookup commands against one project's index.

    Parameters are expected to be validated already; the only check made
    here is that the command name is known.

    Args:
        adapter: Adapter used to run the index tool.
    """

    def __init__(self, adapter: GlobalAdapter) -> None:
        self._adapter = adapter
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[Any]]] = {
            "get_definition": lambda p: self.get_definition(p["symbol"]),
            "get_references": lambda p: self.get_references(p["symbol"]),
            "list_symbols_with_prefix": lambda p: self.list_symbols_with_prefix(p["prefix"]),
            "search_pattern": lambda p: self.search_pattern(p["pattern"]),
        }

    @property
    def commands(self) -> list[str]:
        """Names of all supported commands."""
        return sorted(self._handlers)

    async def dispatch(self, command: str, params: dict[str, Any]) -> list[Any]:
        """Run a command and return its JSON-ready payload.

        Raises:
            UnknownCommand: If ``command`` is not supported.
            ExecutionError: If the index tool failed.
        """
        handler = self._handlers.get(command)
        if handler is None:
            raise UnknownCommand(command)

        result = await handler(params)
        return [r.to_dict() if isinstance(r, LocationRecord) else r for r in result]

    async def get_definition(self, symbol: str) -> list[LocationRecord]:
        """Find where ``symbol`` is defined (exact match)."""
        output = await self._adapter.query(QueryMode.DEFINITION, symbol)
        return parse_locations(output)

    async def get_references(self, symbol: str) -> list[LocationRecord]:
        """Find where ``symbol`` is referenced."""
        output = await self._adapter.query(QueryMode.REFERENCE, symbol)
        return parse_locations(output)

    async def list_symbols_with_prefix(self, prefix: str) -> list[str]:
        """List symbol names starting with ``prefix``, in tool order."""
        output = await self._adapter.query(QueryMode.COMPLETION, prefix)
        return parse_symbols(output)

    async def search_pattern(self, pattern: str) -> list[LocationRecord]:
        """Search source lines matching the regular expression ``pattern``."""
        output = await self._adapter.query(QueryMode.PATTERN, pattern)
        return parse_locations(output)
