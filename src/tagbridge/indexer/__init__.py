"""GNU GLOBAL integration: the tool adapter, its output parser and the refresh scheduler."""

from __future__ import annotations

from tagbridge.indexer.adapter import GlobalAdapter, QueryMode, classify_result
from tagbridge.indexer.parser import (
    LocationRecord,
    parse_location_line,
    parse_locations,
    parse_symbols,
    render_location,
)
from tagbridge.indexer.scheduler import RefreshScheduler, RefreshState

__all__ = [
    "GlobalAdapter",
    "LocationRecord",
    "QueryMode",
    "RefreshScheduler",
    "RefreshState",
    "classify_result",
    "parse_location_line",
    "parse_locations",
    "parse_symbols",
    "render_location",
]
