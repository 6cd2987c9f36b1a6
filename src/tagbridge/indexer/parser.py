"""Parsing of GNU GLOBAL cross-reference output into location records."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import Any

# <symbol> <line-number> <file-path> <code...>, separated by runs of whitespace.
# The code column is optional: an empty source line leaves nothing after the path.
_LOCATION_RE = re.compile(r"^(\S+)\s+(\d+)\s+(\S+)(?:\s+(.*))?$")


@dataclass(frozen=True, slots=True)
class LocationRecord:
    """A single match reported by the index tool.

    Attributes:
        file: Path of the matching file, relative to the project root.
        line: 1-based line number of the match.
        code: Source text of the matching line.
        symbol: Tag name the tool reported for the match, if any.
    """

    file: str
    line: int
    code: str
    symbol: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Return the wire representation, omitting an absent symbol."""
        data: dict[str, Any] = {}
        if self.symbol is not None:
            data["symbol"] = self.symbol
        data["line"] = self.line
        data["file"] = self.file
        data["code"] = self.code
        return data


def parse_location_line(line: str) -> LocationRecord | None:
    """Parse one line of ``global -x`` output.

    Args:
        line: A single output line, with or without its line terminator.

    Returns:
        The parsed record, or None if the line does not have the expected shape.
    """
    match = _LOCATION_RE.match(line.rstrip("\r\n"))
    if match is None:
        return None

    symbol, lineno, file_path, code = match.groups()
    number = int(lineno)
    if number < 1:
        return None

    return LocationRecord(file=file_path, line=number, code=code or "", symbol=symbol)


def parse_locations(text: str) -> list[LocationRecord]:
    """Parse multi-line ``global -x`` output into records.

    Garbled lines are skipped so that one bad line never discards the rest of
    the result. Empty output means no matches and yields an empty list.

    Args:
        text: Raw standard output from the tool.

    Returns:
        Records in the order the tool printed them.
    """
    records: list[LocationRecord] = []
    for line in text.splitlines():
        record = parse_location_line(line)
        if record is not None:
            records.append(record)
    return records


def parse_symbols(text: str) -> list[str]:
    """Split completion output into symbol names, keeping tool order."""
    return [line.strip() for line in text.splitlines() if line.strip()]


def render_location(record: LocationRecord) -> str:
    """Render a record back into the tool's line layout.

    Records without a symbol are rendered with the file path in the symbol
    column, which is what ``global`` prints for path-only matches. Whitespace
    runs separate the columns, so leading whitespace in ``code`` does not
    survive a parse of the rendered line.
    """
    symbol = record.symbol if record.symbol is not None else record.file
    return f"{symbol} {record.line} {record.file} {record.code}"
