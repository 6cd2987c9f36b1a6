"""Shared test fixtures."""

from __future__ import annotations

import asyncio
import json
import stat
from collections.abc import Callable
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from tagbridge.dispatcher import CommandDispatcher
from tagbridge.indexer.adapter import GlobalAdapter

FOO_DEFINITION = "Foo              10 src/a.txt        void Foo() {\n"

_FAKE_GLOBAL = """\
#!/bin/sh
mode="$1"
shift
[ "$1" = "--" ] && shift
case "$mode" in
  -x)
    if [ "$1" = "Foo" ]; then
      printf 'Foo              10 src/a.txt        void Foo() {\\n'
      exit 0
    fi
    ;;
  -c)
    printf 'Foo\\nFooBar\\nFoo\\n'
    exit 0
    ;;
esac
echo "global: '$1' not found" >&2
exit 1
"""


class MemoryWriter:
    """Collects bytes written by a session."""

    def __init__(self) -> None:
        self.buffer = bytearray()

    def write(self, data: bytes) -> None:
        self.buffer.extend(data)

    async def drain(self) -> None:
        return None

    @property
    def responses(self) -> list[dict[str, Any]]:
        return [json.loads(line) for line in self.buffer.decode("utf-8").splitlines()]


@pytest.fixture(autouse=True)
def isolated_config(
    tmp_path_factory: pytest.TempPathFactory, monkeypatch: pytest.MonkeyPatch
) -> None:
    """Keep the user's global config and TAGBRIDGE_* env vars out of tests."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setattr("tagbridge.config._GLOBAL_CONFIG_PATH", home / "config.toml")
    for name in (
        "TAGBRIDGE_INTERVAL",
        "TAGBRIDGE_TRANSPORT",
        "TAGBRIDGE_HOST",
        "TAGBRIDGE_PORT",
        "TAGBRIDGE_COMMAND_TIMEOUT",
        "TAGBRIDGE_GLOBAL",
        "TAGBRIDGE_GTAGS",
        "TAGBRIDGE_VERBOSE",
    ):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def tmp_project(tmp_path: Path) -> Path:
    """Create a project directory with a (fake) existing index."""
    project = tmp_path / "project"
    (project / "src").mkdir(parents=True)
    (project / "src" / "a.txt").write_text("\n" * 9 + "void Foo() {\n}\n", encoding="utf-8")
    (project / "GTAGS").write_bytes(b"")
    return project


@pytest.fixture
def fake_global(tmp_path: Path) -> Path:
    """Write a stand-in ``global`` executable with canned answers."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir()
    script = bin_dir / "global"
    script.write_text(_FAKE_GLOBAL, encoding="utf-8")
    script.chmod(script.stat().st_mode | stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH)
    return script


@pytest.fixture
def mock_adapter() -> MagicMock:
    """Create a mock GlobalAdapter whose queries return no output."""
    adapter = MagicMock(spec=GlobalAdapter)
    adapter.query = AsyncMock(return_value="")
    adapter.update_index_incremental = AsyncMock()
    adapter.build_index = AsyncMock()
    adapter.ensure_index = AsyncMock(return_value=False)
    return adapter


@pytest.fixture
def dispatcher(mock_adapter: MagicMock) -> CommandDispatcher:
    return CommandDispatcher(mock_adapter)


@pytest.fixture
def make_reader() -> Callable[..., asyncio.StreamReader]:
    """Build a StreamReader pre-loaded with lines and EOF.

    Must be called from inside a running event loop.
    """

    def _make(*lines: str | bytes, limit: int = 2**16) -> asyncio.StreamReader:
        reader = asyncio.StreamReader(limit=limit)
        for line in lines:
            data = line.encode("utf-8") if isinstance(line, str) else line
            reader.feed_data(data)
        reader.feed_eof()
        return reader

    return _make


@pytest.fixture
def writer() -> MemoryWriter:
    return MemoryWriter()
