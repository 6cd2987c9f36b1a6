"""Configuration management for tagbridge.

Settings are loaded from these sources in order of priority:
1. Command-line options (applied by the CLI, highest priority)
2. Environment variables
3. Project-level config: <project>/.tagbridge/config.toml
4. Global config: ~/.config/tagbridge/config.toml (lowest priority)
"""

from __future__ import annotations

import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from rich.console import Console

from tagbridge.exceptions import ConfigError

console = Console(stderr=True)

_GLOBAL_CONFIG_DIR = Path.home() / ".config" / "tagbridge"
_GLOBAL_CONFIG_PATH = _GLOBAL_CONFIG_DIR / "config.toml"

DEFAULT_INTERVAL = 15.0
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 7341


@dataclass
class BridgeConfig:
    """tagbridge configuration.

    Attributes:
        project_dir: Root of the project whose index is served.
        interval: Seconds between incremental index refreshes.
        transport: "stdio" for a single caller on stdin/stdout, "tcp" for
            one session per socket connection.
        host: Bind address for the TCP transport.
        port: Bind port for the TCP transport.
        command_timeout: Seconds before a hung index tool is killed. 0 = no timeout.
        global_command: Executable used for lookups.
        gtags_command: Executable used to build and update the index.
        verbose: Log per-request timing.
    """

    project_dir: Path
    interval: float = DEFAULT_INTERVAL
    transport: str = "stdio"
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    command_timeout: float = 0.0
    global_command: str = "global"
    gtags_command: str = "gtags"
    verbose: bool = False

    @property
    def timeout(self) -> float | None:
        """Per-command timeout for the adapter, or None for no limit."""
        return self.command_timeout if self.command_timeout > 0 else None


def load_config(project_dir: Path) -> BridgeConfig:
    """Load configuration from env vars, project config, and global config.

    Args:
        project_dir: Root directory of the project to serve.

    Returns:
        A fully resolved BridgeConfig instance.

    Raises:
        ConfigError: If the project directory does not exist or a value is invalid.
    """
    project_dir = project_dir.expanduser().resolve()
    if not project_dir.is_dir():
        raise ConfigError(f"Project directory not found: {project_dir}")

    config = BridgeConfig(project_dir=project_dir)

    # Layer 1: Global config (lowest priority)
    _apply_toml(config, _load_toml(_GLOBAL_CONFIG_PATH))

    # Layer 2: Project config
    _apply_toml(config, _load_toml(project_dir / ".tagbridge" / "config.toml"))

    # Layer 3: Environment variables
    _apply_env(config)

    validate_config(config)
    return config


def validate_config(config: BridgeConfig) -> None:
    """Check value ranges after all layers (and CLI overrides) are applied.

    Raises:
        ConfigError: If any value is out of range.
    """
    if config.interval <= 0:
        raise ConfigError(f"Refresh interval must be positive, got {config.interval:g}")
    if config.command_timeout < 0:
        raise ConfigError(f"Command timeout must not be negative, got {config.command_timeout:g}")
    if not 0 < config.port < 65536:
        raise ConfigError(f"Port must be between 1 and 65535, got {config.port}")
    if config.transport not in ("stdio", "tcp"):
        raise ConfigError(f"Unknown transport '{config.transport}' (expected stdio or tcp)")


def _load_toml(path: Path) -> dict[str, Any]:
    """Load a TOML file, returning an empty dict if missing or invalid."""
    if not path.is_file():
        return {}
    try:
        return tomllib.loads(path.read_text(encoding="utf-8"))
    except (tomllib.TOMLDecodeError, OSError) as exc:
        console.print(f"[yellow]Warning:[/yellow] Could not parse {path}: {exc}")
        return {}


def _apply_toml(config: BridgeConfig, settings: dict[str, Any]) -> None:
    """Merge TOML settings into a BridgeConfig."""
    if "interval" in settings:
        config.interval = _to_float("interval", settings["interval"])
    if "transport" in settings:
        config.transport = str(settings["transport"]).lower()
    if "host" in settings:
        config.host = str(settings["host"])
    if "port" in settings:
        config.port = _to_int("port", settings["port"])
    if "command_timeout" in settings:
        config.command_timeout = _to_float("command_timeout", settings["command_timeout"])
    if "global_command" in settings:
        config.global_command = str(settings["global_command"])
    if "gtags_command" in settings:
        config.gtags_command = str(settings["gtags_command"])
    if "verbose" in settings:
        config.verbose = _to_bool("verbose", settings["verbose"])


def _apply_env(config: BridgeConfig) -> None:
    """Override config with environment variables where set."""
    if interval := os.environ.get("TAGBRIDGE_INTERVAL"):
        config.interval = _to_float("TAGBRIDGE_INTERVAL", interval)
    if transport := os.environ.get("TAGBRIDGE_TRANSPORT"):
        config.transport = transport.lower()
    if host := os.environ.get("TAGBRIDGE_HOST"):
        config.host = host
    if port := os.environ.get("TAGBRIDGE_PORT"):
        config.port = _to_int("TAGBRIDGE_PORT", port)
    if timeout := os.environ.get("TAGBRIDGE_COMMAND_TIMEOUT"):
        config.command_timeout = _to_float("TAGBRIDGE_COMMAND_TIMEOUT", timeout)
    if global_cmd := os.environ.get("TAGBRIDGE_GLOBAL"):
        config.global_command = global_cmd
    if gtags_cmd := os.environ.get("TAGBRIDGE_GTAGS"):
        config.gtags_command = gtags_cmd
    if verbose := os.environ.get("TAGBRIDGE_VERBOSE"):
        config.verbose = verbose.lower() in ("true", "1", "yes")


def _to_bool(name: str, value: Any) -> bool:
    if isinstance(value, bool):
        return value
    raise ConfigError(f"Invalid boolean for {name}: {value!r} (use true or false)")


def _to_float(name: str, value: Any) -> float:
    try:
        return float(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid number for {name}: {value!r}") from exc


def _to_int(name: str, value: Any) -> int:
    try:
        return int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"Invalid integer for {name}: {value!r}") from exc
