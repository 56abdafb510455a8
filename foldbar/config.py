"""TOML-based client configuration.

Loads ~/.foldbar/defaults.toml (global) and foldbar.toml (project), merges
them, and resolves the result into a ClientConfig:

    [client]
    host = "localhost"
    port = 7396
    error_delay = 0.75

    [logging]
    level = "DEBUG"
    console = true
"""

from __future__ import annotations

import re
import tomllib
from dataclasses import dataclass, field, fields
from pathlib import Path
from typing import Any

from foldbar.exceptions import ConfigurationError, InvalidEndpointError
from foldbar.observability.logging import LogConfig

type RawConfig = dict[str, Any]

GLOBAL_CONFIG_PATH = Path.home() / ".foldbar" / "defaults.toml"
PROJECT_CONFIG_NAME = "foldbar.toml"

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 7396
DEFAULT_PATH = "/api/websocket"
DEFAULT_ERROR_DELAY = 0.75

_HOST_RE = re.compile(r"^[A-Za-z0-9._-]+$|^\[[0-9A-Fa-f:.]+\]$")


@dataclass(frozen=True, slots=True)
class ClientConfig:
    """Where the agent listens and how the connection behaves.

    Attributes:
        error_delay: Seconds a transport failure waits before it is surfaced.
        refresh_interval: Seconds between refresh() calls while a view is open.
        connect_timeout: Seconds allowed for the WebSocket handshake.
        mock: Replace every snapshot with fixed mock data.
    """

    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    path: str = DEFAULT_PATH
    error_delay: float = DEFAULT_ERROR_DELAY
    refresh_interval: float = 1.0
    connect_timeout: float = 10.0
    mock: bool = False
    log: LogConfig = field(default_factory=LogConfig)

    @property
    def url(self) -> str:
        """The ws:// URL of the agent endpoint.

        Raises:
            InvalidEndpointError: If host, port or path are malformed.
        """
        if not isinstance(self.host, str) or not _HOST_RE.match(self.host):
            raise InvalidEndpointError(f"bad host {self.host!r}")
        if isinstance(self.port, bool) or not isinstance(self.port, int) or not 0 < self.port < 65536:
            raise InvalidEndpointError(f"bad port {self.port!r}")
        if not isinstance(self.path, str) or not self.path.startswith("/") or any(c.isspace() for c in self.path):
            raise InvalidEndpointError(f"bad path {self.path!r}")
        return f"ws://{self.host}:{self.port}{self.path}"


def _deep_merge(base: RawConfig, override: RawConfig) -> RawConfig:
    result = dict(base)
    for key, value in override.items():
        if key in result and isinstance(result[key], dict) and isinstance(value, dict):
            result[key] = _deep_merge(result[key], value)
        else:
            result[key] = value
    return result


def _read_toml(path: Path) -> RawConfig:
    if not path.is_file():
        return {}
    try:
        with path.open("rb") as f:
            return tomllib.load(f)
    except tomllib.TOMLDecodeError as e:
        raise ConfigurationError(f"Invalid TOML in {path}: {e}") from e


def load_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
) -> RawConfig:
    global_cfg = _read_toml(global_path or GLOBAL_CONFIG_PATH)
    project_path = (project_dir or Path.cwd()) / PROJECT_CONFIG_NAME
    project_cfg = _read_toml(project_path)

    merged = _deep_merge(global_cfg, project_cfg)
    merged.setdefault("client", {})
    merged.setdefault("logging", {})
    return merged


def _check_keys(section: str, raw: RawConfig, cls: type) -> None:
    known = {f.name for f in fields(cls)} - {"log"}
    unknown = set(raw) - known
    if unknown:
        raise ConfigurationError(
            f"Unknown key(s) in [{section}]: {', '.join(sorted(unknown))}. "
            f"Valid: {', '.join(sorted(known))}"
        )


_SECONDS = ("error_delay", "refresh_interval", "connect_timeout")

_CLIENT_TYPES: dict[str, type] = {
    "host": str,
    "port": int,
    "path": str,
    "error_delay": float,
    "refresh_interval": float,
    "connect_timeout": float,
    "mock": bool,
}

_LOGGING_TYPES: dict[str, type] = {
    "level": str,
    "file": str,
    "console": bool,
    "rotation": str,
    "retention": int,
}


def _check_types(section: str, raw: RawConfig, types: dict[str, type]) -> RawConfig:
    checked = dict(raw)
    for key, value in raw.items():
        expected = types[key]
        # TOML integers are accepted where seconds are expected
        if expected is float and isinstance(value, int) and not isinstance(value, bool):
            value = float(value)
        if isinstance(value, bool) and expected is not bool or not isinstance(value, expected):
            raise ConfigurationError(
                f"[{section}] {key} must be {expected.__name__}, got {type(value).__name__} ({value!r})"
            )
        if key in _SECONDS and value < 0:
            raise ConfigurationError(f"[{section}] {key} must not be negative, got {value!r}")
        checked[key] = value
    return checked


def config_from_raw(raw: RawConfig) -> ClientConfig:
    client = dict(raw.get("client", {}))
    logging = dict(raw.get("logging", {}))
    _check_keys("client", client, ClientConfig)
    _check_keys("logging", logging, LogConfig)
    client = _check_types("client", client, _CLIENT_TYPES)
    logging = _check_types("logging", logging, _LOGGING_TYPES)
    return ClientConfig(**client, log=LogConfig(**logging))


def resolve_config(
    *,
    project_dir: Path | None = None,
    global_path: Path | None = None,
    **overrides: Any,
) -> ClientConfig:
    """Load both TOML layers and apply keyword overrides on top.

    Overrides whose value is None are ignored, so CLI flags can be passed
    through unconditionally.
    """
    raw = load_config(project_dir=project_dir, global_path=global_path)
    client_overrides = {k: v for k, v in overrides.items() if v is not None}
    raw = _deep_merge(raw, {"client": client_overrides})
    return config_from_raw(raw)
