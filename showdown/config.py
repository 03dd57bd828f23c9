"""
Session configuration.

Values come from (lowest to highest precedence):
    1. SessionConfig defaults
    2. an optional YAML file
    3. SHOWDOWN_* environment variables
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from shared.log import get_logger
from shared.protocol import (
    CROSSDOMAIN_URL,
    DEFAULT_ROOM,
    LOGIN_SERVER_URL,
    MESSAGE_DELAY,
    WEBSOCKET_PATH,
)

logger = get_logger(__name__)

_ENV_PREFIX = "SHOWDOWN_"


@dataclass(frozen=True)
class SessionConfig:
    default_room: str = DEFAULT_ROOM
    message_delay: float = MESSAGE_DELAY
    websocket_path: str = WEBSOCKET_PATH
    crossdomain_url: str = CROSSDOMAIN_URL
    login_server_url: str = LOGIN_SERVER_URL
    ping_interval: Optional[float] = 20.0
    ping_timeout: Optional[float] = 20.0
    http_timeout: float = 10.0
    debug: bool = False

    def with_overrides(self, **overrides: Any) -> "SessionConfig":
        """Return a copy with the non-None overrides applied."""
        return replace(self, **{k: v for k, v in overrides.items() if v is not None})


def _coerce(name: str, value: Any) -> Any:
    """Convert YAML/env values to the type of the matching default."""
    default = getattr(SessionConfig, name)
    if isinstance(default, bool):
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "on"}
        return bool(value)
    if isinstance(default, float) or name in {"ping_interval", "ping_timeout"}:
        if value is None or (isinstance(value, str) and value.strip().lower() in {"", "none", "null"}):
            return None
        return float(value)
    return str(value)


def _from_env() -> Dict[str, Any]:
    values: Dict[str, Any] = {}
    for f in fields(SessionConfig):
        raw = os.getenv(_ENV_PREFIX + f.name.upper())
        if raw is not None:
            values[f.name] = _coerce(f.name, raw)
    return values


def _from_yaml(path: Path) -> Dict[str, Any]:
    with open(path, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh) or {}
    if not isinstance(data, dict):
        raise ValueError(f"{path}: expected a mapping at top level")
    # Accept either a flat mapping or one nested under "session"
    section = data.get("session", data)
    known = {f.name for f in fields(SessionConfig)}
    values: Dict[str, Any] = {}
    for key, value in section.items():
        if key not in known:
            logger.warning("Ignoring unknown config key %r in %s", key, path)
            continue
        values[key] = _coerce(key, value)
    return values


def load_config(path: Optional[Union[str, Path]] = None) -> SessionConfig:
    """Build a SessionConfig from defaults, an optional YAML file and the environment."""
    values: Dict[str, Any] = {}
    if path is not None:
        values.update(_from_yaml(Path(path)))
        logger.debug("Loaded session config from %s", path)
    values.update(_from_env())
    return SessionConfig(**values)
