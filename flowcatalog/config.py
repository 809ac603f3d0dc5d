# flowcatalog/config.py
"""
Settings: defaults <- optional YAML/JSON file <- environment variables.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, fields, replace
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

from flowcatalog.catalog.sources import BUNDLED_CATALOG
from flowcatalog.errors import ConfigError
from flowcatalog.utils.io import PathLike, load_any, to_path

ENV_VARS = {
    "static_catalog": "FLOWCATALOG_STATIC_CATALOG",
    "remote_url": "FLOWCATALOG_REMOTE_URL",
    "remote_timeout": "FLOWCATALOG_REMOTE_TIMEOUT",
    "search_limit": "FLOWCATALOG_SEARCH_LIMIT",
    "search_max": "FLOWCATALOG_SEARCH_MAX",
    "log_level": "LOG_LEVEL",
    "log_dir": "FLOWCATALOG_LOG_DIR",
}


@dataclass(frozen=True)
class Settings:
    static_catalog: Path = BUNDLED_CATALOG
    remote_url: Optional[str] = None
    remote_timeout: float = 10.0
    search_limit: int = 20
    search_max: int = 100
    log_level: str = "INFO"
    log_dir: Optional[Path] = None

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            out[f.name] = str(value) if isinstance(value, Path) else value
        return out


def _coerce(key: str, raw: Any) -> Any:
    if raw is None or raw == "":
        return None
    try:
        if key in ("static_catalog", "log_dir"):
            return to_path(raw)
        if key == "remote_timeout":
            value = float(raw)
            if value <= 0:
                raise ValueError("must be positive")
            return value
        if key in ("search_limit", "search_max"):
            if isinstance(raw, bool):
                raise ValueError("not an integer")
            value = int(raw)
            if value <= 0:
                raise ValueError("must be positive")
            return value
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid value for {key}: {raw!r} ({e})") from e
    return str(raw)


def load_settings(path: Optional[PathLike] = None, env: Optional[Dict[str, str]] = None) -> Settings:
    """
    Build Settings. `path` may point to a .json/.yaml/.yml file with any of
    the Settings field names as keys; env vars override the file.
    """
    env = os.environ if env is None else env
    overrides: Dict[str, Any] = {}

    if path is not None:
        try:
            data = load_any(path) or {}
        except (OSError, ValueError, yaml.YAMLError) as e:
            raise ConfigError(f"Cannot read settings file {path}: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Settings file {path} must contain a mapping")
        known = {f.name for f in fields(Settings)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise ConfigError(f"Unknown settings in {path}: {', '.join(unknown)}")
        for key, raw in data.items():
            value = _coerce(key, raw)
            if value is not None:
                overrides[key] = value

    for key, var in ENV_VARS.items():
        value = _coerce(key, env.get(var))
        if value is not None:
            overrides[key] = value

    settings = replace(Settings(), **overrides)
    if settings.search_limit > settings.search_max:
        raise ConfigError(
            f"search_limit ({settings.search_limit}) exceeds search_max ({settings.search_max})"
        )
    return settings
