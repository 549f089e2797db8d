"""JSON-backed configuration store."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, field, fields
from pathlib import Path
from typing import Any

from ratifact.utils import xdg_config_home, xdg_data_home

log = logging.getLogger(__name__)

_CONFIG_DIR = "ratifact"
_CONFIG_FILE = "config.json"

_TRUTHY = {"1", "true", "yes", "on"}

MIN_RETENTION_DAYS = 1


def default_database_path() -> str:
    return str(xdg_data_home() / "ratifact" / "ratifact.db")


@dataclass
class Config:
    """User configuration for a session.

    An empty ``scan_paths`` means the current directory is scanned.
    """

    scan_paths: list[str] = field(default_factory=list)
    excluded_paths: list[str] = field(default_factory=list)
    retention_days: int = 7
    database_path: str = field(default_factory=default_database_path)
    debug_logs_enabled: bool = False
    automatic_removal: bool = False

    def effective_scan_paths(self) -> list[str]:
        return list(self.scan_paths) if self.scan_paths else ["."]


class ConfigStore:
    """Loads and persists :class:`Config` as a JSON file.

    Loading never raises: a missing or unreadable file yields defaults,
    and each malformed field falls back to its own default.
    """

    def __init__(self, path: Path | None = None) -> None:
        self._path = path or (xdg_config_home() / _CONFIG_DIR / _CONFIG_FILE)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Config:
        """Read the config file and apply environment overrides."""
        config = _from_dict(self._read())
        _apply_env(config)
        return config

    def save(self, config: Config) -> None:
        """Persist *config* to disk."""
        try:
            self._path.parent.mkdir(parents=True, exist_ok=True)
            self._path.write_text(
                json.dumps(asdict(config), indent=2, ensure_ascii=False) + "\n",
                encoding="utf-8",
            )
        except OSError as e:
            log.warning("Could not save config to %s: %s", self._path, e)

    def _read(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except (json.JSONDecodeError, OSError) as e:
            log.warning("Could not load config from %s: %s", self._path, e)
            return {}
        if not isinstance(data, dict):
            log.warning("Ignoring config in %s: expected a JSON object", self._path)
            return {}
        return data


def _from_dict(data: dict[str, Any]) -> Config:
    config = Config()
    for f in fields(Config):
        if f.name not in data:
            continue
        value = data[f.name]
        default = getattr(config, f.name)
        if f.name == "retention_days" and isinstance(value, int) and value < MIN_RETENTION_DAYS:
            log.warning("Ignoring retention_days below %d: %r", MIN_RETENTION_DAYS, value)
        elif _same_shape(value, default):
            setattr(config, f.name, list(value) if isinstance(value, list) else value)
        else:
            log.warning("Ignoring invalid config value for '%s': %r", f.name, value)
    return config


def _same_shape(value: Any, default: Any) -> bool:
    if isinstance(default, bool):
        return isinstance(value, bool)
    if isinstance(default, int):
        return isinstance(value, int) and not isinstance(value, bool) and value >= 0
    if isinstance(default, list):
        return isinstance(value, list) and all(isinstance(v, str) for v in value)
    return isinstance(value, type(default))


def _apply_env(config: Config) -> None:
    database = os.environ.get("RATIFACT_DATABASE")
    if database:
        config.database_path = database
    debug = os.environ.get("RATIFACT_DEBUG_LOGS")
    if debug is not None:
        config.debug_logs_enabled = debug.strip().lower() in _TRUTHY
