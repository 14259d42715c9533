"""Settings loading for the dashboard service."""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional, Union

from .logging_utils import coerce_log_level, get_logger


_log = get_logger("preferences")


def default_journal_dir() -> Path:
    return Path.home() / "Saved Games" / "Frontier Developments" / "Elite Dangerous"


def clamp_port(value: Any, default: int = 3000) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        port = default
    return max(1, min(65535, port))


def clamp_debounce_ms(value: Any, default: int = 100) -> int:
    try:
        delay = int(value)
    except (TypeError, ValueError):
        delay = default
    return max(0, min(5000, delay))


def clamp_settle_delay(value: Any, default: float = 1.5) -> float:
    try:
        delay = float(value)
    except (TypeError, ValueError):
        delay = default
    return max(0.0, min(30.0, delay))


def clamp_top_entries(value: Any, default: int = 5) -> int:
    try:
        limit = int(value)
    except (TypeError, ValueError):
        limit = default
    return max(1, min(50, limit))


def clamp_retries(value: Any, default: int = 5) -> int:
    try:
        retries = int(value)
    except (TypeError, ValueError):
        retries = default
    return max(0, min(100, retries))


@dataclass
class DashboardSettings:
    journal_dir: Path = field(default_factory=default_journal_dir)
    status_filename: str = "Status.json"
    host: str = "127.0.0.1"
    port: int = 3000
    static_dir: Optional[Path] = None
    broadcast_debounce_ms: int = 100
    settle_delay_seconds: float = 1.5
    top_entries: int = 5
    obs_enabled: bool = False
    obs_host: str = "localhost"
    obs_port: int = 4455
    obs_password: str = ""
    obs_max_retries: int = 5
    log_level: int = logging.INFO


class PreferencesManager:
    """Loads settings from an optional JSON file and applies overrides."""

    def load(self, path: Optional[Union[str, Path]] = None) -> DashboardSettings:
        settings = DashboardSettings()
        if path is None:
            return settings
        config_path = Path(path).expanduser()
        try:
            raw = json.loads(config_path.read_text(encoding="utf-8"))
        except FileNotFoundError:
            _log.warning("Settings file %s not found; using defaults", config_path)
            return settings
        except (OSError, ValueError) as exc:
            _log.warning("Failed to read settings file %s: %s", config_path, exc)
            return settings
        if not isinstance(raw, dict):
            _log.warning("Settings file %s does not contain an object; using defaults", config_path)
            return settings
        self.apply(settings, raw)
        return settings

    def apply(self, settings: DashboardSettings, values: Dict[str, Any]) -> DashboardSettings:
        """Overlay ``values`` (ignoring ``None``) onto ``settings``."""

        def present(key: str) -> bool:
            return values.get(key) is not None

        if present("journal_dir"):
            settings.journal_dir = Path(str(values["journal_dir"])).expanduser()
        if present("status_filename"):
            settings.status_filename = self._get_str(values, "status_filename", settings.status_filename)
        if present("host"):
            settings.host = self._get_str(values, "host", settings.host)
        if present("port"):
            settings.port = clamp_port(values["port"], settings.port)
        if present("static_dir"):
            settings.static_dir = Path(str(values["static_dir"])).expanduser()
        if present("broadcast_debounce_ms"):
            settings.broadcast_debounce_ms = clamp_debounce_ms(
                values["broadcast_debounce_ms"], settings.broadcast_debounce_ms
            )
        if present("settle_delay_seconds"):
            settings.settle_delay_seconds = clamp_settle_delay(
                values["settle_delay_seconds"], settings.settle_delay_seconds
            )
        if present("top_entries"):
            settings.top_entries = clamp_top_entries(values["top_entries"], settings.top_entries)
        if present("obs_enabled"):
            settings.obs_enabled = self._get_bool(values, "obs_enabled", settings.obs_enabled)
        if present("obs_host"):
            settings.obs_host = self._get_str(values, "obs_host", settings.obs_host)
        if present("obs_port"):
            settings.obs_port = clamp_port(values["obs_port"], settings.obs_port)
        if present("obs_password"):
            settings.obs_password = str(values["obs_password"])
        if present("obs_max_retries"):
            settings.obs_max_retries = clamp_retries(values["obs_max_retries"], settings.obs_max_retries)
        if present("log_level"):
            settings.log_level = coerce_log_level(values["log_level"], settings.log_level)
        return settings

    @staticmethod
    def _get_str(values: Dict[str, Any], key: str, default: str) -> str:
        value = values.get(key)
        if isinstance(value, str) and value.strip():
            return value.strip()
        return default

    @staticmethod
    def _get_bool(values: Dict[str, Any], key: str, default: bool) -> bool:
        value = values.get(key)
        if isinstance(value, bool):
            return value
        if isinstance(value, (int, float)):
            return bool(value)
        if isinstance(value, str):
            lowered = value.strip().lower()
            if lowered in {"1", "true", "yes", "on"}:
                return True
            if lowered in {"0", "false", "no", "off"}:
                return False
        return default


__all__ = [
    "DashboardSettings",
    "PreferencesManager",
    "clamp_debounce_ms",
    "clamp_port",
    "clamp_retries",
    "clamp_settle_delay",
    "clamp_top_entries",
    "default_journal_dir",
]
