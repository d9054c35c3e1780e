from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from trading_console.config.models import ConsoleSettings, default_settings

CONFIG_ENV_PREFIX = "CONSOLE_"


def load_settings(path: str | Path | None = None, env_prefix: str = CONFIG_ENV_PREFIX) -> ConsoleSettings:
    """Load settings from YAML/JSON if a path is given, then apply env overrides."""
    settings = default_settings()
    if path:
        payload = _read_file(Path(path))
        settings = ConsoleSettings(**payload)
    return _apply_env_overrides(settings, env_prefix=env_prefix)


def _read_file(path: Path) -> Mapping[str, Any]:
    if not path.exists():
        raise FileNotFoundError(f"Config file not found: {path}")
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        return yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if suffix == ".json":
        with path.open("r", encoding="utf-8") as fh:
            return json.load(fh)
    raise ValueError(f"Unsupported config format: {path.suffix}")


def _apply_env_overrides(settings: ConsoleSettings, env_prefix: str) -> ConsoleSettings:
    base_url = os.getenv(f"{env_prefix}BASE_URL")
    timeout = _get_env_float(f"{env_prefix}TIMEOUT")
    price_interval = _get_env_float(f"{env_prefix}PRICE_INTERVAL")
    sync_interval = _get_env_float(f"{env_prefix}SYNC_INTERVAL")

    api_updates: Dict[str, Any] = {}
    if base_url:
        api_updates["base_url"] = base_url
    if timeout is not None:
        api_updates["timeout_seconds"] = timeout

    polling_updates: Dict[str, Any] = {}
    if price_interval is not None:
        polling_updates["price_interval_seconds"] = price_interval
    if sync_interval is not None:
        polling_updates["sync_interval_seconds"] = sync_interval

    if not api_updates and not polling_updates:
        return settings
    return settings.model_copy(
        update={
            "api": settings.api.model_copy(update=api_updates),
            "polling": settings.polling.model_copy(update=polling_updates),
        }
    )


def _get_env_float(key: str) -> float | None:
    raw = os.getenv(key)
    if raw is None:
        return None
    try:
        return float(raw)
    except ValueError:
        return None
