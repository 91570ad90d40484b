"""Configuration loading and saving.

The file on disk uses camelCase keys (``monitor.selectedMetric``); the
schema uses snake_case.
"""

from __future__ import annotations

import json
import re
from pathlib import Path
from typing import Any

from loguru import logger
from pydantic import ValidationError

from usage_pace.config.schema import Config
from usage_pace.usage.models import MetricKind

_CAMEL_RE = re.compile(r"(?<!^)(?=[A-Z])")


def get_config_path() -> Path:
    """Return the default configuration file path."""
    return Path.home() / ".usage-pace" / "config.json"


def camel_to_snake(name: str) -> str:
    return _CAMEL_RE.sub("_", name).lower()


def snake_to_camel(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def convert_keys(data: Any, convert) -> Any:
    """Recursively rename dict keys with ``convert``."""
    if isinstance(data, dict):
        return {convert(k): convert_keys(v, convert) for k, v in data.items()}
    if isinstance(data, list):
        return [convert_keys(item, convert) for item in data]
    return data


def _read_file(path: Path) -> dict[str, Any]:
    """Return the stored settings with snake_case keys; ``{}`` when unusable."""
    if not path.exists():
        return {}
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except (OSError, ValueError) as exc:
        logger.warning(f"Failed to read config from {path}: {exc}")
        return {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring config at {path}: expected a JSON object")
        return {}
    return convert_keys(data, camel_to_snake)


def _merge(base: dict[str, Any], updates: dict[str, Any]) -> dict[str, Any]:
    merged = dict(base)
    for key, value in updates.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(config_path: Path | None = None) -> Config:
    """Load configuration from file, or return defaults when missing/invalid.

    ``USAGE_PACE_<SECTION>__<FIELD>`` environment variables take priority
    over the values stored in the file.
    """
    path = config_path or get_config_path()
    data = _read_file(path)
    try:
        return Config(**data)
    except ValidationError as exc:
        logger.warning(f"Failed to load config from {path}: {exc}")
        logger.warning("Using default configuration.")
        return Config()


def update_config(updates: dict[str, Any], config_path: Path | None = None) -> None:
    """Write ``updates`` (snake_case, nested by section) into the config file.

    Only the given keys change; everything else stays as stored. Values
    that come from the environment are never written.
    """
    path = config_path or get_config_path()
    data = _merge(_read_file(path), updates)
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(
        json.dumps(convert_keys(data, snake_to_camel), indent=2, ensure_ascii=False),
        encoding="utf-8",
    )


def save_selected_metric(metric: MetricKind, config_path: Path | None = None) -> None:
    """Persist the selected metric, keeping every other setting as stored."""
    update_config({"monitor": {"selected_metric": metric.value}}, config_path)
    logger.debug(f"Saved selected metric {metric.value!r}")
