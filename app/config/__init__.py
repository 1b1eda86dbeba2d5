"""Updater configuration loaded from JSON resources."""

from __future__ import annotations

import json
from dataclasses import dataclass
from importlib import resources
from math import isfinite
from pathlib import Path
from typing import Any, Mapping

GITHUB_API_URL = "https://api.github.com/repos/"
UPDATE_INTERVAL_SECONDS = 24 * 60 * 60

_CONFIG_RESOURCE = "updater.json"
_UPDATER_CONFIG_CACHE: UpdaterConfig | None = None

_DEFAULT_TIMEOUT_SECONDS = 10.0
_DEFAULT_USER_AGENT = "alfred-workflow-updater"


@dataclass(frozen=True)
class UpdaterConfig:
    """Defaults applied to every update coordinator."""

    check_interval_seconds: int = UPDATE_INTERVAL_SECONDS
    github_api_url: str = GITHUB_API_URL
    request_timeout_seconds: float = _DEFAULT_TIMEOUT_SECONDS
    user_agent: str = _DEFAULT_USER_AGENT


def get_updater_config() -> UpdaterConfig:
    """Return the cached updater configuration."""

    global _UPDATER_CONFIG_CACHE
    if _UPDATER_CONFIG_CACHE is None:
        _UPDATER_CONFIG_CACHE = load_updater_config()
    return _UPDATER_CONFIG_CACHE


def reset_updater_config_cache() -> None:
    """Reset the cached configuration for subsequent reloads."""

    global _UPDATER_CONFIG_CACHE
    _UPDATER_CONFIG_CACHE = None


def load_updater_config(path: str | Path | None = None) -> UpdaterConfig:
    """Load configuration from ``path`` or the bundled JSON resource."""

    data = _read_config_data(path)
    section = data.get("updater") if isinstance(data, Mapping) else None
    if not isinstance(section, Mapping):
        return UpdaterConfig()
    return UpdaterConfig(
        check_interval_seconds=_coerce_non_negative_int(
            section.get("check_interval_seconds"), default=UPDATE_INTERVAL_SECONDS
        ),
        github_api_url=_coerce_url(section.get("github_api_url"), default=GITHUB_API_URL),
        request_timeout_seconds=_coerce_positive_float(
            section.get("request_timeout_seconds"), default=_DEFAULT_TIMEOUT_SECONDS
        ),
        user_agent=_coerce_text(section.get("user_agent"), default=_DEFAULT_USER_AGENT),
    )


def _read_config_data(path: str | Path | None) -> Mapping[str, Any]:
    if path is not None:
        return _load_json_from_path(Path(path).expanduser())
    return _load_default_config_data()


def _load_json_from_path(path: Path) -> Mapping[str, Any]:
    try:
        raw = path.read_text(encoding="utf-8")
    except OSError:
        return {}
    return _parse_json(raw)


def _load_default_config_data() -> Mapping[str, Any]:
    try:
        resource = resources.files(__package__).joinpath(_CONFIG_RESOURCE)
        raw = resource.read_text(encoding="utf-8")
    except (FileNotFoundError, OSError):
        return {}
    return _parse_json(raw)


def _parse_json(raw: str) -> Mapping[str, Any]:
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError:
        return {}
    if isinstance(parsed, Mapping):
        return parsed
    return {}


def _coerce_non_negative_int(value: Any, *, default: int) -> int:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        if isinstance(value, float) and not isfinite(value):
            return default
        candidate = int(value)
    elif isinstance(value, str):
        try:
            candidate = int(float(value))
        except ValueError:
            return default
    else:
        return default
    if candidate < 0:
        return default
    return candidate


def _coerce_positive_float(value: Any, *, default: float) -> float:
    if isinstance(value, bool):
        return default
    if isinstance(value, (int, float)):
        candidate = float(value)
    elif isinstance(value, str):
        try:
            candidate = float(value.strip())
        except ValueError:
            return default
    else:
        return default
    if not isfinite(candidate) or candidate <= 0:
        return default
    return candidate


def _coerce_url(value: Any, *, default: str) -> str:
    text = _coerce_text(value, default=default)
    if not text.startswith(("http://", "https://")):
        return default
    if not text.endswith("/"):
        text = f"{text}/"
    return text


def _coerce_text(value: Any, *, default: str) -> str:
    if isinstance(value, str) and value.strip():
        return value.strip()
    return default


__all__ = [
    "GITHUB_API_URL",
    "UPDATE_INTERVAL_SECONDS",
    "UpdaterConfig",
    "get_updater_config",
    "load_updater_config",
    "reset_updater_config_cache",
]
