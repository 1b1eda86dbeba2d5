"""Helpers for persisting small JSON documents in the workflow directories.

Every write goes to a temporary file in the destination directory that is then
renamed over the target, so a concurrent reader sees either the old or the new
document and never a partially written one.  Reads treat a missing file and a
corrupt file the same way: both yield ``None``.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path
from typing import Any, Dict

from app.environment import WorkflowEnvironment, require_cache_dir, require_data_dir

_LOGGER = logging.getLogger(__name__)

_TEMP_PREFIX = "alfred_updater_temp"


class StateStoreError(OSError):
    """Raised when a JSON document cannot be written to disk."""


class JsonStateStore:
    """Load and atomically save JSON-serialisable values."""

    def save(self, path: Path, value: Any) -> None:
        target = Path(path)
        try:
            payload = json.dumps(value, indent=2, sort_keys=True) + "\n"
        except (TypeError, ValueError) as exc:
            raise StateStoreError(f"Cannot serialise data for {target.name}: {exc}") from exc

        try:
            target.parent.mkdir(parents=True, exist_ok=True)
            fd, temp_name = tempfile.mkstemp(
                prefix=_TEMP_PREFIX, suffix=".json", dir=str(target.parent)
            )
        except OSError as exc:
            raise StateStoreError(f"Cannot create temporary file for {target}: {exc}") from exc

        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
            os.replace(temp_name, target)
        except OSError as exc:
            _discard(Path(temp_name))
            raise StateStoreError(f"Cannot write {target}: {exc}") from exc
        _LOGGER.debug("Saved %s", target)

    def load(self, path: Path) -> Any | None:
        source = Path(path)
        try:
            raw = source.read_text(encoding="utf-8")
        except OSError as exc:
            _LOGGER.debug("Unable to read %s: %s", source, exc)
            return None
        try:
            return json.loads(raw)
        except json.JSONDecodeError as exc:
            _LOGGER.debug("Ignoring corrupt JSON document %s: %s", source, exc)
            return None


class WorkflowData:
    """Key/value settings persisted in the workflow's data directory."""

    def __init__(self, path: Path, values: Dict[str, Any], store: JsonStateStore) -> None:
        self._path = path
        self._values = values
        self._store = store

    @classmethod
    def load(
        cls,
        file_name: str | Path,
        environment: WorkflowEnvironment,
        store: JsonStateStore | None = None,
    ) -> "WorkflowData":
        """Open ``file_name`` in the data directory, starting empty when missing or invalid.

        Only the final path component of ``file_name`` is used.
        """

        name = Path(file_name).name
        if not name:
            raise ValueError("File name to load data from cannot be empty")
        store = store or JsonStateStore()
        path = require_data_dir(environment) / name
        loaded = store.load(path)
        values = dict(loaded) if isinstance(loaded, dict) else {}
        return cls(path, values, store)

    @property
    def path(self) -> Path:
        return self._path

    def set(self, key: str, value: Any) -> None:
        """Set ``key`` and write the whole document back to disk."""

        self._values[str(key)] = value
        self._store.save(self._path, self._values)

    def get(self, key: str, default: Any = None) -> Any:
        return self._values.get(key, default)

    def clear(self) -> None:
        """Forget every key in memory; the file on disk is left untouched."""

        self._values.clear()

    def __len__(self) -> int:
        return len(self._values)


def save_to_cache(
    file_name: str | Path,
    value: Any,
    environment: WorkflowEnvironment,
    store: JsonStateStore | None = None,
) -> Path:
    """Save temporary ``value`` under the workflow cache directory."""

    path = _cache_path(file_name, environment)
    (store or JsonStateStore()).save(path, value)
    return path


def load_from_cache(
    file_name: str | Path,
    environment: WorkflowEnvironment,
    store: JsonStateStore | None = None,
) -> Any | None:
    """Load a value saved with :func:`save_to_cache`, or ``None``."""

    path = _cache_path(file_name, environment)
    return (store or JsonStateStore()).load(path)


def _cache_path(file_name: str | Path, environment: WorkflowEnvironment) -> Path:
    name = Path(file_name).name
    if not name:
        raise ValueError("Cache file name cannot be empty")
    return require_cache_dir(environment) / name


def _discard(path: Path) -> None:
    try:
        path.unlink()
    except FileNotFoundError:
        return
    except OSError:
        _LOGGER.debug("Unable to remove temporary file %s", path, exc_info=True)


__all__ = [
    "JsonStateStore",
    "StateStoreError",
    "WorkflowData",
    "load_from_cache",
    "save_to_cache",
]
