"""Durable updater state and the cached release record."""

from __future__ import annotations

import datetime
from dataclasses import dataclass, field
from typing import Any, Mapping

from services.update.constants import DEFAULT_VERSION, UPDATE_INTERVAL_SECONDS
from services.update.versioning import SemanticVersion, parse_version


@dataclass(frozen=True)
class AvailableRelease:
    """The newest release known so far and where to download it."""

    version: SemanticVersion
    download_url: str
    fetched_at: datetime.datetime | None = None

    def __post_init__(self) -> None:
        if not isinstance(self.version, SemanticVersion):
            raise ValueError("Release version must be a SemanticVersion")
        if not isinstance(self.download_url, str) or not self.download_url.strip():
            raise ValueError("Release download URL must be a non-empty string")

    def to_json(self) -> dict[str, Any]:
        return {
            "version": str(self.version),
            "download_url": self.download_url,
            "fetched_at": _format_timestamp(self.fetched_at),
        }

    @classmethod
    def from_json(cls, data: Any) -> "AvailableRelease":
        """Build a release from its JSON form, raising ``ValueError`` when incomplete."""

        if not isinstance(data, Mapping):
            raise ValueError("Release record must be an object")
        version = data.get("version")
        download_url = data.get("download_url")
        if not isinstance(version, str) or not isinstance(download_url, str):
            raise ValueError("Release record requires both version and download_url")
        return cls(
            version=parse_version(version),
            download_url=download_url,
            fetched_at=_parse_timestamp(data.get("fetched_at")),
        )


@dataclass
class PersistedState:
    """Updater state that survives between invocations of the workflow.

    ``check_interval_seconds`` lives here for convenience but is never written
    to disk; every process starts from the configured default.
    """

    current_version: SemanticVersion = field(default_factory=lambda: parse_version(DEFAULT_VERSION))
    last_check: datetime.datetime | None = None
    available_release: AvailableRelease | None = None
    check_interval_seconds: int = UPDATE_INTERVAL_SECONDS

    def to_json(self) -> dict[str, Any]:
        return {
            "current_version": str(self.current_version),
            "last_check": _format_timestamp(self.last_check),
            "available_release": (
                self.available_release.to_json() if self.available_release is not None else None
            ),
        }

    @classmethod
    def from_json(
        cls, data: Any, *, check_interval_seconds: int = UPDATE_INTERVAL_SECONDS
    ) -> "PersistedState":
        """Restore state saved by :meth:`to_json`.

        Raises ``ValueError`` for anything malformed so callers can treat the
        file as corrupt.
        """

        if not isinstance(data, Mapping):
            raise ValueError("Updater state must be an object")
        raw_version = data.get("current_version")
        if not isinstance(raw_version, str):
            raise ValueError("Updater state is missing current_version")
        raw_release = data.get("available_release")
        release = AvailableRelease.from_json(raw_release) if raw_release is not None else None
        return cls(
            current_version=parse_version(raw_version),
            last_check=_parse_timestamp(data.get("last_check")),
            available_release=release,
            check_interval_seconds=check_interval_seconds,
        )


def utc_now() -> datetime.datetime:
    return datetime.datetime.now(datetime.timezone.utc)


def _format_timestamp(value: datetime.datetime | None) -> str | None:
    if value is None:
        return None
    return value.isoformat()


def _parse_timestamp(raw: Any) -> datetime.datetime | None:
    if raw is None:
        return None
    if not isinstance(raw, str):
        raise ValueError(f"Invalid timestamp: {raw!r}")
    parsed = datetime.datetime.fromisoformat(raw)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=datetime.timezone.utc)
    return parsed


__all__ = ["AvailableRelease", "PersistedState", "utc_now"]
