"""Error types raised by the update service."""

from __future__ import annotations

from app.environment import EnvironmentConfigError
from shared.data_store import StateStoreError


class UpdateError(RuntimeError):
    """Base class for failures raised while checking for or fetching updates."""


class VersionParseError(UpdateError, ValueError):
    """Raised when a string does not follow the semantic version grammar."""


class ReleaseFetchError(UpdateError):
    """Raised when release metadata cannot be retrieved from the remote host."""


class DownloadError(UpdateError):
    """Raised when a release bundle cannot be downloaded or saved."""


class UpdaterUsageError(UpdateError):
    """Raised when the coordinator API is used out of order."""


class ChannelDrainedError(UpdaterUsageError):
    """Raised when a worker channel is polled after its only value was taken."""


class NoReleaseInfoError(UpdaterUsageError):
    """Raised when a download is requested before any release is known."""


class UpdateNotReadyError(UpdateError):
    """Raised by non-blocking polls while the background check is still running."""


__all__ = [
    "ChannelDrainedError",
    "DownloadError",
    "EnvironmentConfigError",
    "NoReleaseInfoError",
    "ReleaseFetchError",
    "StateStoreError",
    "UpdateError",
    "UpdateNotReadyError",
    "UpdaterUsageError",
    "VersionParseError",
]
