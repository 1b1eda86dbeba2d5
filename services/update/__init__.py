"""Public API for the update service package."""

from __future__ import annotations

from services.update.builder import build_release_source, build_update_coordinator, check_for_update
from services.update.constants import (
    ASYNC_STATUS_FILE_NAME,
    GITHUB_API_URL,
    LOCAL_RELEASE_ENV,
    UPDATE_INTERVAL_SECONDS,
)
from services.update.coordinator import UpdateCoordinator, build_download_path, build_state_path
from services.update.models import (
    ChannelDrainedError,
    DownloadError,
    EnvironmentConfigError,
    NoReleaseInfoError,
    ReleaseFetchError,
    StateStoreError,
    UpdateError,
    UpdateNotReadyError,
    UpdaterUsageError,
    VersionParseError,
)
from services.update.providers import (
    BaseReleaseSource,
    GitHubReleaseSource,
    LocalFolderReleaseSource,
    ReleaseSource,
)
from services.update.release_assets import download_release
from services.update.state import AvailableRelease, PersistedState
from services.update.versioning import SemanticVersion, is_version_newer, parse_release_tag, parse_version
from services.update.worker import SlotState, WorkerChannel, WorkerSlot

__all__ = [
    "ASYNC_STATUS_FILE_NAME",
    "GITHUB_API_URL",
    "LOCAL_RELEASE_ENV",
    "UPDATE_INTERVAL_SECONDS",
    "AvailableRelease",
    "BaseReleaseSource",
    "ChannelDrainedError",
    "DownloadError",
    "EnvironmentConfigError",
    "GitHubReleaseSource",
    "LocalFolderReleaseSource",
    "NoReleaseInfoError",
    "PersistedState",
    "ReleaseFetchError",
    "ReleaseSource",
    "SemanticVersion",
    "SlotState",
    "StateStoreError",
    "UpdateCoordinator",
    "UpdateError",
    "UpdateNotReadyError",
    "UpdaterUsageError",
    "VersionParseError",
    "WorkerChannel",
    "WorkerSlot",
    "build_download_path",
    "build_release_source",
    "build_state_path",
    "build_update_coordinator",
    "check_for_update",
    "download_release",
    "is_version_newer",
    "parse_release_tag",
    "parse_version",
]
