"""Constants shared across the update service modules."""

from __future__ import annotations

from app.config import GITHUB_API_URL, UPDATE_INTERVAL_SECONDS

GITHUB_LATEST_RELEASE_ENDPOINT = "/releases/latest"

STATE_FILE_SUFFIX = "-updater.json"
ASYNC_STATUS_FILE_NAME = "last_check_status_async.json"
DOWNLOAD_FILE_PREFIX = "latest_release_"
DOWNLOAD_FILE_EXTENSION = ".alfredworkflow"

# Asset suffixes in order of preference.
PREFERRED_ASSET_SUFFIX = "alfred3workflow"
GENERIC_ASSET_SUFFIX = "alfredworkflow"
UPLOADED_ASSET_STATE = "uploaded"

DEFAULT_VERSION = "0.0.0"
DOWNLOAD_CHUNK_SIZE = 0x10_0000

LOCAL_RELEASE_ENV = "ALFRED_UPDATER_LOCAL_DIR"
WORKER_THREAD_NAME = "workflow-update-check"
