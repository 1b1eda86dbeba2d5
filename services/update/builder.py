"""Helpers for constructing update coordinators and running a guarded check."""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Mapping

from app.config import UpdaterConfig, get_updater_config
from app.environment import EnvironmentConfigError, ProcessEnvironment, WorkflowEnvironment
from services.update.constants import LOCAL_RELEASE_ENV
from services.update.coordinator import UpdateCoordinator
from services.update.models import StateStoreError, UpdateError
from services.update.providers import GitHubReleaseSource, LocalFolderReleaseSource, ReleaseSource
from shared.data_store import JsonStateStore


_LOGGER = logging.getLogger(__name__)


def build_release_source(
    project_id: str,
    environ: Mapping[str, str] | None = None,
    config: UpdaterConfig | None = None,
) -> ReleaseSource:
    """Return a local release folder when one is configured, GitHub otherwise."""

    environ = os.environ if environ is None else environ
    local_dir = environ.get(LOCAL_RELEASE_ENV)
    if local_dir:
        folder = Path(local_dir).expanduser()
        if folder.exists():
            _LOGGER.info("Using local release source at %s", folder)
            return LocalFolderReleaseSource(folder, project_id=project_id)
        _LOGGER.warning("Configured local release directory does not exist: %s", folder)

    config = config or get_updater_config()
    return GitHubReleaseSource(
        project_id,
        api_url=config.github_api_url,
        timeout=config.request_timeout_seconds,
        user_agent=config.user_agent,
    )


def build_update_coordinator(
    project_id: str,
    environment: WorkflowEnvironment | None = None,
    *,
    store: JsonStateStore | None = None,
    config: UpdaterConfig | None = None,
    environ: Mapping[str, str] | None = None,
) -> UpdateCoordinator:
    """Construct an :class:`UpdateCoordinator` for the running workflow."""

    config = config or get_updater_config()
    environment = environment or ProcessEnvironment(environ)
    source = build_release_source(project_id, environ=environ, config=config)
    return UpdateCoordinator.load_or_create(
        source,
        environment=environment,
        store=store,
        config=config,
    )


def check_for_update(coordinator: UpdateCoordinator, *, timeout: float | None = None) -> bool:
    """Start a check and wait up to ``timeout`` seconds for it.

    Failures are logged and reported as "no update" so the workflow can carry
    on producing its own results.
    """

    try:
        coordinator.init()
        return coordinator.update_ready(timeout=timeout)
    except (UpdateError, StateStoreError, EnvironmentConfigError) as exc:
        _LOGGER.warning("Update check failed: %s", exc)
        return False


__all__ = [
    "build_release_source",
    "build_update_coordinator",
    "check_for_update",
]
