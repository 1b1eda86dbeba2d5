"""Coordinate periodic release checks for short-lived workflow processes.

The workflow process exits after every invocation, so everything the
coordinator learns is written back to the workflow cache directory straight
away.  A release check is started with :meth:`UpdateCoordinator.init` and
resolved later with :meth:`UpdateCoordinator.update_ready` (blocking) or
:meth:`UpdateCoordinator.try_update_ready` (non-blocking)::

    coordinator = UpdateCoordinator.github("spamwax/alfred-pinboard-rs")
    coordinator.init()
    ...  # produce the workflow's own results
    if coordinator.try_update_ready():
        ...  # tell the user a new release is available

The very first check after installation never reports an update.
"""

from __future__ import annotations

import copy
import datetime
import logging
from pathlib import Path
from typing import Callable

from app.config import UpdaterConfig, get_updater_config
from app.environment import (
    ProcessEnvironment,
    WorkflowEnvironment,
    require_cache_dir,
    sanitize_name,
    workflow_name,
    workflow_uid,
)
from services.update.constants import (
    ASYNC_STATUS_FILE_NAME,
    DEFAULT_VERSION,
    DOWNLOAD_FILE_EXTENSION,
    DOWNLOAD_FILE_PREFIX,
    STATE_FILE_SUFFIX,
)
from services.update.models import NoReleaseInfoError, StateStoreError, VersionParseError
from services.update.providers import GitHubReleaseSource, ReleaseSource
from services.update.release_assets import download_release
from services.update.state import AvailableRelease, PersistedState, utc_now
from services.update.versioning import SemanticVersion, parse_version
from services.update.worker import (
    SlotState,
    WorkerChannel,
    WorkerSlot,
    run_release_check,
    start_release_worker,
)
from shared.data_store import JsonStateStore
from shared.result import Result


_LOGGER = logging.getLogger(__name__)

Clock = Callable[[], datetime.datetime]


class UpdateCoordinator:
    """Decide when to ask a :class:`ReleaseSource` for news and remember the answer."""

    def __init__(
        self,
        state: PersistedState,
        release_source: ReleaseSource,
        *,
        environment: WorkflowEnvironment,
        store: JsonStateStore,
        config: UpdaterConfig,
        clock: Clock = utc_now,
    ) -> None:
        self._state = state
        self._release_source = release_source
        self._environment = environment
        self._store = store
        self._config = config
        self._clock = clock
        self._slot = WorkerSlot()
        self._inline_check = False

    @classmethod
    def load_or_create(
        cls,
        release_source: ReleaseSource,
        *,
        environment: WorkflowEnvironment | None = None,
        store: JsonStateStore | None = None,
        config: UpdaterConfig | None = None,
        clock: Clock = utc_now,
    ) -> "UpdateCoordinator":
        """Restore the saved updater state, or create and save a fresh one.

        A missing or corrupt state file is replaced.  The version reported by
        the environment replaces the saved one only when it is newer; when no
        state exists it must parse, otherwise :class:`VersionParseError` is
        raised.
        """

        environment = environment or ProcessEnvironment()
        store = store or JsonStateStore()
        config = config or get_updater_config()
        state_path = build_state_path(environment)
        env_version = environment.version()

        state = _load_state(store, state_path, config.check_interval_seconds)
        if state is not None:
            coordinator = cls(
                state,
                release_source,
                environment=environment,
                store=store,
                config=config,
                clock=clock,
            )
            coordinator._adopt_newer_environment_version(env_version)
            return coordinator

        current_version = parse_version(env_version) if env_version else parse_version(DEFAULT_VERSION)
        state = PersistedState(
            current_version=current_version,
            check_interval_seconds=config.check_interval_seconds,
        )
        _LOGGER.debug("Creating updater state at %s for version %s", state_path, current_version)
        coordinator = cls(
            state,
            release_source,
            environment=environment,
            store=store,
            config=config,
            clock=clock,
        )
        coordinator._save()
        return coordinator

    @classmethod
    def github(
        cls,
        repo_name: str,
        *,
        environment: WorkflowEnvironment | None = None,
        store: JsonStateStore | None = None,
        config: UpdaterConfig | None = None,
    ) -> "UpdateCoordinator":
        """Build a coordinator for a workflow released on ``github.com/<repo_name>``."""

        config = config or get_updater_config()
        source = GitHubReleaseSource(
            repo_name,
            api_url=config.github_api_url,
            timeout=config.request_timeout_seconds,
            user_agent=config.user_agent,
        )
        return cls.load_or_create(source, environment=environment, store=store, config=config)

    @property
    def current_version(self) -> SemanticVersion:
        return self._state.current_version

    @property
    def last_check(self) -> datetime.datetime | None:
        return self._state.last_check

    @property
    def available_release(self) -> AvailableRelease | None:
        return self._state.available_release

    @property
    def check_interval_seconds(self) -> int:
        return self._state.check_interval_seconds

    @property
    def release_source(self) -> ReleaseSource:
        return self._release_source

    @property
    def worker_state(self) -> SlotState:
        return self._slot.state

    @property
    def state_path(self) -> Path:
        return build_state_path(self._environment)

    @property
    def status_path(self) -> Path:
        return self.state_path.with_name(ASYNC_STATUS_FILE_NAME)

    @property
    def download_path(self) -> Path:
        return build_download_path(self._environment)

    def set_version(self, version: str) -> None:
        """Override the workflow version and save it; ``version`` must be a semantic version."""

        self._state.current_version = parse_version(version)
        self._save()

    def set_interval(self, seconds: int) -> None:
        """Set the minimum number of seconds between network checks for this process."""

        if isinstance(seconds, bool) or int(seconds) < 0:
            raise ValueError(f"Check interval must be a non-negative number of seconds: {seconds!r}")
        self._state.check_interval_seconds = int(seconds)

    def due_to_check(self) -> bool:
        """Return ``True`` if the release source should be asked again."""

        last_check = self._state.last_check
        if last_check is None:
            return True
        elapsed = self._clock() - last_check
        return elapsed > datetime.timedelta(seconds=self._state.check_interval_seconds)

    def init(self) -> None:
        """Start resolving the latest release, in the background when the network is needed.

        Replaces any check started earlier.
        """

        channel = self._start_check(run_inline=False)
        self._slot.pending(channel)
        self._inline_check = False

    def update_ready(self, timeout: float | None = None) -> bool:
        """Return whether a newer release is available, waiting for the worker if needed.

        Without a prior :meth:`init` the check runs synchronously.  ``timeout``
        bounds the wait and raises :class:`UpdateNotReadyError` when exceeded.
        """

        return self._resolve(block=True, timeout=timeout)

    def try_update_ready(self) -> bool:
        """Like :meth:`update_ready` but raise :class:`UpdateNotReadyError` instead of waiting."""

        return self._resolve(block=False, timeout=None)

    def download_latest(self) -> Path:
        """Download the known release bundle into the workflow cache directory."""

        release = self._state.available_release
        if release is None:
            raise NoReleaseInfoError("No release info available yet; check update_ready() first")
        return download_release(
            release,
            self.download_path,
            timeout=self._config.request_timeout_seconds,
            user_agent=self._config.user_agent,
        )

    def _start_check(self, *, run_inline: bool) -> WorkerChannel:
        status_path = self.status_path
        channel = WorkerChannel()

        if self._state.last_check is None:
            _LOGGER.info("First update check since installation; no update will be reported")
            self._state.last_check = self._clock()
            self._save()
            channel.send(Result.ok(None))
        elif self.due_to_check():
            source = copy.copy(self._release_source)
            store = self._store

            def remember_status(release: AvailableRelease) -> None:
                store.save(status_path, release.to_json())

            if run_inline:
                run_release_check(source, channel, remember_status, clock=self._clock)
            else:
                start_release_worker(source, channel, remember_status, clock=self._clock)
        else:
            _LOGGER.debug("Skipping network check; last check was at %s", self._state.last_check)
            channel.send(Result.ok(self._read_cached_status(status_path)))
        return channel

    def _resolve(self, *, block: bool, timeout: float | None) -> bool:
        if self._slot.is_not_started():
            _LOGGER.debug("No release check in progress; checking synchronously")
            self._slot.pending(self._start_check(run_inline=True))
            self._inline_check = True

        if self._slot.is_pending():
            channel = self._slot.channel
            assert channel is not None
            payload = channel.receive(block=block, timeout=timeout)
            if payload.is_err():
                self._save_best_effort()
                if self._inline_check:
                    self._slot.reset()
                assert payload.error is not None
                raise payload.error
            self._merge(payload.value)
            self._slot.resolve(payload.value)
            self._save()

        return self._is_newer_release_known()

    def _merge(self, release: AvailableRelease | None) -> None:
        self._state.available_release = release
        if release is None or release.fetched_at is None:
            return
        last_check = self._state.last_check
        if last_check is None or last_check < release.fetched_at:
            self._state.last_check = release.fetched_at

    def _is_newer_release_known(self) -> bool:
        release = self._state.available_release
        if release is None:
            return False
        if release.version > self._state.current_version:
            _LOGGER.info("Update available: %s -> %s", self._state.current_version, release.version)
            return True
        return False

    def _read_cached_status(self, status_path: Path) -> AvailableRelease | None:
        raw = self._store.load(status_path)
        if raw is None:
            return None
        try:
            release = AvailableRelease.from_json(raw)
        except ValueError as exc:
            _LOGGER.debug("Ignoring unreadable release status %s: %s", status_path, exc)
            return None
        if release.version > self._state.current_version:
            return release
        return None

    def _adopt_newer_environment_version(self, env_version: str | None) -> None:
        if not env_version:
            return
        try:
            candidate = parse_version(env_version)
        except VersionParseError:
            _LOGGER.debug("Ignoring unparseable workflow version %r", env_version)
            return
        if candidate > self._state.current_version:
            _LOGGER.info(
                "Workflow version changed from %s to %s",
                self._state.current_version,
                candidate,
            )
            self._state.current_version = candidate
            self._save()

    def _save(self) -> None:
        self._store.save(self.state_path, self._state.to_json())

    def _save_best_effort(self) -> None:
        try:
            self._save()
        except StateStoreError:
            _LOGGER.warning("Unable to save updater state after a failed check", exc_info=True)


def build_state_path(environment: WorkflowEnvironment) -> Path:
    """Return ``<cache>/<uid>-<sanitized name>-updater.json``."""

    file_name = (
        f"{workflow_uid(environment)}-{sanitize_name(workflow_name(environment))}{STATE_FILE_SUFFIX}"
    )
    return require_cache_dir(environment) / file_name


def build_download_path(environment: WorkflowEnvironment) -> Path:
    """Return ``<cache>/latest_release_<sanitized name or uid>.alfredworkflow``."""

    name = environment.name()
    stem = sanitize_name(name) if name else workflow_uid(environment)
    return require_cache_dir(environment) / f"{DOWNLOAD_FILE_PREFIX}{stem}{DOWNLOAD_FILE_EXTENSION}"


def _load_state(store: JsonStateStore, path: Path, check_interval_seconds: int) -> PersistedState | None:
    raw = store.load(path)
    if raw is None:
        return None
    try:
        return PersistedState.from_json(raw, check_interval_seconds=check_interval_seconds)
    except ValueError as exc:
        _LOGGER.warning("Discarding corrupt updater state %s: %s", path, exc)
        return None


__all__ = ["UpdateCoordinator", "build_download_path", "build_state_path"]
