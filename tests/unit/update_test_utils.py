from __future__ import annotations

import datetime
import io
import threading
from pathlib import Path

from app.config import UpdaterConfig
from app.environment import StaticEnvironment
from services.update import BaseReleaseSource, UpdateCoordinator
from shared.data_store import JsonStateStore


DEFAULT_DOWNLOAD_URL = "https://github.com/owner/repo/releases/download/v2.0.0/Workflow.alfredworkflow"
START_TIME = datetime.datetime(2024, 5, 1, 12, 0, 0, tzinfo=datetime.timezone.utc)


class FixedClock:
    def __init__(self, now: datetime.datetime = START_TIME) -> None:
        self.now = now

    def __call__(self) -> datetime.datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now = self.now + datetime.timedelta(seconds=seconds)


class StaticReleaseSource(BaseReleaseSource):
    """Release source returning a fixed answer; ``calls`` survives ``copy.copy``."""

    def __init__(
        self,
        version: str = "2.0.0",
        download_url: str = DEFAULT_DOWNLOAD_URL,
        *,
        error: Exception | None = None,
        project_id: str = "owner/repo",
    ) -> None:
        super().__init__(project_id)
        self.version = version
        self.download_url = download_url
        self.error = error
        self.calls: list[str] = []

    def fetch_latest_release(self) -> tuple[str, str]:
        self.calls.append(self.project_id)
        if self.error is not None:
            raise self.error
        return self.version, self.download_url


class BlockingReleaseSource(StaticReleaseSource):
    """Release source that waits for ``gate`` before answering."""

    def __init__(self, version: str = "2.0.0") -> None:
        super().__init__(version)
        self.gate = threading.Event()

    def fetch_latest_release(self) -> tuple[str, str]:
        if not self.gate.wait(timeout=5):
            raise AssertionError("Release gate was never opened")
        return super().fetch_latest_release()


class FakeResponse(io.BytesIO):
    status = 200

    def __enter__(self) -> "FakeResponse":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()


def workflow_environment(
    tmp_path: Path,
    *,
    uid: str | None = "workflow.ABC",
    name: str | None = "My/Work:flow",
    version: str | None = "1.0.0",
    with_cache_dir: bool = True,
) -> StaticEnvironment:
    return StaticEnvironment(
        workflow_uid=uid,
        workflow_name=name,
        workflow_version=version,
        workflow_data_dir=tmp_path / "data",
        workflow_cache_dir=tmp_path / "cache" if with_cache_dir else None,
    )


def make_coordinator(
    source: BaseReleaseSource,
    environment: StaticEnvironment,
    clock: FixedClock,
    *,
    check_interval_seconds: int = 86400,
) -> UpdateCoordinator:
    return UpdateCoordinator.load_or_create(
        source,
        environment=environment,
        store=JsonStateStore(),
        config=UpdaterConfig(check_interval_seconds=check_interval_seconds),
        clock=clock,
    )


def complete_first_check(
    environment: StaticEnvironment,
    clock: FixedClock,
    *,
    check_interval_seconds: int = 86400,
) -> None:
    """Run the post-install check so the next one may hit the release source."""

    coordinator = make_coordinator(
        StaticReleaseSource(), environment, clock, check_interval_seconds=check_interval_seconds
    )
    coordinator.init()
    assert coordinator.update_ready() is False


__all__ = [
    "BlockingReleaseSource",
    "DEFAULT_DOWNLOAD_URL",
    "FakeResponse",
    "FixedClock",
    "START_TIME",
    "StaticReleaseSource",
    "complete_first_check",
    "make_coordinator",
    "workflow_environment",
]
