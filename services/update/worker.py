"""One-shot hand-off between the background release check and the coordinator."""

from __future__ import annotations

import datetime
import enum
import logging
import queue
import threading
from typing import Callable, Optional

from services.update.constants import WORKER_THREAD_NAME
from services.update.models import (
    ChannelDrainedError,
    ReleaseFetchError,
    StateStoreError,
    UpdateError,
    UpdateNotReadyError,
    UpdaterUsageError,
)
from services.update.providers import ReleaseSource
from services.update.state import AvailableRelease, utc_now
from shared.result import Result


_LOGGER = logging.getLogger(__name__)

ReleasePayload = Result[Optional[AvailableRelease], Exception]


class WorkerChannel:
    """Deliver exactly one :data:`ReleasePayload` from a worker to its consumer."""

    def __init__(self) -> None:
        self._queue: queue.Queue[ReleasePayload] = queue.Queue(maxsize=1)
        self._lock = threading.Lock()
        self._sent = False
        self._drained = False

    @property
    def drained(self) -> bool:
        return self._drained

    def send(self, payload: ReleasePayload) -> None:
        with self._lock:
            if self._sent:
                raise UpdaterUsageError("Worker channel already carries a value")
            self._sent = True
        self._queue.put_nowait(payload)

    def receive(self, *, block: bool = True, timeout: float | None = None) -> ReleasePayload:
        """Take the channel's value.

        Raises :class:`UpdateNotReadyError` when nothing arrived in time and
        :class:`ChannelDrainedError` once the value has already been taken.
        """

        if self._drained:
            raise ChannelDrainedError(
                "Release check result was already consumed; call init() to start a new check"
            )
        try:
            payload = self._queue.get(block=block, timeout=timeout if block else None)
        except queue.Empty as exc:
            raise UpdateNotReadyError("Release check has not finished yet") from exc
        self._drained = True
        return payload


class SlotState(enum.Enum):
    NOT_STARTED = "not_started"
    PENDING = "pending"
    RESOLVED = "resolved"


class WorkerSlot:
    """Track the single outstanding release check.

    ``NOT_STARTED`` -> ``PENDING(channel)`` -> ``RESOLVED(payload)``; the
    resolved payload is kept so later queries never touch the drained channel.
    """

    def __init__(self) -> None:
        self._state = SlotState.NOT_STARTED
        self._channel: WorkerChannel | None = None
        self._payload: AvailableRelease | None = None

    @property
    def state(self) -> SlotState:
        return self._state

    @property
    def channel(self) -> WorkerChannel | None:
        return self._channel

    @property
    def payload(self) -> AvailableRelease | None:
        return self._payload

    def is_not_started(self) -> bool:
        return self._state is SlotState.NOT_STARTED

    def is_pending(self) -> bool:
        return self._state is SlotState.PENDING

    def is_resolved(self) -> bool:
        return self._state is SlotState.RESOLVED

    def pending(self, channel: WorkerChannel) -> None:
        """Track ``channel``, replacing whatever check was tracked before."""

        self._state = SlotState.PENDING
        self._channel = channel
        self._payload = None

    def resolve(self, payload: AvailableRelease | None) -> None:
        if self._state is not SlotState.PENDING:
            raise UpdaterUsageError(f"Cannot resolve a release check in state {self._state.value}")
        self._state = SlotState.RESOLVED
        self._channel = None
        self._payload = payload

    def reset(self) -> None:
        self._state = SlotState.NOT_STARTED
        self._channel = None
        self._payload = None


def run_release_check(
    release_source: ReleaseSource,
    channel: WorkerChannel,
    on_payload: Callable[[AvailableRelease], None] | None = None,
    *,
    clock: Callable[[], datetime.datetime] = utc_now,
) -> None:
    """Ask ``release_source`` for its newest release and send the outcome on ``channel``.

    ``on_payload`` sees a successful release before it is sent; anything it
    raises is reported on the channel instead.  Errors outside the updater's own
    hierarchy are wrapped in :class:`ReleaseFetchError`.
    """

    _LOGGER.debug("Starting release check for %s", release_source.project_id)
    try:
        version, download_url = release_source.latest_release()
        release = AvailableRelease(version=version, download_url=download_url, fetched_at=clock())
        if on_payload is not None:
            on_payload(release)
    except (UpdateError, StateStoreError) as exc:
        _LOGGER.debug("Release check for %s failed: %s", release_source.project_id, exc)
        channel.send(Result.err(exc))
        return
    except Exception as exc:
        _LOGGER.debug("Release check for %s failed: %s", release_source.project_id, exc)
        error = ReleaseFetchError(f"Release check for {release_source.project_id} failed: {exc}")
        error.__cause__ = exc
        channel.send(Result.err(error))
        return
    _LOGGER.debug("Release check for %s found version %s", release_source.project_id, version)
    channel.send(Result.ok(release))


def start_release_worker(
    release_source: ReleaseSource,
    channel: WorkerChannel,
    on_payload: Callable[[AvailableRelease], None] | None = None,
    *,
    clock: Callable[[], datetime.datetime] = utc_now,
) -> threading.Thread:
    """Run :func:`run_release_check` on a daemon thread.

    The thread is never joined; if the host process exits first the result is
    simply lost.
    """

    thread = threading.Thread(
        target=run_release_check,
        args=(release_source, channel, on_payload),
        kwargs={"clock": clock},
        name=WORKER_THREAD_NAME,
        daemon=True,
    )
    thread.start()
    return thread


__all__ = [
    "ReleasePayload",
    "SlotState",
    "WorkerChannel",
    "WorkerSlot",
    "run_release_check",
    "start_release_worker",
]
