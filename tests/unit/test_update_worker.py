from __future__ import annotations

import pytest

from services.update import (
    ChannelDrainedError,
    ReleaseFetchError,
    SlotState,
    StateStoreError,
    UpdateNotReadyError,
    UpdaterUsageError,
    WorkerChannel,
    WorkerSlot,
)
from services.update.worker import run_release_check, start_release_worker
from shared.result import Result
from tests.unit.update_test_utils import FixedClock, START_TIME, StaticReleaseSource


def test_channel_delivers_exactly_one_value() -> None:
    channel = WorkerChannel()
    channel.send(Result.ok(None))

    with pytest.raises(UpdaterUsageError):
        channel.send(Result.ok(None))

    assert channel.receive().is_ok()
    assert channel.drained
    with pytest.raises(ChannelDrainedError):
        channel.receive()


def test_non_blocking_receive_on_empty_channel_is_not_ready() -> None:
    channel = WorkerChannel()

    with pytest.raises(UpdateNotReadyError):
        channel.receive(block=False)
    with pytest.raises(UpdateNotReadyError):
        channel.receive(timeout=0.01)
    assert not channel.drained


def test_release_check_sends_stamped_release() -> None:
    channel = WorkerChannel()
    seen = []

    run_release_check(StaticReleaseSource("2.0.0"), channel, seen.append, clock=FixedClock())

    payload = channel.receive()
    assert payload.is_ok()
    assert str(payload.value.version) == "2.0.0"
    assert payload.value.fetched_at == START_TIME
    assert seen == [payload.value]


def test_release_check_reports_source_errors() -> None:
    channel = WorkerChannel()
    error = ReleaseFetchError("offline")

    run_release_check(StaticReleaseSource(error=error), channel)

    payload = channel.receive()
    assert payload.is_err()
    assert payload.error is error
    with pytest.raises(ReleaseFetchError):
        payload.unwrap()


def test_release_check_reports_status_write_errors() -> None:
    channel = WorkerChannel()

    def failing_writer(release) -> None:
        raise OSError("disk full")

    run_release_check(StaticReleaseSource("2.0.0"), channel, failing_writer)

    payload = channel.receive()
    assert isinstance(payload.error, ReleaseFetchError)
    assert isinstance(payload.error.__cause__, OSError)


def test_release_check_keeps_state_store_errors() -> None:
    channel = WorkerChannel()
    error = StateStoreError("read-only cache")

    def failing_writer(release) -> None:
        raise error

    run_release_check(StaticReleaseSource("2.0.0"), channel, failing_writer)

    assert channel.receive().error is error


def test_release_check_wraps_unexpected_source_errors() -> None:
    channel = WorkerChannel()
    error = KeyError("tag_name")

    run_release_check(StaticReleaseSource(error=error, project_id="acme/tool"), channel)

    payload = channel.receive()
    assert isinstance(payload.error, ReleaseFetchError)
    assert payload.error.__cause__ is error
    assert "acme/tool" in str(payload.error)
    with pytest.raises(ReleaseFetchError):
        payload.unwrap()


def test_release_worker_runs_on_daemon_thread() -> None:
    channel = WorkerChannel()

    thread = start_release_worker(StaticReleaseSource("2.0.0"), channel)
    thread.join(timeout=5)

    assert thread.daemon
    assert thread.name == "workflow-update-check"
    assert str(channel.receive(timeout=5).value.version) == "2.0.0"


def test_slot_moves_from_pending_to_resolved() -> None:
    slot = WorkerSlot()
    assert slot.is_not_started()

    with pytest.raises(UpdaterUsageError):
        slot.resolve(None)

    channel = WorkerChannel()
    slot.pending(channel)
    assert slot.is_pending()
    assert slot.channel is channel

    slot.resolve(None)
    assert slot.state is SlotState.RESOLVED
    assert slot.channel is None
    assert slot.payload is None

    slot.reset()
    assert slot.is_not_started()
