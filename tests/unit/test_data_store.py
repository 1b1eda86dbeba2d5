from __future__ import annotations

import json
from pathlib import Path

import pytest

from app.environment import EnvironmentConfigError, StaticEnvironment
from shared.data_store import (
    JsonStateStore,
    StateStoreError,
    WorkflowData,
    load_from_cache,
    save_to_cache,
)


def _environment(tmp_path: Path) -> StaticEnvironment:
    return StaticEnvironment(
        workflow_uid="workflow.ABC",
        workflow_data_dir=tmp_path / "data",
        workflow_cache_dir=tmp_path / "cache",
    )


def test_save_creates_directories_and_leaves_no_temp_files(tmp_path: Path) -> None:
    target = tmp_path / "nested" / "state.json"

    JsonStateStore().save(target, {"b": 1, "a": [1, 2]})

    assert json.loads(target.read_text(encoding="utf-8")) == {"a": [1, 2], "b": 1}
    assert [path.name for path in target.parent.iterdir()] == ["state.json"]


def test_save_replaces_existing_document(tmp_path: Path) -> None:
    store = JsonStateStore()
    target = tmp_path / "state.json"
    store.save(target, {"version": 1})
    store.save(target, {"version": 2})

    assert store.load(target) == {"version": 2}


def test_load_treats_missing_and_corrupt_files_as_absent(tmp_path: Path) -> None:
    store = JsonStateStore()
    corrupt = tmp_path / "corrupt.json"
    corrupt.write_text("{", encoding="utf-8")

    assert store.load(tmp_path / "missing.json") is None
    assert store.load(corrupt) is None


def test_save_reports_unwritable_destination(tmp_path: Path) -> None:
    blocker = tmp_path / "blocker"
    blocker.write_text("not a directory", encoding="utf-8")

    with pytest.raises(StateStoreError):
        JsonStateStore().save(blocker / "state.json", {"value": 1})


def test_save_reports_unserialisable_values(tmp_path: Path) -> None:
    target = tmp_path / "state.json"

    with pytest.raises(StateStoreError):
        JsonStateStore().save(target, {"value": object()})
    assert not target.exists()


def test_state_store_error_is_an_os_error() -> None:
    assert issubclass(StateStoreError, OSError)


def test_workflow_data_writes_through(tmp_path: Path) -> None:
    environment = _environment(tmp_path)

    settings = WorkflowData.load("settings.json", environment)
    settings.set("token", "abc")
    settings.set("count", 3)

    reloaded = WorkflowData.load("settings.json", environment)
    assert reloaded.path == tmp_path / "data" / "settings.json"
    assert reloaded.get("token") == "abc"
    assert reloaded.get("count") == 3
    assert reloaded.get("missing", "fallback") == "fallback"
    assert len(reloaded) == 2

    reloaded.clear()
    assert len(reloaded) == 0
    assert WorkflowData.load("settings.json", environment).get("token") == "abc"


def test_workflow_data_uses_only_the_file_name(tmp_path: Path) -> None:
    data = WorkflowData.load("../elsewhere/settings.json", _environment(tmp_path))

    assert data.path == tmp_path / "data" / "settings.json"


def test_workflow_data_rejects_empty_name(tmp_path: Path) -> None:
    with pytest.raises(ValueError):
        WorkflowData.load("", _environment(tmp_path))


def test_workflow_data_requires_data_directory(tmp_path: Path) -> None:
    environment = StaticEnvironment(workflow_cache_dir=tmp_path / "cache")

    with pytest.raises(EnvironmentConfigError):
        WorkflowData.load("settings.json", environment)


def test_cache_helpers_round_trip(tmp_path: Path) -> None:
    environment = _environment(tmp_path)

    path = save_to_cache("results.json", {"items": ["a", "b"]}, environment)

    assert path == tmp_path / "cache" / "results.json"
    assert load_from_cache("results.json", environment) == {"items": ["a", "b"]}
    assert load_from_cache("other.json", environment) is None
