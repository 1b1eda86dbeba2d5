from __future__ import annotations

import pytest

from app.config import reset_updater_config_cache
from app.environment import CACHE_DIR_ENV, DATA_DIR_ENV, NAME_ENV, UID_ENV, VERSION_ENV
from services.update import LOCAL_RELEASE_ENV


_ISOLATED_ENV_VARS = (
    UID_ENV,
    NAME_ENV,
    VERSION_ENV,
    DATA_DIR_ENV,
    CACHE_DIR_ENV,
    LOCAL_RELEASE_ENV,
    "ALFRED_UPDATER_LOG_DIR",
)


@pytest.fixture(autouse=True)
def isolate_workflow_environment(monkeypatch: pytest.MonkeyPatch):
    """Keep a developer's Alfred variables from leaking into the tests."""

    for name in _ISOLATED_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_updater_config_cache()
    yield
    reset_updater_config_cache()
