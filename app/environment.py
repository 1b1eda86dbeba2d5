"""Workflow identity and directory lookups.

Alfred exposes the running workflow's identity through environment variables.
The helpers here read them through a small provider interface so callers (and
tests) can inject fixed values instead of mutating the process environment.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Mapping, Protocol

UID_ENV = "alfred_workflow_uid"
NAME_ENV = "alfred_workflow_name"
VERSION_ENV = "alfred_workflow_version"
DATA_DIR_ENV = "alfred_workflow_data"
CACHE_DIR_ENV = "alfred_workflow_cache"

UNKNOWN_WORKFLOW_UID = "workflow.UNKNOWN-UID"
UNKNOWN_WORKFLOW_NAME = "YouForgotTo/フ:NameYourOwnWork}flowッ"


class EnvironmentConfigError(RuntimeError):
    """Raised when a required workflow directory lookup is missing."""


class WorkflowEnvironment(Protocol):
    """Optional lookups describing the running workflow."""

    def uid(self) -> str | None:
        ...

    def name(self) -> str | None:
        ...

    def version(self) -> str | None:
        ...

    def data_dir(self) -> Path | None:
        ...

    def cache_dir(self) -> Path | None:
        ...


class ProcessEnvironment:
    """Read workflow details from ``environ`` (``os.environ`` by default)."""

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        self._environ = environ

    def _lookup(self, key: str) -> str | None:
        environ = os.environ if self._environ is None else self._environ
        value = environ.get(key)
        if value is None or not value.strip():
            return None
        return value

    def uid(self) -> str | None:
        return self._lookup(UID_ENV)

    def name(self) -> str | None:
        return self._lookup(NAME_ENV)

    def version(self) -> str | None:
        return self._lookup(VERSION_ENV)

    def data_dir(self) -> Path | None:
        value = self._lookup(DATA_DIR_ENV)
        return Path(value).expanduser() if value else None

    def cache_dir(self) -> Path | None:
        value = self._lookup(CACHE_DIR_ENV)
        return Path(value).expanduser() if value else None


@dataclass(frozen=True)
class StaticEnvironment:
    """Fixed workflow details for embedding and tests."""

    workflow_uid: str | None = None
    workflow_name: str | None = None
    workflow_version: str | None = None
    workflow_data_dir: Path | None = None
    workflow_cache_dir: Path | None = None

    def uid(self) -> str | None:
        return self.workflow_uid

    def name(self) -> str | None:
        return self.workflow_name

    def version(self) -> str | None:
        return self.workflow_version

    def data_dir(self) -> Path | None:
        return self.workflow_data_dir

    def cache_dir(self) -> Path | None:
        return self.workflow_cache_dir


def require_cache_dir(environment: WorkflowEnvironment) -> Path:
    """Return the workflow cache directory or raise :class:`EnvironmentConfigError`."""

    cache_dir = environment.cache_dir()
    if cache_dir is None:
        raise EnvironmentConfigError(
            f"missing {CACHE_DIR_ENV}; forgot to set the workflow bundle id?"
        )
    return Path(cache_dir)


def require_data_dir(environment: WorkflowEnvironment) -> Path:
    """Return the workflow data directory or raise :class:`EnvironmentConfigError`."""

    data_dir = environment.data_dir()
    if data_dir is None:
        raise EnvironmentConfigError(
            f"missing {DATA_DIR_ENV}; forgot to set the workflow bundle id?"
        )
    return Path(data_dir)


def workflow_uid(environment: WorkflowEnvironment) -> str:
    return environment.uid() or UNKNOWN_WORKFLOW_UID


def workflow_name(environment: WorkflowEnvironment) -> str:
    return environment.name() or UNKNOWN_WORKFLOW_NAME


def sanitize_name(name: str) -> str:
    """Replace every character that is not an ASCII letter or digit with ``_``."""

    return "".join(
        character if character.isascii() and character.isalnum() else "_"
        for character in name
    )


__all__ = [
    "CACHE_DIR_ENV",
    "DATA_DIR_ENV",
    "EnvironmentConfigError",
    "NAME_ENV",
    "ProcessEnvironment",
    "StaticEnvironment",
    "UID_ENV",
    "UNKNOWN_WORKFLOW_NAME",
    "UNKNOWN_WORKFLOW_UID",
    "VERSION_ENV",
    "WorkflowEnvironment",
    "require_cache_dir",
    "require_data_dir",
    "sanitize_name",
    "workflow_name",
    "workflow_uid",
]
