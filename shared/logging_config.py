"""Central logging configuration for workflows that embed the updater.

Alfred reads a workflow's result document from stdout, so the handlers
installed here only ever write to a log file and, when it is interactive, to
stderr.  Repeated calls are harmless: handlers are tagged and installed once.

The log file location is chosen from, in order:

* the ``log_dir`` argument of :func:`ensure_workflow_logging`;
* ``ALFRED_UPDATER_LOG_DIR``;
* the workflow cache directory announced by Alfred (``alfred_workflow_cache``);
* ``~/.alfred_workflow_updater/logs`` when Alfred did not announce one.
"""

from __future__ import annotations

import logging
import os
import sys
from enum import Enum
from pathlib import Path
from typing import Iterable, Mapping

from app.environment import CACHE_DIR_ENV

_LOG_DIR_ENV = "ALFRED_UPDATER_LOG_DIR"
_DEFAULT_DIRNAME = ".alfred_workflow_updater"
_DEFAULT_LOGNAME = "updater.log"
_CONFIGURED = False
_LOG_PATH: Path | None = None
_HANDLER_TAG = "_alfred_updater_logging_handler"
_FILE_HANDLER: logging.FileHandler | None = None


class LogVerbosity(str, Enum):
    """Verbosity levels supported by the updater log file."""

    DISABLED = "disabled"
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"
    VERBOSE = "verbose"


_VERBOSITY_LEVELS: dict[LogVerbosity, int] = {
    LogVerbosity.DISABLED: logging.CRITICAL + 1,
    LogVerbosity.ERROR: logging.ERROR,
    LogVerbosity.WARNING: logging.WARNING,
    LogVerbosity.INFO: logging.INFO,
    LogVerbosity.VERBOSE: logging.DEBUG,
}

_DEFAULT_VERBOSITY = LogVerbosity.INFO
_CURRENT_VERBOSITY = _DEFAULT_VERBOSITY


def ensure_workflow_logging(
    log_dir: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> Path:
    """Configure the root logger for a workflow process.

    The first invocation installs a file handler and, only when stderr is a
    terminal, a stderr handler at INFO.  Subsequent calls are no-ops and return
    the already configured log file path.
    """

    global _CONFIGURED, _LOG_PATH, _FILE_HANDLER

    if _CONFIGURED and _LOG_PATH is not None:
        return _LOG_PATH

    log_path = _resolve_log_path(log_dir, os.environ if environ is None else environ)
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(threadName)s %(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(_VERBOSITY_LEVELS[_CURRENT_VERBOSITY])
    file_handler.setFormatter(formatter)
    setattr(file_handler, _HANDLER_TAG, True)
    root.addHandler(file_handler)
    _FILE_HANDLER = file_handler

    if _should_log_to_stderr(root.handlers):
        stream_handler = logging.StreamHandler(sys.stderr)
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(formatter)
        setattr(stream_handler, _HANDLER_TAG, True)
        root.addHandler(stream_handler)

    _CONFIGURED = True
    _LOG_PATH = log_path

    logging.getLogger(__name__).debug(
        "Writing updater logs to %s (verbosity=%s)",
        log_path,
        _CURRENT_VERBOSITY.value,
    )
    return log_path


def set_file_log_verbosity(verbosity: LogVerbosity | str) -> None:
    """Adjust the minimum severity recorded in the log file."""

    global _CURRENT_VERBOSITY

    if isinstance(verbosity, str) and not isinstance(verbosity, LogVerbosity):
        try:
            verbosity = LogVerbosity(verbosity.lower())
        except ValueError as exc:
            raise ValueError(f"Unsupported log verbosity: {verbosity}") from exc

    ensure_workflow_logging()
    handler = _FILE_HANDLER
    if handler is None:  # pragma: no cover
        return

    _CURRENT_VERBOSITY = verbosity
    handler.setLevel(_VERBOSITY_LEVELS[verbosity])
    logging.getLogger(__name__).info("File log verbosity set to %s", verbosity.value)


def get_file_log_verbosity() -> LogVerbosity:
    return _CURRENT_VERBOSITY


def _resolve_log_path(log_dir: Path | str | None, environ: Mapping[str, str]) -> Path:
    if log_dir:
        return Path(log_dir).expanduser() / _DEFAULT_LOGNAME

    env_dir = environ.get(_LOG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser() / _DEFAULT_LOGNAME

    cache_dir = environ.get(CACHE_DIR_ENV)
    if cache_dir and cache_dir.strip():
        return Path(cache_dir.strip()).expanduser() / _DEFAULT_LOGNAME

    return Path.home() / _DEFAULT_DIRNAME / "logs" / _DEFAULT_LOGNAME


def _should_log_to_stderr(handlers: Iterable[logging.Handler]) -> bool:
    stderr = getattr(sys, "stderr", None)
    if stderr is None:
        return False
    is_tty = getattr(stderr, "isatty", None)
    if not callable(is_tty):
        return False
    try:
        if not is_tty():
            return False
    except (OSError, ValueError):
        return False

    for handler in handlers:
        if isinstance(handler, logging.StreamHandler) and handler.stream is stderr:
            return False
    return True


def _reset_for_tests() -> None:
    """Remove handlers installed by :func:`ensure_workflow_logging`."""

    global _CONFIGURED, _LOG_PATH, _FILE_HANDLER, _CURRENT_VERBOSITY

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    _CONFIGURED = False
    _LOG_PATH = None
    _FILE_HANDLER = None
    _CURRENT_VERBOSITY = _DEFAULT_VERBOSITY


__all__ = [
    "LogVerbosity",
    "ensure_workflow_logging",
    "get_file_log_verbosity",
    "set_file_log_verbosity",
]
