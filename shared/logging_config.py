"""Logging setup for hosts and the command line running update checks.

The updater modules only ever call ``logging.getLogger(__name__)``; hosts
that do not configure logging themselves call :func:`ensure_app_logging`
once so update checks leave a trace on disk. Records carry the thread name
because every check runs on its own ``updater-<owner>/<repo>`` thread.

Two environment variables allow customising where the log file is written:

``UPDATER_LOG_FILE``
    Absolute path to the log file that should be created.

``UPDATER_LOG_DIR``
    Directory where the default log file name will be created.  Ignored when
    ``UPDATER_LOG_FILE`` is present.
"""

from __future__ import annotations

import logging
import os
import sys
from pathlib import Path
from typing import Iterable

_LOG_FILE_ENV = "UPDATER_LOG_FILE"
_LOG_DIR_ENV = "UPDATER_LOG_DIR"
_DEFAULT_DIRNAME = ".release_updater"
_DEFAULT_LOGNAME = "updater.log"
_HANDLER_TAG = "_release_updater_logging_handler"
_LOG_PATH: Path | None = None
_FILE_HANDLER: logging.FileHandler | None = None


def ensure_app_logging(*, verbose: bool = False) -> Path:
    """Configure the root logger once and return the log file path.

    The file records INFO and above, or everything including download
    progress and merge details when ``verbose`` is set. A console handler is
    added only when stderr is interactive. Later calls keep the existing
    handlers and can only switch the file to verbose.
    """

    global _LOG_PATH, _FILE_HANDLER

    if _FILE_HANDLER is not None and _LOG_PATH is not None:
        if verbose and _FILE_HANDLER.level > logging.DEBUG:
            _FILE_HANDLER.setLevel(logging.DEBUG)
            logging.getLogger(__name__).info("Verbose updater logging enabled")
        return _LOG_PATH

    log_path = _resolve_log_path()
    log_path.parent.mkdir(parents=True, exist_ok=True)

    root = logging.getLogger()
    root.setLevel(logging.DEBUG)

    formatter = logging.Formatter(
        "%(asctime)s %(levelname)s [%(threadName)s] [%(name)s] %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setLevel(logging.DEBUG if verbose else logging.INFO)
    file_handler.setFormatter(formatter)
    setattr(file_handler, _HANDLER_TAG, True)
    root.addHandler(file_handler)

    if _should_log_to_stderr(root.handlers):
        stream_handler = logging.StreamHandler()
        stream_handler.setLevel(logging.INFO)
        stream_handler.setFormatter(formatter)
        setattr(stream_handler, _HANDLER_TAG, True)
        root.addHandler(stream_handler)

    _FILE_HANDLER = file_handler
    _LOG_PATH = log_path

    logging.getLogger(__name__).info(
        "Writing updater logs to %s (verbose=%s)", log_path, verbose
    )
    return log_path


def _resolve_log_path() -> Path:
    env_file = os.environ.get(_LOG_FILE_ENV)
    if env_file:
        return Path(env_file).expanduser()

    env_dir = os.environ.get(_LOG_DIR_ENV)
    if env_dir:
        return Path(env_dir).expanduser() / _DEFAULT_LOGNAME

    return Path.home() / _DEFAULT_DIRNAME / "logs" / _DEFAULT_LOGNAME


def _should_log_to_stderr(handlers: Iterable[logging.Handler]) -> bool:
    stderr = getattr(sys, "stderr", None)
    is_tty = getattr(stderr, "isatty", None)
    if not callable(is_tty):
        return False
    try:
        if not is_tty():
            return False
    except (OSError, ValueError):  # pragma: no cover - closed or detached stream
        return False

    for handler in handlers:
        if isinstance(handler, logging.StreamHandler) and handler.stream is stderr:
            return False
    return True


def _reset_for_tests() -> None:
    """Remove handlers installed by :func:`ensure_app_logging`."""

    global _LOG_PATH, _FILE_HANDLER

    root = logging.getLogger()
    for handler in list(root.handlers):
        if getattr(handler, _HANDLER_TAG, False):
            root.removeHandler(handler)
            handler.close()

    _LOG_PATH = None
    _FILE_HANDLER = None


__all__ = ["ensure_app_logging"]
