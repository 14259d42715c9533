"""Helper utilities for the dashboard's logger hierarchy."""

from __future__ import annotations

import logging
from pathlib import Path
import sys
import threading
from types import TracebackType
from typing import Optional, Union

PACKAGE_FOLDER_NAME = Path(__file__).resolve().parent.name

BASE_LOGGER = logging.getLogger(PACKAGE_FOLDER_NAME)
BASE_LOGGER.propagate = True

LOG_FORMAT = "%(asctime)s [%(levelname)s] [%(name)s] %(message)s"
LOG_DATE_FORMAT = "%Y-%m-%d %H:%M:%S"

_EXCEPTION_HOOKS_INSTALLED = False
_DEFAULT_THREAD_PREFIXES = (
    "journal",
    "watchdog",
    "elite-dashboard",
)


def get_logger(suffix: str | None = None) -> logging.Logger:
    """Return the shared package logger or one of its children."""

    if suffix is None:
        return BASE_LOGGER
    logger = BASE_LOGGER.getChild(suffix)
    logger.propagate = True
    logger.setLevel(logging.NOTSET)
    return logger


def set_log_level(level: int) -> None:
    """Update the base logger level (and implicitly its children)."""

    BASE_LOGGER.setLevel(level)


def coerce_log_level(value: Union[int, str, None], default: int = logging.INFO) -> int:
    """Translate a level name or number into a ``logging`` level."""

    if isinstance(value, int):
        return value
    if isinstance(value, str):
        candidate = value.strip()
        if not candidate:
            return default
        if candidate.isdigit():
            return int(candidate)
        level = logging.getLevelName(candidate.upper())
        if isinstance(level, int):
            return level
    return default


def configure_logging(level: int = logging.INFO) -> None:
    """Install a console handler on the root logger for command-line runs."""

    logging.basicConfig(level=level, format=LOG_FORMAT, datefmt=LOG_DATE_FORMAT)
    set_log_level(level)


def install_exception_logging(logger: Optional[logging.Logger] = None) -> None:
    """Route unhandled exceptions raised from dashboard code to the package log."""

    global _EXCEPTION_HOOKS_INSTALLED
    if _EXCEPTION_HOOKS_INSTALLED:
        return

    target_logger = logger or BASE_LOGGER

    def _traceback_mentions_package(tb: TracebackType | None) -> bool:
        while tb is not None:
            try:
                filename = tb.tb_frame.f_code.co_filename
            except Exception:
                filename = ""
            if PACKAGE_FOLDER_NAME in filename:
                return True
            tb = tb.tb_next
        return False

    thread_prefixes = _DEFAULT_THREAD_PREFIXES
    prior_thread_hook = getattr(threading, "excepthook", None)

    def _thread_excepthook(args: threading.ExceptHookArgs) -> None:
        thread_name = args.thread.name if args.thread is not None else ""
        normalized = (thread_name or "").lower()
        should_log = any(normalized.startswith(prefix) for prefix in thread_prefixes)
        if not should_log:
            should_log = _traceback_mentions_package(args.exc_traceback)
        if should_log:
            target_logger.error(
                "Unhandled exception in thread %s",
                thread_name or "<unnamed>",
                exc_info=(args.exc_type, args.exc_value, args.exc_traceback),
            )
        if callable(prior_thread_hook) and prior_thread_hook is not _thread_excepthook:
            prior_thread_hook(args)

    if callable(prior_thread_hook):
        threading.excepthook = _thread_excepthook

    prior_sys_hook = sys.excepthook

    def _sys_excepthook(
        exc_type: type[BaseException],
        exc_value: BaseException,
        exc_traceback: TracebackType | None,
    ) -> None:
        if _traceback_mentions_package(exc_traceback):
            target_logger.error(
                "Unhandled exception",
                exc_info=(exc_type, exc_value, exc_traceback),
            )
        if callable(prior_sys_hook) and prior_sys_hook is not _sys_excepthook:
            prior_sys_hook(exc_type, exc_value, exc_traceback)

    sys.excepthook = _sys_excepthook
    _EXCEPTION_HOOKS_INSTALLED = True
