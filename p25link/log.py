"""Levelled logging to a daily UTC log file and to standard output."""

from __future__ import annotations

import os
import sys
import threading
from dataclasses import dataclass
from datetime import date, datetime, timezone
from enum import IntEnum
from typing import TextIO


class LogLevel(IntEnum):
    DEBUG = 1
    MESSAGE = 2
    INFO = 3
    WARNING = 4
    ERROR = 5
    FATAL = 6


_LETTERS = {
    LogLevel.DEBUG: "D",
    LogLevel.MESSAGE: "M",
    LogLevel.INFO: "I",
    LogLevel.WARNING: "W",
    LogLevel.ERROR: "E",
    LogLevel.FATAL: "F",
}


@dataclass
class _LogState:
    file_level: int = 2
    display_level: int = 2
    file_path: str = ""
    file_root: str = ""
    stream: TextIO | None = None
    opened: date | None = None


_state = _LogState()
_lock = threading.RLock()


def _close() -> None:
    if _state.stream is not None:
        _state.stream.close()
        _state.stream = None


def _open() -> bool:
    if _state.file_level == 0:
        return True

    today = datetime.now(timezone.utc).date()
    if today == _state.opened and _state.stream is not None:
        return True
    _close()

    filename = os.path.join(_state.file_path, f"{_state.file_root}-{today:%Y-%m-%d}.log")
    _state.opened = today
    try:
        _state.stream = open(filename, "a", encoding="utf-8")
    except OSError:
        return False
    return True


def initialise(file_path: str, file_root: str, file_level: int, display_level: int) -> None:
    """Configure logging; raises OSError if the log file cannot be opened."""
    with _lock:
        _close()
        _state.file_path = file_path
        _state.file_root = file_root
        _state.file_level = file_level
        _state.display_level = display_level
        _state.opened = None
        if not _open():
            raise OSError(f"unable to open the log file in {file_path}")


def finalise() -> None:
    """Close the log file."""
    with _lock:
        _close()


def log(level: int, message: str) -> None:
    """Write a message at the given level; a fatal message exits the process."""
    level = LogLevel(level)
    now = datetime.now(timezone.utc)
    line = (
        f"{_LETTERS[level]}: {now:%Y-%m-%d %H:%M:%S}.{now.microsecond // 1000:03d} {message}"
    )

    with _lock:
        if _state.file_level != 0 and level >= _state.file_level:
            if not _open():
                return
            assert _state.stream is not None
            _state.stream.write(line + "\n")
            _state.stream.flush()

        if _state.display_level != 0 and level >= _state.display_level:
            sys.stdout.write(line + "\n")
            sys.stdout.flush()

        if level == LogLevel.FATAL:
            _close()
            raise SystemExit(1)


def debug(message: str) -> None:
    log(LogLevel.DEBUG, message)


def message(message: str) -> None:
    log(LogLevel.MESSAGE, message)


def info(message: str) -> None:
    log(LogLevel.INFO, message)


def warning(message: str) -> None:
    log(LogLevel.WARNING, message)


def error(message: str) -> None:
    log(LogLevel.ERROR, message)


def fatal(message: str) -> None:
    log(LogLevel.FATAL, message)