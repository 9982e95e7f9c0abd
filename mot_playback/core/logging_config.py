"""Logging setup for the playback process.

Component loggers live under ``mot_playback`` and report mode transitions,
gap skips and slot changes at INFO. The per-tick cursor trace is written to
its own ``mot_playback.tick`` logger at DEBUG and is silenced unless tick
tracing is switched on: at 60 Hz it would otherwise bury every other DEBUG
line. Both levels can be changed at runtime through ``set_engine_log_level``
and ``set_tick_trace``.
"""

from __future__ import annotations

import contextlib
import logging
import sys
from collections import deque
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Optional, Union

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATEFMT = "%Y-%m-%d %H:%M:%S"
LOG_MAX_BYTES = 500 * 1024
LOG_BACKUP_COUNT = 2

ENGINE_LOGGER = "mot_playback"
TICK_LOGGER = "mot_playback.tick"
ACCESS_LOGGER = "aiohttp.access"

_log_file: Optional[Path] = None


def coerce_level(level: Union[int, str]) -> int:
    if isinstance(level, str):
        name = level.upper()
        if not isinstance(getattr(logging, name, None), int):
            raise ValueError(f"Unknown log level '{level}'")
        return getattr(logging, name)
    return int(level)


def set_engine_log_level(level: Union[int, str]) -> int:
    """Set the level of every ``mot_playback`` logger; returns the numeric level."""
    numeric_level = coerce_level(level)
    logging.getLogger(ENGINE_LOGGER).setLevel(numeric_level)
    # Request lines only when the operator asked for DEBUG.
    logging.getLogger(ACCESS_LOGGER).setLevel(logging.DEBUG if numeric_level <= logging.DEBUG else logging.ERROR)
    return numeric_level


def set_tick_trace(enabled: bool) -> None:
    logging.getLogger(TICK_LOGGER).setLevel(logging.DEBUG if enabled else logging.WARNING)


def tick_trace_enabled() -> bool:
    return logging.getLogger(TICK_LOGGER).isEnabledFor(logging.DEBUG)


def active_log_file() -> Optional[Path]:
    return _log_file


def logging_status() -> dict[str, Any]:
    return {
        "level": logging.getLevelName(logging.getLogger(ENGINE_LOGGER).getEffectiveLevel()).lower(),
        "tick_trace": tick_trace_enabled(),
        "log_file": str(_log_file) if _log_file else None,
    }


def tail_log_file(limit: int = 100) -> Optional[list[str]]:
    """Return the last ``limit`` lines of the active log file, or None without one."""
    if _log_file is None or not _log_file.exists():
        return None
    with _log_file.open("r", encoding="utf-8", errors="replace") as handle:
        return [line.rstrip("\n") for line in deque(handle, maxlen=limit)]


def configure_logging(
    level: Union[int, str] = logging.INFO,
    *,
    log_file: Optional[Union[str, Path]] = None,
    tick_trace: bool = False,
    console: bool = True,
) -> None:
    """Install the stdout and rotating file handlers on the root logger.

    Args:
        level: Level for the playback loggers (int or name such as "info").
        log_file: Optional path for a rotating file handler (500 KB, 2 backups).
        tick_trace: Emit the per-tick cursor trace at DEBUG.
        console: Whether to emit logs to stdout.
    """
    global _log_file
    numeric_level = coerce_level(level)
    root = logging.getLogger()

    for handler in list(root.handlers):
        root.removeHandler(handler)
        with contextlib.suppress(Exception):
            handler.close()

    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt=LOG_DATEFMT)

    if console:
        stream_handler = logging.StreamHandler(sys.stdout)
        stream_handler.setFormatter(formatter)
        root.addHandler(stream_handler)

    _log_file = None
    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)
        file_handler = RotatingFileHandler(
            log_path,
            maxBytes=LOG_MAX_BYTES,
            backupCount=LOG_BACKUP_COUNT,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        root.addHandler(file_handler)
        _log_file = log_path

    root.setLevel(numeric_level)
    set_engine_log_level(numeric_level)
    set_tick_trace(tick_trace)


__all__ = [
    "configure_logging",
    "coerce_level",
    "set_engine_log_level",
    "set_tick_trace",
    "tick_trace_enabled",
    "logging_status",
    "active_log_file",
    "tail_log_file",
    "ENGINE_LOGGER",
    "TICK_LOGGER",
    "LOG_FORMAT",
    "LOG_DATEFMT",
]
