"""Component loggers for the playback engine.

Every logger lives under the ``mot_playback`` namespace so that
``logging_config.set_engine_log_level`` reaches all of them at once, and each
message is prefixed with ``[Component]`` so interleaved slot, stream and
scheduler lines stay readable in one file.
"""

from __future__ import annotations

import logging
from typing import Optional, Union

MODULE_LOGGER_NAMESPACE = "mot_playback"
DEFAULT_COMPONENT = "Core"


def _component_for(logger_name: str) -> str:
    if not logger_name.startswith(MODULE_LOGGER_NAMESPACE):
        return logger_name
    return logger_name[len(MODULE_LOGGER_NAMESPACE):].lstrip(".") or DEFAULT_COMPONENT


class StructuredLogger:
    """Wrapper that prefixes every record with its component name."""

    __slots__ = ("_logger", "_component")

    def __init__(self, logger: logging.Logger, component: Optional[str] = None) -> None:
        self._logger = logger
        self._component = component or _component_for(logger.name)

    def __getattr__(self, item):
        return getattr(self._logger, item)

    @property
    def name(self) -> str:
        return self._logger.name

    @property
    def component(self) -> str:
        return self._component

    def _emit(self, level: int, message: object, args: tuple, kwargs: dict) -> None:
        if not self._logger.isEnabledFor(level):
            return
        text = str(message)
        if args:
            try:
                text = text % args
            except (TypeError, ValueError):
                text = f"{text} | args={' '.join(str(arg) for arg in args)}"
        self._logger.log(level, f"[{self._component}] {text}", **kwargs)

    def debug(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.DEBUG, message, args, kwargs)

    def info(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.INFO, message, args, kwargs)

    def warning(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.WARNING, message, args, kwargs)

    def error(self, message: object, *args, **kwargs) -> None:
        self._emit(logging.ERROR, message, args, kwargs)

    def exception(self, message: object, *args, **kwargs) -> None:
        kwargs.setdefault("exc_info", True)
        self._emit(logging.ERROR, message, args, kwargs)

    def getChild(self, suffix: str) -> "StructuredLogger":
        """Per-instance logger, e.g. one per live buffer: ``[LiveStream.slot-a]``."""
        return StructuredLogger(self._logger.getChild(suffix), component=f"{self._component}.{suffix}")


def ensure_structured_logger(
    logger: Union[StructuredLogger, logging.Logger, None],
    *,
    fallback_name: Optional[str] = None,
) -> StructuredLogger:
    """Return ``logger`` as a StructuredLogger, or a module logger when None."""
    if isinstance(logger, StructuredLogger):
        return logger
    if isinstance(logger, logging.Logger):
        return StructuredLogger(logger)
    return get_module_logger(fallback_name)


def get_module_logger(name: Optional[str] = None) -> StructuredLogger:
    """Return a structured logger scoped to the mot_playback namespace."""
    if not name:
        name = MODULE_LOGGER_NAMESPACE
    elif not name.startswith(MODULE_LOGGER_NAMESPACE):
        name = f"{MODULE_LOGGER_NAMESPACE}.{name}"
    return StructuredLogger(logging.getLogger(name))


__all__ = [
    "StructuredLogger",
    "ensure_structured_logger",
    "get_module_logger",
]
