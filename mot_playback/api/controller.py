"""
API Controller - Thin wrapper around PlaybackEngine for the REST API.

Route handlers run on the same event loop as the TickLoop, so every call
here happens on the scheduler's thread and may touch the engine directly.
"""

import datetime
import os
from typing import Any, Dict, Optional

import psutil

from mot_playback.core.engine import PlaybackEngine
from mot_playback.core.logging_config import (
    active_log_file,
    logging_status,
    set_engine_log_level,
    set_tick_trace,
    tail_log_file,
)
from mot_playback.core.logging_utils import get_module_logger
from mot_playback.core.tick_loop import TickLoop


class PlaybackController:
    """
    API controller providing programmatic access to playback.

    Returns plain dicts; ``None`` means "not found" and ``{"success": False}``
    means the engine refused the request in its current mode.
    """

    def __init__(self, engine: PlaybackEngine, tick_loop: Optional[TickLoop] = None):
        self.logger = get_module_logger("PlaybackController")
        self.engine = engine
        self.tick_loop = tick_loop
        self._process = psutil.Process(os.getpid())

    # =========================================================================
    # System Endpoints
    # =========================================================================

    async def health_check(self) -> Dict[str, Any]:
        """Check service health."""
        memory = self._process.memory_info()
        return {
            "status": "ok",
            "timestamp": datetime.datetime.now().isoformat(),
            "api_version": "v1",
            "tick_loop": {
                "running": bool(self.tick_loop and self.tick_loop.running),
                "ticks": self.tick_loop.tick_count if self.tick_loop else 0,
                "errors": self.tick_loop.error_count if self.tick_loop else 0,
            },
            "process": {
                "pid": self._process.pid,
                "rss_mb": round(memory.rss / (1024**2), 1),
            },
        }

    async def reset(self) -> Dict[str, Any]:
        self.engine.reset()
        return {"success": True, **self._playback()}

    # =========================================================================
    # Playback Endpoints
    # =========================================================================

    def _playback(self) -> Dict[str, Any]:
        data = self.engine.state().to_dict()
        data["max_length"] = self.engine.max_length
        data["anchor_slot"] = self.engine.anchor_slot
        return data

    async def get_playback(self) -> Dict[str, Any]:
        return self._playback()

    async def play(self) -> Dict[str, Any]:
        return {"success": self.engine.play(), **self._playback()}

    async def pause(self) -> Dict[str, Any]:
        return {"success": self.engine.pause(), **self._playback()}

    async def set_speed(self, speed: Any) -> Dict[str, Any]:
        if isinstance(speed, bool) or not isinstance(speed, (int, float)):
            raise ValueError(f"speed must be a number, got {speed!r}")
        self.engine.set_speed(float(speed))
        return {"success": True, **self._playback()}

    async def seek(self, index: Any) -> Dict[str, Any]:
        self.engine.seek(_require_int("index", index))
        return {"success": True, **self._playback()}

    async def step(self, delta: Any) -> Dict[str, Any]:
        self.engine.step(_require_int("delta", delta))
        return {"success": True, **self._playback()}

    async def rewind(self) -> Dict[str, Any]:
        return {"success": self.engine.rewind(), **self._playback()}

    async def set_visibility(self, visible: Any) -> Dict[str, Any]:
        if not isinstance(visible, bool):
            raise ValueError(f"visible must be a boolean, got {visible!r}")
        self.engine.set_visibility(visible)
        return {"success": True, **self._playback()}

    # =========================================================================
    # Slot Endpoints
    # =========================================================================

    async def list_slots(self) -> Dict[str, Any]:
        snapshot = self.engine.snapshot()
        return {"current_index": snapshot["current_index"], "slots": snapshot["slots"]}

    async def get_slot_frame(self, slot_index: int) -> Optional[Dict[str, Any]]:
        if self.engine.slot(slot_index) is None:
            return None
        frame = self.engine.current_frame(slot_index)
        return {
            "slot": slot_index,
            "current_index": self.engine.current_index,
            "frame": frame.to_dict() if frame is not None else None,
        }

    async def clear_slot(self, slot_index: int) -> Optional[Dict[str, Any]]:
        previous = self.engine.clear_slot(slot_index)
        if previous is None:
            return None
        return {"success": True, "slot": slot_index, **self._playback()}

    async def disconnect_slot(self, slot_index: int) -> Optional[Dict[str, Any]]:
        if self.engine.slot(slot_index) is None:
            return None
        return {"success": self.engine.disconnect_slot(slot_index), "slot": slot_index, **self._playback()}

    # =========================================================================
    # Logging Endpoints
    # =========================================================================

    async def get_logging(self) -> Dict[str, Any]:
        return logging_status()

    async def update_logging(self, updates: Dict[str, Any]) -> Dict[str, Any]:
        """Change the playback log level and/or the per-tick trace at runtime."""
        if "level" in updates:
            level = updates["level"]
            if not isinstance(level, str):
                raise ValueError(f"level must be a level name, got {level!r}")
            set_engine_log_level(level)
        if "tick_trace" in updates:
            if not isinstance(updates["tick_trace"], bool):
                raise ValueError(f"tick_trace must be a boolean, got {updates['tick_trace']!r}")
            set_tick_trace(updates["tick_trace"])
        status = logging_status()
        self.logger.info("Logging updated: level=%s tick_trace=%s", status["level"], status["tick_trace"])
        return {"success": True, **status}

    async def tail_log(self, limit: int) -> Optional[Dict[str, Any]]:
        lines = tail_log_file(limit)
        if lines is None:
            return None
        return {"log_file": str(active_log_file()), "lines": lines, "count": len(lines)}


def _require_int(name: str, value: Any) -> int:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ValueError(f"{name} must be an integer, got {value!r}")
    return value


__all__ = ["PlaybackController"]
