"""Asyncio tick source driving ``PlaybackEngine.tick`` at a fixed rate."""

from __future__ import annotations

import asyncio
from typing import Optional

from .async_utils import cancel_task_safely
from .engine import PlaybackEngine
from .logging_utils import get_module_logger


class TickLoop:
    """Periodic tick source.

    Ticks run on the event loop one at a time, so they never overlap with
    each other or with API handlers sharing the loop. Stopping the loop is
    the only way to cancel playback work.
    """

    def __init__(self, engine: PlaybackEngine, hz: Optional[float] = None) -> None:
        self.engine = engine
        self.hz = hz or engine.config.tick_hz
        if self.hz <= 0:
            raise ValueError(f"tick rate must be positive, got {self.hz!r}")
        self.logger = get_module_logger("TickLoop")
        self._task: Optional[asyncio.Task] = None
        self.tick_count = 0
        self.error_count = 0

    @property
    def interval(self) -> float:
        return 1.0 / self.hz

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def start(self) -> None:
        if self.running:
            self.logger.warning("Tick loop already running")
            return
        self._task = asyncio.create_task(self._run(), name="playback-tick-loop")
        self.logger.info("Tick loop started at %.1f Hz", self.hz)

    async def stop(self) -> None:
        task, self._task = self._task, None
        await cancel_task_safely(task, "playback-tick-loop")
        self.logger.info("Tick loop stopped after %d ticks", self.tick_count)

    async def _run(self) -> None:
        loop = asyncio.get_running_loop()
        next_deadline = loop.time()
        while True:
            try:
                self.engine.tick()
            except Exception:
                self.error_count += 1
                self.logger.exception("Tick failed")
            self.tick_count += 1

            next_deadline += self.interval
            delay = next_deadline - loop.time()
            if delay < 0:
                # Fell behind; do not burst to catch up.
                next_deadline = loop.time()
                delay = 0
            await asyncio.sleep(delay)


__all__ = ["TickLoop"]
