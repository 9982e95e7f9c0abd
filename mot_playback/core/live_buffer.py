"""Bounded, append-only frame store fed by a network stream.

The buffer is the only state shared between the transport's callbacks and
the tick. Producers only ever call :meth:`LiveIngestionBuffer.append`; the
tick only reads. Appends never block: once ``capacity`` frames are held the
oldest one is evicted.
"""

from __future__ import annotations

import math
import threading
from collections import deque
from typing import Optional

from .frames import Frame
from .logging_utils import get_module_logger

DEFAULT_LIVE_CAPACITY = 2000


class LiveIngestionBuffer:
    """Capped FIFO of live frames that keeps the sequence invariant.

    A frame whose timestamp is not strictly newer than the current tail is
    rejected (late or duplicate delivery), so the retained frames stay sorted
    and unique in arrival order.
    """

    is_live = True

    def __init__(self, capacity: int = DEFAULT_LIVE_CAPACITY, name: str = "live") -> None:
        if capacity < 1:
            raise ValueError(f"capacity must be >= 1, got {capacity!r}")
        self.logger = get_module_logger("LiveIngestionBuffer").getChild(name)
        self.name = name
        self._capacity = capacity
        self._frames: deque[Frame] = deque(maxlen=capacity)
        self._lock = threading.Lock()
        self._accepted = 0
        self._dropped = 0
        self._evicted = 0
        self._sealed = False

    # ------------------------------------------------------------------
    # Producer side

    def append(self, frame: Frame) -> bool:
        """Push ``frame`` to the tail. Returns False when it was rejected."""
        timestamp = frame.timestamp
        with self._lock:
            if self._sealed:
                self._dropped += 1
                return False
            if not isinstance(timestamp, (int, float)) or not math.isfinite(timestamp):
                self._dropped += 1
                self.logger.debug("Dropped frame with unusable timestamp %r", timestamp)
                return False
            if self._frames and timestamp <= self._frames[-1].timestamp:
                self._dropped += 1
                self.logger.debug(
                    "Dropped out-of-order frame %.6f (tail %.6f)",
                    timestamp, self._frames[-1].timestamp,
                )
                return False
            if len(self._frames) == self._capacity:
                self._evicted += 1
            self._frames.append(frame)
            self._accepted += 1
            return True

    def seal(self) -> None:
        """Stop accepting frames; buffered frames stay readable."""
        with self._lock:
            self._sealed = True

    def reopen(self) -> None:
        with self._lock:
            self._sealed = False

    # ------------------------------------------------------------------
    # Reader side

    def __len__(self) -> int:
        with self._lock:
            return len(self._frames)

    def __getitem__(self, index: int) -> Frame:
        with self._lock:
            return self._frames[index]

    def __iter__(self):
        return iter(self.snapshot())

    def __repr__(self) -> str:
        return f"LiveIngestionBuffer({self.name!r}, {len(self)}/{self._capacity})"

    def timestamp_at(self, index: int) -> float:
        with self._lock:
            return self._frames[index].timestamp

    def frame_at(self, index: int) -> Optional[Frame]:
        """Frame at ``min(index, len - 1)``; None when empty."""
        with self._lock:
            if not self._frames:
                return None
            return self._frames[max(0, min(index, len(self._frames) - 1))]

    def snapshot(self) -> tuple[Frame, ...]:
        with self._lock:
            return tuple(self._frames)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def generation(self) -> int:
        """Count of frames ever accepted; changes on every successful append."""
        with self._lock:
            return self._accepted

    @property
    def dropped(self) -> int:
        with self._lock:
            return self._dropped

    @property
    def evicted(self) -> int:
        with self._lock:
            return self._evicted

    @property
    def sealed(self) -> bool:
        with self._lock:
            return self._sealed


__all__ = ["LiveIngestionBuffer", "DEFAULT_LIVE_CAPACITY"]
