"""Virtual clock mapping wall time to data time.

``target = data_at_anchor + (wall_now - wall_at_anchor) * speed``

The anchor must be re-recorded whenever playback starts, the speed changes
while playing, or a seek happens while playing. Skipping any of these makes
the next tick's target jump.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from typing import Callable, Optional

TimeSource = Callable[[], float]


def monotonic_seconds() -> float:
    """Default wall-clock source for the tick loop."""
    return time.monotonic()


@dataclass(frozen=True, slots=True)
class ClockAnchor:
    wall_time: float
    data_time: float


class VirtualClock:

    def __init__(self) -> None:
        self._anchor: Optional[ClockAnchor] = None

    @property
    def anchor(self) -> Optional[ClockAnchor]:
        return self._anchor

    def reanchor(self, data_time: float, wall_time: float) -> ClockAnchor:
        self._anchor = ClockAnchor(wall_time=wall_time, data_time=data_time)
        return self._anchor

    def clear(self) -> None:
        self._anchor = None

    def target_data_time(self, wall_time_now: float, speed: float) -> float:
        if self._anchor is None:
            raise RuntimeError("VirtualClock has no anchor; call reanchor() first")
        return self._anchor.data_time + (wall_time_now - self._anchor.wall_time) * speed


__all__ = ["ClockAnchor", "VirtualClock", "TimeSource", "monotonic_seconds"]
