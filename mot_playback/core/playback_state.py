"""Playback mode and the shared playback cursor."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class PlaybackMode(Enum):
    PAUSED = "paused"
    PLAYING = "playing"
    LIVE = "live"


@dataclass(slots=True)
class PlaybackState:
    """Global cursor shared by every slot.

    Each slot shows ``sequence[min(current_index, len - 1)]``.
    """

    mode: PlaybackMode = PlaybackMode.PAUSED
    speed: float = 1.0
    current_index: int = 0

    def copy(self) -> "PlaybackState":
        return PlaybackState(mode=self.mode, speed=self.speed, current_index=self.current_index)

    def to_dict(self) -> dict:
        return {
            "mode": self.mode.value,
            "speed": self.speed,
            "current_index": self.current_index,
        }


__all__ = ["PlaybackMode", "PlaybackState"]
