"""Frame data model and the immutable replay sequence.

A ``Frame`` is one timestamped sample of ego pose plus tracked objects. The
engine never looks inside ``navi`` or ``objects``; it only orders frames by
``timestamp``. Within any sequence frames are sorted ascending by timestamp
and no two frames share one.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Iterator, Sequence
from dataclasses import dataclass, field
from typing import Any, Optional, Union, overload


@dataclass(slots=True)
class NaviData:
    """Ego vehicle pose at the time of a frame."""

    east: float = 0.0
    north: float = 0.0
    height: float = 0.0
    theta: float = 0.0
    alpha: float = 0.0
    beta: float = 0.0
    vel: float = 0.0
    yaw_angular_speed: float = 0.0
    ts: float = 0.0

    def to_dict(self) -> dict[str, float]:
        return {
            "east": self.east,
            "north": self.north,
            "height": self.height,
            "theta": self.theta,
            "alpha": self.alpha,
            "beta": self.beta,
            "vel": self.vel,
            "yaw_angular_speed": self.yaw_angular_speed,
            "ts": self.ts,
        }


@dataclass(slots=True)
class TrackedObject:
    id: int = 0
    theta: float = 0.0
    vel: float = 0.0
    vel_theta: float = 0.0
    height: float = 0.0
    kind: int = 0
    vertex_points: list[tuple[float, float]] = field(default_factory=list)
    lower_z: float = 0.0
    veh_light_kind: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "theta": self.theta,
            "vel": self.vel,
            "vel_theta": self.vel_theta,
            "height": self.height,
            "kind": self.kind,
            "vertex_points": [list(point) for point in self.vertex_points],
            "lower_z": self.lower_z,
            "veh_light_kind": self.veh_light_kind,
        }


@dataclass(slots=True)
class Frame:
    timestamp: float
    navi: NaviData = field(default_factory=NaviData)
    objects: list[TrackedObject] = field(default_factory=list)
    vin: Optional[str] = None
    raw: Optional[str] = None

    def to_dict(self, include_raw: bool = False) -> dict[str, Any]:
        data: dict[str, Any] = {
            "timestamp": self.timestamp,
            "navi": self.navi.to_dict(),
            "objs": [obj.to_dict() for obj in self.objects],
            "vin": self.vin,
        }
        if include_raw:
            data["raw"] = self.raw
        return data


def normalize_frames(frames: Iterable[Frame]) -> list[Frame]:
    """Sort by timestamp and keep the first frame of each timestamp.

    Frames whose timestamp is not a finite number are dropped.
    """
    usable = [f for f in frames if isinstance(f.timestamp, (int, float)) and math.isfinite(f.timestamp)]
    usable.sort(key=lambda f: f.timestamp)
    result: list[Frame] = []
    for frame in usable:
        if result and frame.timestamp == result[-1].timestamp:
            continue
        result.append(frame)
    return result


class FrameSequence(Sequence[Frame]):
    """Immutable, timestamp-sorted, duplicate-free frames of a recording."""

    is_live = False

    __slots__ = ("_frames",)

    def __init__(self, frames: Iterable[Frame] = ()) -> None:
        self._frames: tuple[Frame, ...] = tuple(normalize_frames(frames))

    @classmethod
    def empty(cls) -> "FrameSequence":
        return cls()

    @overload
    def __getitem__(self, index: int) -> Frame: ...

    @overload
    def __getitem__(self, index: slice) -> Sequence[Frame]: ...

    def __getitem__(self, index: Union[int, slice]) -> Union[Frame, Sequence[Frame]]:
        return self._frames[index]

    def __len__(self) -> int:
        return len(self._frames)

    def __iter__(self) -> Iterator[Frame]:
        return iter(self._frames)

    def __repr__(self) -> str:
        if not self._frames:
            return "FrameSequence(empty)"
        return (
            f"FrameSequence({len(self._frames)} frames, "
            f"{self._frames[0].timestamp:.3f}..{self._frames[-1].timestamp:.3f})"
        )

    def timestamp_at(self, index: int) -> float:
        return self._frames[index].timestamp

    def frame_at(self, index: int) -> Optional[Frame]:
        """Frame at ``min(index, len - 1)``; None when empty."""
        if not self._frames:
            return None
        return self._frames[max(0, min(index, len(self._frames) - 1))]

    def snapshot(self) -> tuple[Frame, ...]:
        return self._frames

    @property
    def duration(self) -> float:
        if len(self._frames) < 2:
            return 0.0
        return self._frames[-1].timestamp - self._frames[0].timestamp


__all__ = ["Frame", "NaviData", "TrackedObject", "FrameSequence", "normalize_frames"]
