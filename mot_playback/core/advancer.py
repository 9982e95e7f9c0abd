"""Forward-only frame advancement with the gap-skip policy.

Sensor logs contain dropouts. When the next frame is more than
``gap_threshold`` data-seconds away and the target has reached
``ts[idx] + gap_threshold / speed``, the advancer steps straight onto the next
frame instead of letting the viewer stare at a frozen scene for the whole gap.
At most one gap is skipped per call; the caller re-evaluates on its next tick.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional, Protocol

GAP_THRESHOLD = 1.5


class TimestampedSequence(Protocol):
    def __len__(self) -> int: ...

    def timestamp_at(self, index: int) -> float: ...


@dataclass(frozen=True, slots=True)
class Advance:
    """Outcome of one advancement step.

    ``gap_skipped`` carries the skipped gap's duration in data-seconds; when it
    is set the caller must re-anchor the clock at ``index``'s timestamp.
    """

    index: int
    exhausted: bool
    gap_skipped: Optional[float] = None

    @property
    def skipped_gap(self) -> bool:
        return self.gap_skipped is not None


class FrameAdvancer:

    def __init__(self, gap_threshold: float = GAP_THRESHOLD) -> None:
        if gap_threshold <= 0:
            raise ValueError(f"gap_threshold must be positive, got {gap_threshold!r}")
        self.gap_threshold = gap_threshold

    def advance(
        self,
        sequence: TimestampedSequence,
        index: int,
        target_data_time: float,
        speed: float,
    ) -> Advance:
        length = len(sequence)
        if length == 0:
            return Advance(index=0, exhausted=True)

        last = length - 1
        idx = max(0, min(index, last))
        if idx >= last:
            return Advance(index=last, exhausted=True)

        current_ts = sequence.timestamp_at(idx)
        next_ts = sequence.timestamp_at(idx + 1)
        gap = next_ts - current_ts
        if gap > self.gap_threshold and target_data_time >= current_ts + self.gap_threshold / speed:
            idx += 1
            return Advance(index=idx, exhausted=idx >= last, gap_skipped=gap)

        while idx < last and sequence.timestamp_at(idx + 1) <= target_data_time:
            idx += 1

        return Advance(index=idx, exhausted=idx >= last)


__all__ = ["Advance", "FrameAdvancer", "GAP_THRESHOLD"]
