"""Multi-slot timeline synchronization.

Up to four frame sequences are shown side by side and share one global
cursor. The lowest occupied slot with data becomes the timing *anchor* and
keeps that role until its own sequence goes away; other slots only read
``sequence[min(current_index, len - 1)]``, so a shorter sequence freezes on
its last frame while longer ones keep going.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional, Protocol, Union, runtime_checkable

from .frames import Frame, FrameSequence
from .live_buffer import LiveIngestionBuffer
from .logging_utils import get_module_logger
from .playback_config import MAX_SLOT_COUNT
from .playback_state import PlaybackState

SlotSequence = Union[FrameSequence, LiveIngestionBuffer]


@runtime_checkable
class LiveSource(Protocol):
    """Handle for a live stream feeding one slot."""

    buffer: LiveIngestionBuffer

    @property
    def connected(self) -> bool: ...

    @property
    def error(self) -> Optional[str]: ...

    @property
    def latest_raw(self) -> Optional[str]: ...

    def open(self) -> None: ...

    def close(self) -> None: ...


@dataclass
class Slot:
    sequence: SlotSequence
    display_name: str = ""
    stream: Optional[LiveSource] = None
    _error: Optional[str] = field(default=None, repr=False)

    @property
    def stream_error(self) -> Optional[str]:
        if self.stream is not None:
            return self.stream.error
        return self._error

    @stream_error.setter
    def stream_error(self, message: Optional[str]) -> None:
        self._error = message

    @property
    def latest_raw(self) -> Optional[str]:
        if self.stream is not None:
            return self.stream.latest_raw
        return None

    @property
    def is_live(self) -> bool:
        return self.sequence.is_live

    @property
    def is_streaming(self) -> bool:
        return self.stream is not None and self.stream.connected

    def __len__(self) -> int:
        return len(self.sequence)

    def frame_at(self, index: int) -> Optional[Frame]:
        return self.sequence.frame_at(index)

    def to_dict(self) -> dict:
        return {
            "name": self.display_name,
            "length": len(self.sequence),
            "live": self.is_live,
            "streaming": self.is_streaming,
            "stream_error": self.stream_error,
        }


class SlotSynchronizer:
    """Owns the slots and the playback cursor they share."""

    def __init__(self, max_slots: int = MAX_SLOT_COUNT, default_speed: float = 1.0) -> None:
        if not 1 <= max_slots <= MAX_SLOT_COUNT:
            raise ValueError(f"max_slots must be within 1..{MAX_SLOT_COUNT}, got {max_slots!r}")
        self.logger = get_module_logger("SlotSynchronizer")
        self._slots: list[Optional[Slot]] = [None] * max_slots
        self._anchor: Optional[int] = None
        self._seen_generation: dict[int, int] = {}
        self.state = PlaybackState(speed=default_speed)

    # ------------------------------------------------------------------
    # Slot ownership

    @property
    def max_slots(self) -> int:
        return len(self._slots)

    def _check_index(self, index: int) -> None:
        if not isinstance(index, int) or not 0 <= index < len(self._slots):
            raise ValueError(f"slot index must be within 0..{len(self._slots) - 1}, got {index!r}")

    def occupy(self, index: int, slot: Slot) -> Optional[Slot]:
        """Place ``slot`` at ``index``; returns the slot it replaced."""
        self._check_index(index)
        previous = self._slots[index]
        self._slots[index] = slot
        self._seen_generation.pop(index, None)
        self.logger.info(
            "Slot %d <- %s (%d frames%s)",
            index, slot.display_name or "unnamed", len(slot.sequence),
            ", live" if slot.is_live else "",
        )
        self._resolve_anchor()
        return previous

    def clear(self, index: int) -> Optional[Slot]:
        self._check_index(index)
        previous = self._slots[index]
        self._slots[index] = None
        self._seen_generation.pop(index, None)
        if previous is not None:
            self.logger.info("Slot %d cleared", index)
        self._resolve_anchor()
        self.clamp_current()
        return previous

    def slot(self, index: int) -> Optional[Slot]:
        self._check_index(index)
        return self._slots[index]

    @property
    def slots(self) -> tuple[Optional[Slot], ...]:
        return tuple(self._slots)

    def occupied(self) -> list[tuple[int, Slot]]:
        return [(i, s) for i, s in enumerate(self._slots) if s is not None]

    # ------------------------------------------------------------------
    # Anchor and timeline

    def _resolve_anchor(self) -> Optional[int]:
        current = self._anchor
        if current is not None:
            slot = self._slots[current]
            if slot is not None and len(slot.sequence) > 0:
                return current
        for i, slot in enumerate(self._slots):
            if slot is not None and len(slot.sequence) > 0:
                if i != current:
                    self.logger.debug("Anchor slot %s -> %d", current, i)
                self._anchor = i
                return i
        self._anchor = None
        return None

    @property
    def anchor_index(self) -> Optional[int]:
        return self._resolve_anchor()

    @property
    def max_length(self) -> int:
        return max((len(s.sequence) for s in self._slots if s is not None), default=0)

    def clamp_index(self, index: int) -> int:
        max_length = self.max_length
        if max_length == 0:
            return 0
        return max(0, min(index, max_length - 1))

    def clamp_current(self) -> bool:
        clamped = self.clamp_index(self.state.current_index)
        if clamped != self.state.current_index:
            self.state.current_index = clamped
            return True
        return False

    def timing_slot(self, index: int) -> Optional[int]:
        """Slot whose timestamps drive the cursor forward from ``index``.

        This is the anchor while it still has a frame after ``index``. Once
        the cursor has run past the anchor's end, the lowest slot that still
        has frames ahead takes over so longer slots are played to the end.
        """
        anchor = self._resolve_anchor()
        if anchor is None:
            return None
        if len(self._slots[anchor].sequence) - 1 > index:
            return anchor
        for i, slot in enumerate(self._slots):
            if slot is not None and len(slot.sequence) - 1 > index:
                return i
        return anchor

    def sequence(self, index: int) -> SlotSequence:
        slot = self.slot(index)
        if slot is None:
            raise ValueError(f"slot {index} is empty")
        return slot.sequence

    def current_frame(self, index: int) -> Optional[Frame]:
        slot = self.slot(index)
        if slot is None:
            return None
        return slot.frame_at(self.state.current_index)

    # ------------------------------------------------------------------
    # Live slots

    def has_streaming_slot(self) -> bool:
        return any(slot.is_streaming for _, slot in self.occupied())

    def poll_ingestion(self, warmup_frames: int) -> bool:
        """True when a streaming slot received frames and is past warm-up.

        Only looks at generation counters; never touches the cursor.
        """
        triggered = False
        for i, slot in self.occupied():
            if not slot.is_live:
                continue
            generation = slot.sequence.generation
            if generation == self._seen_generation.get(i, 0):
                continue
            self._seen_generation[i] = generation
            if slot.is_streaming and len(slot.sequence) > warmup_frames:
                triggered = True
        return triggered


__all__ = ["LiveSource", "Slot", "SlotSequence", "SlotSynchronizer"]
