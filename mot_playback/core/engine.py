"""
Playback Engine - public surface of the playback synchronization core.

The engine is the scheduler object: it owns the slots, the shared cursor and
the virtual clock, and exposes one ``tick()`` that a tick source (asyncio
loop, UI refresh callback, or a test driving synthetic time) calls
repeatedly. All cursor and clock mutation happens on that caller; live
transports only append to their slot's buffer.
"""

from __future__ import annotations

from typing import Any, Iterable, Optional, Union

from .advancer import FrameAdvancer
from .clock import TimeSource, VirtualClock, monotonic_seconds
from .frames import Frame, FrameSequence
from .live_buffer import LiveIngestionBuffer
from .logging_utils import get_module_logger
from .playback_config import PlaybackConfig
from .playback_state import PlaybackMode, PlaybackState
from .slots import LiveSource, Slot, SlotSynchronizer
from .state_machine import (
    GapSkippedCallback,
    PlaybackStateMachine,
    StateChangeCallback,
    TickResult,
)

SlotSource = Union[FrameSequence, LiveIngestionBuffer, LiveSource, Iterable[Frame]]


class PlaybackEngine:
    """Replays and synchronizes up to four frame sequences.

    Example::

        engine = PlaybackEngine()
        engine.occupy_slot(0, LogParser.parse(text), "run_a")
        engine.play()
        while True:
            engine.tick()
            render(engine.current_frame(0))
    """

    def __init__(
        self,
        config: Optional[PlaybackConfig] = None,
        *,
        time_source: Optional[TimeSource] = None,
        on_gap_skipped: Optional[GapSkippedCallback] = None,
        on_state_change: Optional[StateChangeCallback] = None,
    ) -> None:
        self.config = config or PlaybackConfig()
        self.config.validate()
        self.logger = get_module_logger("PlaybackEngine")
        self._now = time_source or monotonic_seconds
        self.synchronizer = SlotSynchronizer(
            max_slots=self.config.max_slots,
            default_speed=self.config.default_speed,
        )
        self.clock = VirtualClock()
        self.machine = PlaybackStateMachine(
            self.synchronizer,
            self.clock,
            FrameAdvancer(self.config.gap_threshold),
            warmup_frames=self.config.live_warmup_frames,
        )
        self.machine.set_gap_skipped_callback(on_gap_skipped)
        self.machine.set_state_change_callback(on_state_change)

    # ------------------------------------------------------------------
    # Callbacks

    def set_gap_skipped_callback(self, callback: Optional[GapSkippedCallback]) -> None:
        """Set callback receiving the duration (data-seconds) of each skipped gap."""
        self.machine.set_gap_skipped_callback(callback)

    def set_state_change_callback(self, callback: Optional[StateChangeCallback]) -> None:
        self.machine.set_state_change_callback(callback)

    # ------------------------------------------------------------------
    # Scheduler

    def now(self) -> float:
        return self._now()

    def tick(self, now: Optional[float] = None) -> TickResult:
        return self.machine.tick(self._now() if now is None else now)

    # ------------------------------------------------------------------
    # Read side

    def state(self) -> PlaybackState:
        return self.synchronizer.state.copy()

    @property
    def mode(self) -> PlaybackMode:
        return self.synchronizer.state.mode

    @property
    def current_index(self) -> int:
        return self.synchronizer.state.current_index

    @property
    def max_length(self) -> int:
        return self.synchronizer.max_length

    @property
    def anchor_slot(self) -> Optional[int]:
        return self.synchronizer.anchor_index

    def current_frame(self, slot_index: int) -> Optional[Frame]:
        return self.synchronizer.current_frame(slot_index)

    def slot(self, slot_index: int) -> Optional[Slot]:
        return self.synchronizer.slot(slot_index)

    # ------------------------------------------------------------------
    # Transport controls

    def play(self) -> bool:
        return self.machine.play(self._now())

    def pause(self) -> bool:
        return self.machine.pause()

    def toggle(self) -> bool:
        if self.mode == PlaybackMode.PLAYING:
            return self.pause()
        return self.play()

    def set_speed(self, speed: float) -> None:
        self.machine.set_speed(speed, self._now())

    def seek(self, index: int) -> int:
        return self.machine.seek(index, self._now())

    def step(self, delta: int) -> int:
        return self.machine.step(delta)

    def rewind(self) -> bool:
        return self.machine.rewind()

    def set_visibility(self, visible: bool) -> None:
        self.machine.set_visibility(visible)

    # ------------------------------------------------------------------
    # Slots

    def create_live_buffer(self, name: str = "live") -> LiveIngestionBuffer:
        return LiveIngestionBuffer(capacity=self.config.live_capacity, name=name)

    def occupy_slot(
        self,
        slot_index: int,
        source: SlotSource,
        display_name: Optional[str] = None,
    ) -> Slot:
        """Place a replay sequence or a live stream handle into a slot.

        Any stream previously occupying the slot is closed first.
        """
        if isinstance(source, LiveSource):
            slot = Slot(sequence=source.buffer, display_name=display_name or source.buffer.name, stream=source)
        elif isinstance(source, (FrameSequence, LiveIngestionBuffer)):
            slot = Slot(sequence=source, display_name=display_name or "")
        else:
            slot = Slot(sequence=FrameSequence(source), display_name=display_name or "")

        self.synchronizer.slot(slot_index)  # validates the index before touching streams
        previous = self.synchronizer.occupy(slot_index, slot)
        if previous is not None and previous.stream is not None and previous.stream is not slot.stream:
            previous.stream.close()
        if slot.stream is not None and not slot.stream.connected:
            slot.stream.open()
        self.machine.streams_changed()
        return slot

    def clear_slot(self, slot_index: int) -> Optional[Slot]:
        previous = self.synchronizer.clear(slot_index)
        if previous is not None and previous.stream is not None:
            previous.stream.close()
        self.machine.streams_changed()
        return previous

    def disconnect_slot(self, slot_index: int) -> bool:
        """Stop the slot's stream but keep its buffered frames inspectable."""
        slot = self.synchronizer.slot(slot_index)
        if slot is None or slot.stream is None:
            return False
        slot.stream.close()
        self.logger.info("Slot %d disconnected (%d frames kept)", slot_index, len(slot.sequence))
        self.machine.streams_changed()
        return True

    def reset(self) -> None:
        """Home action: close every stream and empty every slot."""
        for index, slot in self.synchronizer.occupied():
            self.synchronizer.clear(index)
            if slot.stream is not None:
                slot.stream.close()
        self.machine.streams_changed()
        self.machine.pause("reset")
        self.synchronizer.state.current_index = 0

    # ------------------------------------------------------------------
    # Status

    def snapshot(self) -> dict[str, Any]:
        slots: list[Optional[dict[str, Any]]] = []
        for slot in self.synchronizer.slots:
            if slot is None:
                slots.append(None)
                continue
            info = slot.to_dict()
            info["latest_raw"] = slot.latest_raw
            frame = slot.frame_at(self.current_index)
            info["timestamp"] = frame.timestamp if frame is not None else None
            slots.append(info)
        data = self.synchronizer.state.to_dict()
        data.update({
            "max_length": self.max_length,
            "anchor_slot": self.anchor_slot,
            "slots": slots,
        })
        return data


__all__ = ["PlaybackEngine", "SlotSource"]
