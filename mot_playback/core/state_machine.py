"""
Playback State Machine - Paused / Playing / Live and the scheduler tick.

State transitions:
- PAUSED -> PLAYING: play() with data present and no slot streaming
- PLAYING -> PAUSED: end of data, pause(), loss of foreground visibility
- PLAYING/PAUSED -> LIVE: a streaming slot receives frames past warm-up
- LIVE -> PAUSED: every streaming slot cleared or disconnected

The VirtualClock anchor is only changed from inside these handlers.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Callable, Optional

from .advancer import FrameAdvancer
from .clock import VirtualClock
from .logging_utils import get_module_logger
from .playback_state import PlaybackMode, PlaybackState
from .slots import SlotSynchronizer

GapSkippedCallback = Callable[[float], None]
StateChangeCallback = Callable[[PlaybackMode, PlaybackMode], None]


@dataclass(frozen=True, slots=True)
class TickResult:
    mode: PlaybackMode
    index: int
    moved: bool = False
    gap_skipped: Optional[float] = None


class PlaybackStateMachine:

    def __init__(
        self,
        synchronizer: SlotSynchronizer,
        clock: Optional[VirtualClock] = None,
        advancer: Optional[FrameAdvancer] = None,
        *,
        warmup_frames: int = 5,
    ) -> None:
        self.logger = get_module_logger("PlaybackStateMachine")
        self.tick_logger = get_module_logger("tick")
        self.sync = synchronizer
        self.clock = clock or VirtualClock()
        self.advancer = advancer or FrameAdvancer()
        self.warmup_frames = warmup_frames
        self._timing_slot: Optional[int] = None
        self._gap_skipped_callback: Optional[GapSkippedCallback] = None
        self._state_change_callback: Optional[StateChangeCallback] = None

    @property
    def state(self) -> PlaybackState:
        return self.sync.state

    @property
    def mode(self) -> PlaybackMode:
        return self.sync.state.mode

    def set_gap_skipped_callback(self, callback: Optional[GapSkippedCallback]) -> None:
        self._gap_skipped_callback = callback

    def set_state_change_callback(self, callback: Optional[StateChangeCallback]) -> None:
        self._state_change_callback = callback

    # =========================================================================
    # Internal helpers
    # =========================================================================

    def _transition(self, new_mode: PlaybackMode, reason: str) -> None:
        old_mode = self.state.mode
        if old_mode == new_mode:
            return
        self.state.mode = new_mode
        if new_mode != PlaybackMode.PLAYING:
            self._timing_slot = None
        self.logger.info("%s -> %s (%s)", old_mode.value, new_mode.value, reason)
        if self._state_change_callback:
            try:
                self._state_change_callback(old_mode, new_mode)
            except Exception:
                self.logger.exception("State change callback failed")

    def _notify_gap(self, duration: float) -> None:
        self.logger.info("Skipped %.1fs gap", duration)
        if self._gap_skipped_callback:
            try:
                self._gap_skipped_callback(duration)
            except Exception:
                self.logger.exception("Gap skipped callback failed")

    def _anchor_at(self, index: int, now: float) -> bool:
        """Re-anchor the clock on the timing slot's frame at ``index``."""
        timing = self.sync.timing_slot(index)
        if timing is None:
            self._timing_slot = None
            return False
        sequence = self.sync.sequence(timing)
        data_time = sequence.timestamp_at(min(index, len(sequence) - 1))
        self.clock.reanchor(data_time, now)
        self._timing_slot = timing
        return True

    # =========================================================================
    # User transitions
    # =========================================================================

    def play(self, now: float) -> bool:
        mode = self.state.mode
        if mode == PlaybackMode.PLAYING:
            return True
        if mode == PlaybackMode.LIVE or self.sync.has_streaming_slot():
            self.logger.debug("play() ignored while a slot is streaming")
            return False
        max_length = self.sync.max_length
        if max_length == 0:
            self.logger.debug("play() ignored: no frames loaded")
            return False

        if self.state.current_index >= max_length - 1:
            self.state.current_index = 0
        if not self._anchor_at(self.state.current_index, now):
            return False
        self._transition(PlaybackMode.PLAYING, "play")
        return True

    def pause(self, reason: str = "user") -> bool:
        mode = self.state.mode
        if mode == PlaybackMode.LIVE:
            self.logger.debug("pause() ignored in live mode")
            return False
        self._transition(PlaybackMode.PAUSED, reason)
        return True

    def set_speed(self, speed: float, now: float) -> None:
        if not isinstance(speed, (int, float)) or not math.isfinite(speed) or speed <= 0:
            raise ValueError(f"speed must be a positive number, got {speed!r}")
        old_speed = self.state.speed
        if self.state.mode == PlaybackMode.PLAYING and self.clock.anchor is not None:
            # Anchor at the current target using the old speed so the
            # visible position does not jump.
            self.clock.reanchor(self.clock.target_data_time(now, old_speed), now)
        self.state.speed = float(speed)
        self.logger.debug("Speed %.3g -> %.3g", old_speed, speed)

    def seek(self, index: int, now: float) -> int:
        target = self.sync.clamp_index(int(index))
        self.state.current_index = target
        if self.state.mode == PlaybackMode.PLAYING:
            self._anchor_at(target, now)
        return target

    def step(self, delta: int) -> int:
        if self.state.mode == PlaybackMode.LIVE:
            self.logger.debug("step() ignored in live mode")
            return self.state.current_index
        self._transition(PlaybackMode.PAUSED, "step")
        self.state.current_index = self.sync.clamp_index(self.state.current_index + int(delta))
        return self.state.current_index

    def rewind(self) -> bool:
        if self.state.mode == PlaybackMode.LIVE:
            return False
        self._transition(PlaybackMode.PAUSED, "rewind")
        self.state.current_index = 0
        return True

    def set_visibility(self, visible: bool) -> None:
        # A hidden view cannot render; resuming must not catch up missed time.
        if not visible and self.state.mode == PlaybackMode.PLAYING:
            self._transition(PlaybackMode.PAUSED, "hidden")

    # =========================================================================
    # Slot events
    # =========================================================================

    def streams_changed(self) -> None:
        """Re-evaluate after a slot was cleared, replaced or disconnected."""
        self.sync.clamp_current()
        if self.state.mode == PlaybackMode.LIVE and not self.sync.has_streaming_slot():
            self._transition(PlaybackMode.PAUSED, "live streams closed")
        elif self.state.mode == PlaybackMode.PLAYING:
            if self.sync.max_length == 0:
                self._transition(PlaybackMode.PAUSED, "no data")
            elif self.sync.timing_slot(self.state.current_index) != self._timing_slot:
                # The timing source vanished; continue from the same cursor on the new one.
                self._timing_slot = None

    # =========================================================================
    # Scheduler tick
    # =========================================================================

    def tick(self, now: float) -> TickResult:
        if self.sync.poll_ingestion(self.warmup_frames) and self.state.mode != PlaybackMode.LIVE:
            self._transition(PlaybackMode.LIVE, "live warm-up")

        previous = self.state.current_index
        self.sync.clamp_current()
        mode = self.state.mode

        if mode == PlaybackMode.LIVE:
            max_length = self.sync.max_length
            if max_length > 0:
                self.state.current_index = max_length - 1
            if self.state.current_index != previous:
                self.tick_logger.debug("live index %d -> %d", previous, self.state.current_index)
            return TickResult(mode, self.state.current_index, self.state.current_index != previous)

        if mode != PlaybackMode.PLAYING:
            return TickResult(mode, self.state.current_index, self.state.current_index != previous)

        max_length = self.sync.max_length
        if max_length == 0:
            self._transition(PlaybackMode.PAUSED, "no data")
            return TickResult(self.state.mode, 0, previous != 0)

        index = self.state.current_index
        timing = self.sync.timing_slot(index)
        if timing is None:
            self._transition(PlaybackMode.PAUSED, "no timing slot")
            return TickResult(self.state.mode, index, index != previous)
        if timing != self._timing_slot:
            self._anchor_at(index, now)

        sequence = self.sync.sequence(timing)
        target = self.clock.target_data_time(now, self.state.speed)
        advance = self.advancer.advance(sequence, index, target, self.state.speed)

        if advance.gap_skipped is not None:
            self.clock.reanchor(sequence.timestamp_at(advance.index), now)

        new_index = max(index, min(advance.index, max_length - 1))
        self.state.current_index = new_index
        self.tick_logger.debug(
            "t=%.3f target=%.3f slot=%d index %d -> %d", now, target, timing, index, new_index
        )

        if advance.gap_skipped is not None:
            self._notify_gap(advance.gap_skipped)

        if new_index >= max_length - 1:
            self._transition(PlaybackMode.PAUSED, "end of data")

        return TickResult(self.state.mode, new_index, new_index != previous, advance.gap_skipped)


__all__ = ["PlaybackStateMachine", "TickResult", "GapSkippedCallback", "StateChangeCallback"]
