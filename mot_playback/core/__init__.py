"""Playback synchronization core."""

from .advancer import GAP_THRESHOLD, Advance, FrameAdvancer
from .clock import ClockAnchor, VirtualClock, monotonic_seconds
from .engine import PlaybackEngine
from .frames import Frame, FrameSequence, NaviData, TrackedObject
from .live_buffer import DEFAULT_LIVE_CAPACITY, LiveIngestionBuffer
from .playback_config import PlaybackConfig, load_playback_config
from .playback_state import PlaybackMode, PlaybackState
from .slots import LiveSource, Slot, SlotSynchronizer
from .state_machine import PlaybackStateMachine, TickResult
from .tick_loop import TickLoop

__all__ = [
    'GAP_THRESHOLD',
    'Advance',
    'FrameAdvancer',
    'ClockAnchor',
    'VirtualClock',
    'monotonic_seconds',
    'PlaybackEngine',
    'Frame',
    'FrameSequence',
    'NaviData',
    'TrackedObject',
    'DEFAULT_LIVE_CAPACITY',
    'LiveIngestionBuffer',
    'PlaybackConfig',
    'load_playback_config',
    'PlaybackMode',
    'PlaybackState',
    'LiveSource',
    'Slot',
    'SlotSynchronizer',
    'PlaybackStateMachine',
    'TickResult',
    'TickLoop',
]
