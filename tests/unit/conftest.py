"""Unit test fixtures for isolated, deterministic test execution.

This file provides:
- FakeClock: an injectable wall-clock source tests advance by hand
- FakeTransport: a Transport double that lets tests deliver frames and errors
- Frame factories for building sequences from plain timestamps
- run_async: drive a coroutine to completion on a fresh event loop
- restore_logging: undo global logger changes made by a test
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Callable, Coroutine, Iterable, List, Optional, TypeVar

import pytest

from mot_playback.core.engine import PlaybackEngine
from mot_playback.core import logging_config
from mot_playback.core.frames import Frame, FrameSequence, NaviData
from mot_playback.core.playback_config import PlaybackConfig
from mot_playback.ingest.transport import ConnectionConfig, LiveStream


T = TypeVar("T")


def run_async(coro: Coroutine[Any, Any, T]) -> T:
    """Run an async coroutine synchronously for testing."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


# =============================================================================
# Test Doubles
# =============================================================================

class FakeClock:
    """Manually advanced time source."""

    def __init__(self, start: float = 0.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> float:
        self.now += seconds
        return self.now

    def set(self, value: float) -> float:
        self.now = value
        return self.now


class FakeTransport:
    """Transport double recording connect/disconnect calls."""

    def __init__(self, fail_with: Optional[Exception] = None):
        self.fail_with = fail_with
        self.connect_calls = 0
        self.disconnect_calls = 0
        self.config: Optional[ConnectionConfig] = None
        self.connected = False
        self._on_frame = None
        self._on_error = None

    def connect(self, config, on_frame, on_error) -> None:
        self.connect_calls += 1
        if self.fail_with is not None:
            raise self.fail_with
        self.config = config
        self.connected = True
        self._on_frame = on_frame
        self._on_error = on_error

    def disconnect(self) -> None:
        self.disconnect_calls += 1
        self.connected = False

    def emit(self, frame: Optional[Frame], raw: str = "{}") -> None:
        """Deliver a frame through the last registered callback.

        Still delivers after disconnect, like a late network message.
        """
        if self._on_frame is not None:
            self._on_frame(frame, raw)

    def fail(self, message: str) -> None:
        if self._on_error is not None:
            self._on_error(message)


# =============================================================================
# Frame Factories
# =============================================================================

def make_frame(timestamp: float, **navi: float) -> Frame:
    """Frame with an empty object list and optional navi fields."""
    return Frame(timestamp=timestamp, navi=NaviData(ts=timestamp, **navi), objects=[])


def make_sequence(timestamps: Iterable[float]) -> FrameSequence:
    return FrameSequence(make_frame(ts) for ts in timestamps)


def make_live_stream(engine: PlaybackEngine, name: str = "live", transport: Optional[FakeTransport] = None) -> LiveStream:
    return LiveStream(
        transport or FakeTransport(),
        ConnectionConfig(url="localhost", port=9001),
        engine.create_live_buffer(name),
    )


# =============================================================================
# Fixtures
# =============================================================================

@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def engine_factory(fake_clock: FakeClock) -> Callable[..., PlaybackEngine]:
    """Build engines sharing the test's FakeClock."""

    def factory(**config: Any) -> PlaybackEngine:
        return PlaybackEngine(PlaybackConfig(**config), time_source=fake_clock)

    return factory


@pytest.fixture
def engine(engine_factory) -> PlaybackEngine:
    return engine_factory()


@pytest.fixture
def gap_sequence() -> FrameSequence:
    """Five frames with a 2.8s dropout between index 2 and 3."""
    return make_sequence([0.0, 1.0, 1.2, 4.0, 4.3])


@pytest.fixture
def collected() -> List[Any]:
    """Simple sink for callback arguments."""
    return []


@pytest.fixture
def restore_logging():
    """Put root handlers, playback logger levels and the log file back after the test."""
    root = logging.getLogger()
    names = (logging_config.ENGINE_LOGGER, logging_config.TICK_LOGGER, logging_config.ACCESS_LOGGER)
    saved_levels = {name: logging.getLogger(name).level for name in names}
    saved_handlers = list(root.handlers)
    saved_root_level = root.level
    saved_log_file = logging_config._log_file
    yield
    for handler in list(root.handlers):
        if handler not in saved_handlers:
            root.removeHandler(handler)
            handler.close()
    for handler in saved_handlers:
        if handler not in root.handlers:
            root.addHandler(handler)
    root.setLevel(saved_root_level)
    for name, level in saved_levels.items():
        logging.getLogger(name).setLevel(level)
    logging_config._log_file = saved_log_file
