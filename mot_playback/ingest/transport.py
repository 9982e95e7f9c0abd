"""Transport contract and the live stream handle bound to a slot.

A transport delivers parsed frames through ``on_frame(frame, raw)`` (frame is
None when the payload held no frame) and advisory failures through
``on_error(message)``. Callbacks may fire from any thread or task; the handle
only appends to its buffer and records strings, it never touches playback.
"""

from __future__ import annotations

import threading
from dataclasses import asdict, dataclass
from typing import Any, Callable, Optional, Protocol, runtime_checkable

from mot_playback.core.frames import Frame
from mot_playback.core.live_buffer import LiveIngestionBuffer
from mot_playback.core.logging_utils import get_module_logger

FrameCallback = Callable[[Optional[Frame], str], None]
ErrorCallback = Callable[[str], None]


@dataclass(slots=True)
class ConnectionConfig:
    url: str
    protocol: str = ""
    port: Optional[int] = None
    topic: Optional[str] = None
    username: Optional[str] = None
    password: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ConnectionConfig":
        port = data.get("port")
        return cls(
            url=str(data.get("url", "")),
            protocol=str(data.get("protocol") or ""),
            port=int(port) if port not in (None, "") else None,
            topic=data.get("topic") or None,
            username=data.get("username") or None,
            password=data.get("password") or None,
        )

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


@runtime_checkable
class Transport(Protocol):
    def connect(
        self,
        config: ConnectionConfig,
        on_frame: FrameCallback,
        on_error: ErrorCallback,
    ) -> None: ...

    def disconnect(self) -> None: ...


class LiveStream:
    """Live handle: a transport subscription feeding one LiveIngestionBuffer.

    Pass it to ``PlaybackEngine.occupy_slot``; the engine opens it and closes
    it when the slot is cleared or disconnected. Closing keeps the buffer.
    """

    def __init__(
        self,
        transport: Transport,
        config: ConnectionConfig,
        buffer: LiveIngestionBuffer,
    ) -> None:
        self.transport = transport
        self.config = config
        self.buffer = buffer
        self.logger = get_module_logger("LiveStream").getChild(buffer.name)
        self._lock = threading.Lock()
        self._connected = False
        self._error: Optional[str] = None
        self._latest_raw: Optional[str] = None
        self.messages_received = 0

    @property
    def connected(self) -> bool:
        return self._connected

    @property
    def error(self) -> Optional[str]:
        with self._lock:
            return self._error

    @property
    def latest_raw(self) -> Optional[str]:
        with self._lock:
            return self._latest_raw

    def open(self) -> None:
        if self._connected:
            return
        with self._lock:
            self._error = None
            self._latest_raw = None
        self.buffer.reopen()
        self._connected = True
        self.logger.info("Connecting to %s", self.config.url)
        try:
            self.transport.connect(self.config, self._on_frame, self._on_error)
        except Exception as exc:
            self.logger.error("Transport failed to start: %s", exc)
            self._on_error(str(exc) or type(exc).__name__)

    def close(self) -> None:
        if not self._connected:
            return
        self._connected = False
        self.buffer.seal()
        try:
            self.transport.disconnect()
        except Exception as exc:
            self.logger.warning("Transport disconnect failed: %s", exc)
        self.logger.info("Closed (%d frames buffered)", len(self.buffer))

    # ------------------------------------------------------------------
    # Transport callbacks

    def _on_frame(self, frame: Optional[Frame], raw: str) -> None:
        with self._lock:
            self._latest_raw = raw
            self.messages_received += 1
        if frame is not None:
            self.buffer.append(frame)

    def _on_error(self, message: str) -> None:
        self.logger.warning("Stream error: %s", message)
        with self._lock:
            self._error = message


__all__ = ["ConnectionConfig", "Transport", "LiveStream", "FrameCallback", "ErrorCallback"]
