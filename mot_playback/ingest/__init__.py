"""Frame sources: log parsing, live transports and saved sessions."""

from .log_parser import HMI_CHANNEL, LOG_MARKER, TRACKING_CHANNEL, LogParser
from .session import SessionRecord, SourceType
from .transport import ConnectionConfig, LiveStream, Transport
from .websocket_transport import WebSocketTransport, build_websocket_url

__all__ = [
    "LogParser",
    "LOG_MARKER",
    "HMI_CHANNEL",
    "TRACKING_CHANNEL",
    "SessionRecord",
    "SourceType",
    "ConnectionConfig",
    "LiveStream",
    "Transport",
    "WebSocketTransport",
    "build_websocket_url",
]
