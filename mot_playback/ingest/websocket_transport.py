"""WebSocket transport built on aiohttp's client."""

from __future__ import annotations

import asyncio
import re
from typing import Optional

import aiohttp

from mot_playback.core.async_utils import cancel_task_safely
from mot_playback.core.logging_utils import get_module_logger

from .log_parser import LogParser
from .transport import ConnectionConfig, ErrorCallback, FrameCallback

_SCHEME_RE = re.compile(r"^(ws://|wss://|mqtt://|mqtts://)", re.IGNORECASE)

LINK_FAILED_MESSAGE = "WebSocket link failed. Check the server status."


def build_websocket_url(config: ConnectionConfig) -> str:
    """``protocol + host[:port][/path]`` with any scheme typed into the host removed."""
    protocol = config.protocol or "ws://"
    host, sep, path = _SCHEME_RE.sub("", config.url.strip()).partition("/")
    port = f":{config.port}" if config.port else ""
    return f"{protocol}{host}{port}{sep}{path}"


class WebSocketTransport:
    """Subscribes to a WebSocket and feeds each text message to the parser.

    Must be connected from inside a running event loop. Connection failures
    are reported through ``on_error`` and retried every ``reconnect_delay``
    seconds until :meth:`disconnect`; ``reconnect_delay=None`` disables retry.
    """

    def __init__(
        self,
        *,
        reconnect_delay: Optional[float] = 1.0,
        heartbeat: Optional[float] = 60.0,
        connect_timeout: float = 30.0,
    ) -> None:
        self.reconnect_delay = reconnect_delay
        self.heartbeat = heartbeat
        self.connect_timeout = connect_timeout
        self.logger = get_module_logger("WebSocketTransport")
        self._task: Optional[asyncio.Task] = None

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    def connect(
        self,
        config: ConnectionConfig,
        on_frame: FrameCallback,
        on_error: ErrorCallback,
    ) -> None:
        self.disconnect()
        loop = asyncio.get_running_loop()
        url = build_websocket_url(config)
        self.logger.info("Connecting to %s", url)
        self._task = loop.create_task(self._run(url, on_frame, on_error), name=f"ws:{url}")

    def disconnect(self) -> None:
        task = self._task
        if task is not None and not task.done():
            self.logger.info("Closing WebSocket connection")
            task.cancel()

    async def aclose(self) -> None:
        """Cancel the connection task and wait until it has finished."""
        await cancel_task_safely(self._task, "websocket-transport", logger_instance=self.logger)

    async def _run(self, url: str, on_frame: FrameCallback, on_error: ErrorCallback) -> None:
        timeout = aiohttp.ClientTimeout(total=None, connect=self.connect_timeout)
        async with aiohttp.ClientSession(timeout=timeout) as session:
            while True:
                try:
                    async with session.ws_connect(url, heartbeat=self.heartbeat) as ws:
                        self.logger.info("Connected to %s", url)
                        await self._consume(ws, on_frame, on_error)
                except aiohttp.ClientError as exc:
                    self.logger.warning("WebSocket error for %s: %s", url, exc)
                    on_error(LINK_FAILED_MESSAGE)
                except asyncio.TimeoutError:
                    self.logger.warning("WebSocket connect timeout for %s", url)
                    on_error(LINK_FAILED_MESSAGE)

                if self.reconnect_delay is None:
                    return
                self.logger.debug("Reconnecting to %s in %.1fs", url, self.reconnect_delay)
                await asyncio.sleep(self.reconnect_delay)

    async def _consume(
        self,
        ws: aiohttp.ClientWebSocketResponse,
        on_frame: FrameCallback,
        on_error: ErrorCallback,
    ) -> None:
        async for msg in ws:
            if msg.type == aiohttp.WSMsgType.TEXT:
                raw = msg.data
            elif msg.type == aiohttp.WSMsgType.BINARY:
                raw = msg.data.decode("utf-8", errors="replace")
            elif msg.type == aiohttp.WSMsgType.ERROR:
                on_error(str(ws.exception() or LINK_FAILED_MESSAGE))
                return
            else:
                continue
            on_frame(LogParser.parse_message(raw), raw)


__all__ = ["WebSocketTransport", "build_websocket_url", "LINK_FAILED_MESSAGE"]
