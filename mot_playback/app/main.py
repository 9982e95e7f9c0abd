import argparse
import asyncio
import signal
from pathlib import Path
from typing import Optional

from mot_playback.api import APIServer, PlaybackController
from mot_playback.core.engine import PlaybackEngine, SlotSource
from mot_playback.core.logging_config import configure_logging
from mot_playback.core.logging_utils import get_module_logger
from mot_playback.core.playback_config import PlaybackConfig, load_playback_config
from mot_playback.core.tick_loop import TickLoop
from mot_playback.ingest import (
    ConnectionConfig,
    LiveStream,
    LogParser,
    SessionRecord,
    SourceType,
    WebSocketTransport,
)


logger = get_module_logger(__name__)

LOG_LEVELS = ['debug', 'info', 'warning', 'error', 'critical']


def parse_args(argv: Optional[list[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="mot_playback",
        description="MOT playback - replay and compare tracking logs and live streams side by side"
    )

    parser.add_argument(
        "logs",
        nargs="*",
        type=Path,
        metavar="LOG",
        help="Recorded log files, one per slot"
    )

    parser.add_argument(
        "--session",
        dest="sessions",
        action="append",
        type=Path,
        default=[],
        metavar="FILE",
        help="Saved session JSON file (repeatable)"
    )

    parser.add_argument(
        "--stream",
        dest="streams",
        action="append",
        default=[],
        metavar="URL",
        help="WebSocket URL to ingest live (repeatable)"
    )

    parser.add_argument(
        "--speed",
        type=float,
        default=None,
        help="Initial playback speed (default from config: 1.0)"
    )

    parser.add_argument(
        "--config",
        type=Path,
        default=None,
        help="Configuration file overriding the packaged config.txt"
    )

    parser.add_argument(
        "--log-level",
        choices=LOG_LEVELS,
        default=None,
        help="Logging level (default from config: info)"
    )

    parser.add_argument(
        "--log-file",
        type=Path,
        default=None,
        help="Optional path to a rotating log file"
    )

    parser.add_argument(
        "--tick-trace",
        action="store_true",
        default=None,
        help="Log every scheduler tick at DEBUG"
    )

    parser.add_argument(
        "--no-api",
        dest="api_enabled",
        action="store_false",
        default=None,
        help="Do not start the REST control API"
    )

    parser.add_argument(
        "--api-port",
        type=int,
        default=None,
        help="REST control API port (default from config: 8765)"
    )

    parser.add_argument(
        "--autoplay",
        action="store_true",
        help="Start playing as soon as recorded sources are loaded"
    )

    return parser.parse_args(argv)


def build_config(args: argparse.Namespace) -> PlaybackConfig:
    return load_playback_config(args.config).with_overrides(
        default_speed=args.speed,
        log_level=args.log_level,
        tick_trace=args.tick_trace,
        api_enabled=args.api_enabled,
        api_port=args.api_port,
    )


def stream_config_from_url(url: str) -> ConnectionConfig:
    """Split a typed URL into protocol and host the way the transport expects."""
    lowered = url.lower()
    protocol = "wss://" if lowered.startswith("wss://") else "ws://"
    return ConnectionConfig(url=url, protocol=protocol)


def load_log_file(path: Path) -> Optional[tuple[str, SlotSource]]:
    text = path.read_text(encoding="utf-8", errors="replace")
    sequence = LogParser.parse(text)
    if not sequence:
        logger.warning("No tracking frames found in %s", path)
        return None
    logger.info("Parsed %s: %d frames over %.1fs", path.name, len(sequence), sequence.duration)
    return path.name, sequence


def live_source(engine: PlaybackEngine, name: str, config: ConnectionConfig) -> LiveStream:
    return LiveStream(WebSocketTransport(), config, engine.create_live_buffer(name))


def load_session_file(engine: PlaybackEngine, path: Path) -> Optional[tuple[str, SlotSource]]:
    record = SessionRecord.load(path)
    if record.source_type == SourceType.LOG:
        sequence = record.to_sequence()
        if not sequence:
            logger.warning("Session '%s' holds no frames", record.name)
            return None
        return record.name, sequence
    if record.source_type == SourceType.WEBSOCKET:
        return record.name, live_source(engine, record.name, record.connection_config)
    logger.warning("Session '%s': %s streams are not supported", record.name, record.source_type.value)
    return None


def collect_sources(args: argparse.Namespace, engine: PlaybackEngine) -> list[tuple[str, SlotSource]]:
    """Resolve command line sources in slot order: logs, sessions, streams."""
    sources: list[tuple[str, SlotSource]] = []

    for path in args.logs:
        try:
            loaded = load_log_file(path)
        except OSError as e:
            logger.error("Cannot read %s: %s", path, e)
            continue
        if loaded:
            sources.append(loaded)

    for path in args.sessions:
        try:
            loaded = load_session_file(engine, path)
        except (OSError, ValueError) as e:
            logger.error("Cannot load session %s: %s", path, e)
            continue
        if loaded:
            sources.append(loaded)

    for url in args.streams:
        sources.append((url, live_source(engine, url, stream_config_from_url(url))))

    max_slots = engine.config.max_slots
    if len(sources) > max_slots:
        logger.warning("Only %d slots available; ignoring %d extra sources", max_slots, len(sources) - max_slots)
        for _, source in sources[max_slots:]:
            if isinstance(source, LiveStream):
                source.close()
        sources = sources[:max_slots]
    return sources


async def main(argv: Optional[list[str]] = None) -> int:
    args = parse_args(argv)
    try:
        config = build_config(args)
    except ValueError as e:
        configure_logging("info")
        logger.error("Invalid configuration: %s", e)
        return 2

    configure_logging(config.log_level, log_file=args.log_file, tick_trace=config.tick_trace)
    logger.info("Starting MOT playback (speed %.2gx, %d slots)", config.default_speed, config.max_slots)

    engine = PlaybackEngine(config)
    for slot_index, (name, source) in enumerate(collect_sources(args, engine)):
        engine.occupy_slot(slot_index, source, name)

    tick_loop = TickLoop(engine)
    api_server: Optional[APIServer] = None
    if config.api_enabled:
        api_server = APIServer(PlaybackController(engine, tick_loop), host=config.api_host, port=config.api_port)

    stop_event = asyncio.Event()
    loop = asyncio.get_running_loop()

    def signal_handler():
        logger.info("Shutdown requested")
        stop_event.set()

    for sig in (signal.SIGINT, signal.SIGTERM):
        try:
            loop.add_signal_handler(sig, signal_handler)
        except NotImplementedError:
            pass  # Windows doesn't support add_signal_handler

    tick_loop.start()
    try:
        if api_server is not None:
            await api_server.start()
        if args.autoplay and not engine.play():
            logger.info("Autoplay skipped (mode %s)", engine.mode.value)
        await stop_event.wait()
    except OSError as e:
        logger.error("Failed to start API server: %s", e)
        return 1
    finally:
        if api_server is not None:
            await api_server.stop()
        await tick_loop.stop()
        engine.reset()
        logger.info("MOT playback stopped")
    return 0
