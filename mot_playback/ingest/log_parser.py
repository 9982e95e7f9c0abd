"""Parser turning recorded logs and stream payloads into frames.

Log lines look like::

    2024-05-01 10:00:00 INFO Nanomsg: {'channel': 'mov_objs_hmi', 'params': {...}}

The payload after the ``Nanomsg:`` marker (or from the first ``{``/``[``) is
either JSON or a Python literal. A payload may hold one message or a list of
messages. Only ``mov_objs_hmi`` messages, directly or nested in a
``tracking`` message, produce frames.
"""

from __future__ import annotations

import ast
import json
import math
import re
from dataclasses import fields
from typing import Any, Iterable, Optional

from mot_playback.core.frames import Frame, FrameSequence, NaviData, TrackedObject
from mot_playback.core.logging_utils import get_module_logger

logger = get_module_logger("LogParser")

LOG_MARKER = "Nanomsg:"
HMI_CHANNEL = "mov_objs_hmi"
TRACKING_CHANNEL = "tracking"

_PAYLOAD_START_RE = re.compile(r"[\{\[]")
_PY_TRUE_RE = re.compile(r":\s*True", re.IGNORECASE)
_PY_FALSE_RE = re.compile(r":\s*False", re.IGNORECASE)
_PY_NONE_RE = re.compile(r":\s*None", re.IGNORECASE)

_NAVI_FIELDS = tuple(f.name for f in fields(NaviData))
_OBJECT_FIELDS = tuple(f.name for f in fields(TrackedObject))


def _as_float(value: Any, default: float = 0.0) -> float:
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    return result if math.isfinite(result) else default


def _as_int(value: Any, default: int = 0) -> int:
    try:
        return int(value)
    except (TypeError, ValueError):
        return default


def _decode_payload(text: str) -> Any:
    """Decode JSON or a Python literal; raise ValueError when neither works."""
    try:
        return json.loads(text)
    except ValueError:
        pass
    try:
        return ast.literal_eval(text)
    except (ValueError, SyntaxError, MemoryError, RecursionError):
        pass
    converted = text.replace("'", '"')
    converted = _PY_TRUE_RE.sub(": true", converted)
    converted = _PY_FALSE_RE.sub(": false", converted)
    converted = _PY_NONE_RE.sub(": null", converted)
    return json.loads(converted)


def _extract_payload(line: str) -> Optional[str]:
    marker_idx = line.find(LOG_MARKER)
    if marker_idx != -1:
        return line[marker_idx + len(LOG_MARKER):].strip()
    match = _PAYLOAD_START_RE.search(line)
    if match is None:
        return None
    return line[match.start():].strip()


class LogParser:
    """Stateless parsing helpers; every method is a pure function."""

    @classmethod
    def parse(cls, content: str) -> FrameSequence:
        """Parse a whole log into a sorted, de-duplicated sequence."""
        return FrameSequence(f for f in cls.parse_frames(content.splitlines()) if f.timestamp > 0)

    @classmethod
    def parse_frames(cls, lines: Iterable[str]) -> list[Frame]:
        frames: list[Frame] = []
        skipped = 0
        for line in lines:
            trimmed = line.strip()
            if not trimmed:
                continue
            payload = _extract_payload(trimmed)
            if payload is None:
                continue
            try:
                parsed = _decode_payload(payload)
            except ValueError:
                skipped += 1
                continue
            items = parsed if isinstance(parsed, list) else [parsed]
            for item in items:
                frame = cls.parse_single(item)
                if frame is not None:
                    frames.append(frame)
        if skipped:
            logger.debug("Skipped %d undecodable lines", skipped)
        return frames

    @classmethod
    def parse_single(cls, item: Any) -> Optional[Frame]:
        """Map one decoded message to a frame, or None if it carries none."""
        if not isinstance(item, dict):
            return None

        channel = item.get("channel")
        params = item.get("params")
        hmi = None
        if channel == HMI_CHANNEL:
            hmi = params
        elif channel == TRACKING_CHANNEL and isinstance(params, dict):
            hmi = params.get(HMI_CHANNEL)

        if not isinstance(hmi, dict):
            return None
        navi = hmi.get("navi")
        objs = hmi.get("objs")
        if not navi or not isinstance(objs, list):
            return None

        timestamp = _as_float(item.get("timestamp"))
        if not timestamp:
            if isinstance(navi, list):
                timestamp = _as_float(navi[8] if len(navi) > 8 else None)
            elif isinstance(navi, dict):
                timestamp = _as_float(navi.get("ts"))

        return Frame(
            timestamp=timestamp,
            navi=cls._map_navi(navi),
            objects=[cls._map_object(obj) for obj in objs],
            vin=item.get("vin") or "Unknown",
            raw=json.dumps(item, indent=2, default=str),
        )

    @classmethod
    def parse_message(cls, raw: str) -> Optional[Frame]:
        """Parse one live payload: a JSON message, else a log line."""
        try:
            return cls.parse_single(json.loads(raw))
        except ValueError:
            frames = cls.parse_frames(raw.splitlines())
            return frames[0] if frames else None

    @classmethod
    def frame_from_dict(cls, data: dict[str, Any]) -> Optional[Frame]:
        """Rebuild a frame saved with ``Frame.to_dict``; None without a timestamp."""
        try:
            timestamp = float(data["timestamp"])
        except (KeyError, TypeError, ValueError):
            return None
        return Frame(
            timestamp=timestamp,
            navi=cls._map_navi(data.get("navi") or {}),
            objects=[cls._map_object(obj) for obj in data.get("objs") or []],
            vin=data.get("vin"),
            raw=data.get("raw"),
        )

    @staticmethod
    def _map_navi(navi: Any) -> NaviData:
        if isinstance(navi, (list, tuple)):
            values = list(navi[:len(_NAVI_FIELDS)])
            return NaviData(*(_as_float(v) for v in values))
        if isinstance(navi, dict):
            return NaviData(**{k: _as_float(navi.get(k)) for k in _NAVI_FIELDS})
        return NaviData()

    @staticmethod
    def _map_object(obj: Any) -> TrackedObject:
        if isinstance(obj, (list, tuple)):
            values = dict(zip(_OBJECT_FIELDS, obj))
        elif isinstance(obj, dict):
            values = obj
        else:
            return TrackedObject()

        points = values.get("vertex_points") or []
        vertex_points = [
            (_as_float(p[0]), _as_float(p[1]))
            for p in points
            if isinstance(p, (list, tuple)) and len(p) >= 2
        ]
        return TrackedObject(
            id=_as_int(values.get("id")),
            theta=_as_float(values.get("theta")),
            vel=_as_float(values.get("vel")),
            vel_theta=_as_float(values.get("vel_theta")),
            height=_as_float(values.get("height")),
            kind=_as_int(values.get("kind")),
            vertex_points=vertex_points,
            lower_z=_as_float(values.get("lower_z")),
            veh_light_kind=_as_int(values.get("veh_light_kind")),
        )


__all__ = ["LogParser", "LOG_MARKER", "HMI_CHANNEL", "TRACKING_CHANNEL"]
