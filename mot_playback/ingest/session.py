"""Saved-session layout shared with the persistence layer.

Recorded (LOG) sessions carry their frames; streamed sessions carry only the
connection needed to reconnect. Storage itself lives elsewhere.
"""

from __future__ import annotations

import json
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Optional

from mot_playback.core.frames import Frame, FrameSequence
from mot_playback.core.logging_utils import get_module_logger

from .log_parser import LogParser
from .transport import ConnectionConfig

logger = get_module_logger("SessionRecord")


class SourceType(Enum):
    LOG = "LOG"
    MQTT = "MQTT"
    WEBSOCKET = "WEBSOCKET"


@dataclass
class SessionRecord:
    name: str
    source_type: SourceType = SourceType.LOG
    frames: list[Frame] = field(default_factory=list)
    connection_config: Optional[ConnectionConfig] = None
    vin: Optional[str] = None
    id: str = field(default_factory=lambda: uuid.uuid4().hex)
    created_at: float = field(default_factory=time.time)

    @classmethod
    def from_sequence(
        cls,
        name: str,
        sequence: FrameSequence,
        source_type: SourceType = SourceType.LOG,
        connection_config: Optional[ConnectionConfig] = None,
    ) -> "SessionRecord":
        frames = list(sequence) if source_type == SourceType.LOG else []
        vin = frames[0].vin if frames else None
        return cls(
            name=name,
            source_type=source_type,
            frames=frames,
            connection_config=connection_config,
            vin=vin or "N/A",
        )

    @property
    def frame_count(self) -> int:
        return len(self.frames)

    def to_sequence(self) -> FrameSequence:
        """Replay sequence with the sort/dedup invariant re-established."""
        return FrameSequence(self.frames)

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "createdAt": self.created_at,
            "frameCount": self.frame_count,
            "frames": [f.to_dict(include_raw=True) for f in self.frames],
            "vin": self.vin,
            "sourceType": self.source_type.value,
            "connectionConfig": self.connection_config.to_dict() if self.connection_config else None,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "SessionRecord":
        try:
            source_type = SourceType(str(data.get("sourceType", "LOG")).upper())
        except ValueError as exc:
            raise ValueError(f"unknown sourceType {data.get('sourceType')!r}") from exc

        frames = [f for f in (LogParser.frame_from_dict(d) for d in data.get("frames") or []) if f is not None]
        config_data = data.get("connectionConfig")
        if source_type != SourceType.LOG and not config_data:
            raise ValueError(f"{source_type.value} session '{data.get('name')}' has no connectionConfig")

        return cls(
            name=str(data.get("name") or "Session"),
            source_type=source_type,
            frames=frames,
            connection_config=ConnectionConfig.from_dict(config_data) if config_data else None,
            vin=data.get("vin"),
            id=str(data.get("id") or uuid.uuid4().hex),
            created_at=float(data.get("createdAt") or time.time()),
        )

    def save(self, path: Path) -> Path:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as fh:
            json.dump(self.to_dict(), fh)
        logger.debug("Saved session '%s' (%d frames) to %s", self.name, self.frame_count, path)
        return path

    @classmethod
    def load(cls, path: Path) -> "SessionRecord":
        with open(path, "r", encoding="utf-8") as fh:
            record = cls.from_dict(json.load(fh))
        logger.info("Loaded session '%s' (%d frames) from %s", record.name, record.frame_count, path)
        return record


__all__ = ["SessionRecord", "SourceType"]
