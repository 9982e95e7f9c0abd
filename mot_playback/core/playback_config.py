"""Typed configuration for the playback engine."""

from __future__ import annotations

import math
from dataclasses import asdict, dataclass, fields, replace
from pathlib import Path
from typing import Any, Mapping, Optional

from .config_loader import DEFAULT_CONFIG_PATH, ConfigLoader
from .logging_utils import get_module_logger

logger = get_module_logger(__name__)

MAX_SLOT_COUNT = 4


@dataclass(slots=True, frozen=True)
class PlaybackConfig:
    gap_threshold: float = 1.5
    live_capacity: int = 2000
    live_warmup_frames: int = 5
    max_slots: int = MAX_SLOT_COUNT
    default_speed: float = 1.0
    tick_hz: float = 60.0
    api_enabled: bool = True
    api_host: str = "127.0.0.1"
    api_port: int = 8765
    log_level: str = "info"
    tick_trace: bool = False

    @classmethod
    def from_dict(cls, values: Mapping[str, Any]) -> "PlaybackConfig":
        """Build a config from loose values, ignoring unknown keys."""
        known = {f.name for f in fields(cls)}
        kwargs = {key: value for key, value in values.items() if key in known}
        config = cls(**kwargs)
        config.validate()
        return config

    def with_overrides(self, **overrides: Any) -> "PlaybackConfig":
        """Return a copy with non-None overrides applied (CLI flags)."""
        updates = {key: value for key, value in overrides.items() if value is not None}
        config = replace(self, **updates)
        config.validate()
        return config

    def validate(self) -> None:
        if not (self.gap_threshold > 0 and math.isfinite(self.gap_threshold)):
            raise ValueError(f"gap_threshold must be positive, got {self.gap_threshold!r}")
        if self.live_capacity < 1:
            raise ValueError(f"live_capacity must be >= 1, got {self.live_capacity!r}")
        if self.live_warmup_frames < 0:
            raise ValueError(f"live_warmup_frames must be >= 0, got {self.live_warmup_frames!r}")
        if not 1 <= self.max_slots <= MAX_SLOT_COUNT:
            raise ValueError(f"max_slots must be within 1..{MAX_SLOT_COUNT}, got {self.max_slots!r}")
        if not (self.default_speed > 0 and math.isfinite(self.default_speed)):
            raise ValueError(f"default_speed must be positive, got {self.default_speed!r}")
        if not self.tick_hz > 0:
            raise ValueError(f"tick_hz must be positive, got {self.tick_hz!r}")

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def load_playback_config(
    config_path: Optional[Path] = None,
    *,
    strict: bool = True,
) -> PlaybackConfig:
    """Load ``config.txt`` (or ``config_path``) over the dataclass defaults."""
    path = Path(config_path) if config_path else DEFAULT_CONFIG_PATH
    values = ConfigLoader.load(path, PlaybackConfig().to_dict(), strict=strict)
    config = PlaybackConfig.from_dict(values)
    logger.debug("Playback config: %s", config.to_dict())
    return config


__all__ = ["PlaybackConfig", "load_playback_config", "MAX_SLOT_COUNT"]
