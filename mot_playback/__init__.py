"""Playback synchronization engine for multi-object-tracking logs and streams."""

from __future__ import annotations

import asyncio
from importlib import metadata
from typing import Optional, Sequence

from .app.main import main

try:
    __version__ = metadata.version("mot-playback")
except metadata.PackageNotFoundError:  # pragma: no cover - local dev
    __version__ = "0.0.0"


def run(argv: Optional[Sequence[str]] = None) -> int:
    """Convenience wrapper that runs the async entry point."""
    return asyncio.run(main(list(argv) if argv is not None else None))


__all__ = ["__version__", "main", "run"]
