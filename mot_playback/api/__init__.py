"""REST control surface for the playback engine."""

from .controller import PlaybackController
from .server import APIServer, create_app

__all__ = ["APIServer", "PlaybackController", "create_app"]
