"""
API route modules.

- system: health and reset
- playback: transport controls on the shared cursor
- slots: per-slot inspection, clearing and disconnecting
- logs: runtime log level, tick trace and log file tail
"""

from .logs import setup_log_routes
from .playback import setup_playback_routes
from .slots import setup_slot_routes
from .system import setup_system_routes


def setup_all_routes(app, controller):
    """Register all API routes with the application."""
    setup_system_routes(app, controller)
    setup_playback_routes(app, controller)
    setup_slot_routes(app, controller)
    setup_log_routes(app, controller)


__all__ = ["setup_all_routes"]
