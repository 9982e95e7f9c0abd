"""Pytest fixtures for API unit tests.

Builds a real PlaybackEngine on a FakeClock behind the controller so routes
are exercised end to end without binding a public port.
"""

from __future__ import annotations

import pytest
from aiohttp import web

from mot_playback.api.controller import PlaybackController
from mot_playback.api.server import create_app
from mot_playback.core.engine import PlaybackEngine


def create_test_app(controller: PlaybackController) -> web.Application:
    """Create the aiohttp application used by APIServer."""
    return create_app(controller, localhost_only=True)


@pytest.fixture
def controller(engine: PlaybackEngine) -> PlaybackController:
    return PlaybackController(engine)
