"""Shared pytest configuration and fixtures for the MOT playback test suite."""

import sys
from pathlib import Path

import pytest

# Ensure the project root is in the path for imports
PROJECT_ROOT = Path(__file__).parent.parent
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))


# =============================================================================
# Pytest Configuration
# =============================================================================

def pytest_configure(config):
    """Configure custom pytest markers."""
    config.addinivalue_line(
        "markers", "network: mark test as opening local sockets"
    )


# =============================================================================
# Shared Fixtures
# =============================================================================

@pytest.fixture
def packaged_config() -> Path:
    """Return the config.txt shipped with the package."""
    return PROJECT_ROOT / "mot_playback" / "config.txt"
