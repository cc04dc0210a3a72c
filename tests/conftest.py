"""
Shared pytest fixtures.
"""

import pytest

from groupledger.config import get_settings


@pytest.fixture(autouse=True)
def fresh_settings():
    """Reload settings per test so monkeypatched env vars are picked up."""
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
