"""
Shared fixtures.
"""
import pytest

from gamecore.runtime import reset_runtime
from gamecore.utils.clock import ManualClock


@pytest.fixture
def clock():
    """Hand-driven clock starting at t=0."""
    return ManualClock()


@pytest.fixture(autouse=True)
def _fresh_runtime():
    """Every test gets its own process runtime."""
    reset_runtime()
    yield
    reset_runtime()
