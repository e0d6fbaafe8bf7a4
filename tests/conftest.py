"""Shared test fixtures for event shipper tests."""

import pytest

from event_shipper.config import SenderConfig
from event_shipper.event_queue import EventQueue

from tests.mocks.transport import RecordingTransport


# =============================================================================
# Queue Fixtures
# =============================================================================

@pytest.fixture
def queue() -> EventQueue:
    """Empty event queue."""
    return EventQueue()


# =============================================================================
# Transport Fixtures
# =============================================================================

@pytest.fixture
def make_transport():
    """Factory for recording transports."""
    def factory(**kwargs) -> RecordingTransport:
        return RecordingTransport(**kwargs)
    return factory


# =============================================================================
# Config Fixtures
# =============================================================================

@pytest.fixture
def fast_config() -> SenderConfig:
    """Config that ticks quickly enough for threaded tests."""
    return SenderConfig(send_interval_seconds=0.01)
