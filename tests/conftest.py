"""
Pytest configuration and shared fixtures for the pairing relay test suite.
"""

import fakeredis
import pytest

from backend import RedisBackend
from dispatcher import EventDispatcher
from matchmaker import Matchmaker
from registry import ConnectionRegistry


@pytest.fixture
def registry():
    return ConnectionRegistry()


@pytest.fixture
def matchmaker(registry):
    return Matchmaker(registry, check_invariants=True)


@pytest.fixture
def connect(registry):
    """Register n connections and return their ids in order."""
    def _connect(n):
        return [registry.register().connection_id for _ in range(n)]
    return _connect


@pytest.fixture
def drain(registry):
    """Return (and consume) every event queued for a connection so far."""
    def _drain(connection_id):
        connection = registry.get(connection_id)
        messages = []
        while not connection.outbox.empty():
            messages.append(connection.outbox.get_nowait())
        return messages
    return _drain


@pytest.fixture
def redis_client():
    return fakeredis.FakeRedis(server=fakeredis.FakeServer(), decode_responses=True)


@pytest.fixture
def presence(redis_client):
    return RedisBackend(redis_client=redis_client, ttl=60)


@pytest.fixture
def dispatcher(registry, presence):
    return EventDispatcher(registry=registry, presence=presence, check_invariants=True)


def pytest_configure(config):
    """Configure pytest with custom markers."""
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
