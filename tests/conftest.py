"""
Shared fixtures for the storage layer tests.
"""

import pytest

from cassandrastore.db.memory import MemoryClient
from cassandrastore.metadata.store import CassandraMetadataStore
from cassandrastore.metrics import StoreMetrics
from cassandrastore.store.session import CassandraStore


NOW = 1_700_000_000.0


class FakeClock:
    """Manually advanced unix clock."""

    def __init__(self, now: float = NOW):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def client(clock):
    return MemoryClient(clock=clock)


@pytest.fixture
def metrics():
    return StoreMetrics()


@pytest.fixture
def session_store(client, metrics, clock):
    return CassandraStore(client=client, metrics=metrics, clock=clock)


@pytest.fixture
def metadata_store(client, metrics):
    return CassandraMetadataStore(client=client, metrics=metrics)
