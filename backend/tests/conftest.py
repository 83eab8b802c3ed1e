"""Pytest configuration and fixtures."""

import random
from typing import Generator, List, Optional

import pytest
from fastapi.testclient import TestClient

from tablequeue.api.deps import get_queue_service
from tablequeue.core.metrics import metrics
from tablequeue.core.rate_limit import limiter
from tablequeue.main import app
from tablequeue.services.queue_service import QueueService
from tablequeue.services.queue_store import QueueStore


class ScriptedRandom:
    """Stand-in for random.Random that replays fixed draws."""

    def __init__(self, values: Optional[List[float]] = None, choices: Optional[list] = None,
                 ints: Optional[List[int]] = None):
        self.values = list(values or [])
        self.choices = list(choices or [])
        self.ints = list(ints or [])

    def random(self) -> float:
        return self.values.pop(0)

    def choice(self, seq):
        return self.choices.pop(0)

    def randint(self, a: int, b: int) -> int:
        return self.ints.pop(0)


@pytest.fixture
def scripted_random():
    return ScriptedRandom


@pytest.fixture
def queue_store() -> QueueStore:
    """Store whose new queues start empty."""
    return QueueStore(seed_min=0, seed_max=0, rng=random.Random(7))


@pytest.fixture
def queue_service(queue_store: QueueStore) -> QueueService:
    return QueueService(queue_store)


@pytest.fixture(scope="function")
def client(queue_store: QueueStore, queue_service: QueueService) -> Generator[TestClient, None, None]:
    """Test client wired to an empty-seed store."""
    app.dependency_overrides[get_queue_service] = lambda: queue_service
    limiter.enabled = False
    metrics.reset()
    # Don't raise server exceptions so we can test error status codes
    with TestClient(app, raise_server_exceptions=False) as test_client:
        app.state.queue_store = queue_store
        yield test_client
    limiter.enabled = True
    app.dependency_overrides.clear()
