"""Shared fixtures for query cache tests."""

from datetime import datetime, timedelta, timezone

import pytest

from query_cache.repositories import InMemoryDocumentStore
from query_cache.services import QueryCacheService

TTL_SECONDS = 3600
MAX_SIZE = 3
START = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class FakeClock:
    """Controllable clock returning aware UTC datetimes."""

    def __init__(self, now: datetime = START) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += timedelta(seconds=seconds)


@pytest.fixture
def clock():
    """A clock starting at a fixed instant."""
    return FakeClock()


@pytest.fixture
def store():
    """A fresh in-memory document store."""
    return InMemoryDocumentStore()


@pytest.fixture
def cache(store, clock):
    """A small cache over the in-memory store with a fake clock."""
    return QueryCacheService(
        store=store,
        ttl=TTL_SECONDS,
        max_size=MAX_SIZE,
        fuzzy_threshold=0.8,
        clock=clock,
    )
