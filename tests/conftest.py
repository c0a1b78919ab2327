"""Pytest configuration and fixtures for doccache.

Repository and lookup tests run against in-memory doubles (tests/fakes.py);
the Firestore and Redis adapters are tested against mocked transports.
"""

import pytest

from doccache.core.config import EntityStoreConfig
from doccache.infrastructure.cache.lookup_cache import LookupCache
from doccache.infrastructure.repositories.entity_repo import EntityRepository
from tests.fakes import FakeCache, InMemoryDocumentStore, Widget


@pytest.fixture
def widget_config() -> EntityStoreConfig:
    return EntityStoreConfig(
        collection="widgets",
        client_name="main",
        database="testdb",
        cache_ttl=120,
        neg_cache_ttl=60,
    )


@pytest.fixture
def store() -> InMemoryDocumentStore:
    return InMemoryDocumentStore("widgets")


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def repository(
    store: InMemoryDocumentStore, widget_config: EntityStoreConfig
) -> EntityRepository[Widget]:
    return EntityRepository(Widget, store, widget_config)


@pytest.fixture
async def lookup(repository: EntityRepository[Widget], cache: FakeCache):
    """Lookup cache; drains background population after each test."""
    lookup_cache = LookupCache(repository, cache)
    yield lookup_cache
    await lookup_cache.drain()
