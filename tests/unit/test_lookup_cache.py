"""Tests for the cache-aside lookup: negative caching, background population, TTLs."""

import asyncio
import logging
from unittest.mock import AsyncMock

import pytest

from doccache.domain.exceptions import (
    CacheException,
    EntityNotFoundException,
    StoreException,
)
from doccache.infrastructure.cache.lookup_cache import LookupCache
from doccache.infrastructure.repositories.entity_repo import EntityRepository
from tests.fakes import FakeCache, InMemoryDocumentStore, Widget

POSITIVE_KEY = "main:testdb:widgets:code:A1"
NEGATIVE_KEY = "neg:main:testdb:widgets:code:ZZ"


class TestWidgetScenario:
    """Create A1, read it through the store then the cache; ZZ is negative-cached."""

    async def test_positive_then_negative(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        store: InMemoryDocumentStore,
    ) -> None:
        created = await repository.create(Widget(code="A1"))

        first = await lookup.get("code", "A1", False)
        assert first == created
        assert store.calls["find_one"] == 1

        await lookup.drain()
        second = await lookup.get("code", "A1", False)
        assert second == created
        assert store.calls["find_one"] == 1

        assert await lookup.get("code", "ZZ", True) is None
        assert store.calls["find_one"] == 2
        await lookup.drain()
        assert await lookup.get("code", "ZZ", True) is None
        assert store.calls["find_one"] == 2

    async def test_get_by_id_after_create(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        store: InMemoryDocumentStore,
    ) -> None:
        created = await repository.create(Widget(code="A1", owner_id="w0"))

        assert await lookup.get("id", created.id) == created
        await lookup.drain()
        cached = await lookup.get("id", created.id)

        assert cached == created
        assert cached.created_at == cached.updated_at
        assert store.calls["find_one"] == 1


class TestPopulation:
    async def test_caller_does_not_wait_for_population(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
    ) -> None:
        await repository.create(Widget(code="A1"))

        await lookup.get("code", "A1")

        assert cache.sets == []
        assert lookup.pending_population == 1
        await lookup.drain()
        assert lookup.pending_population == 0
        assert [key for key, _, _ in cache.sets] == [POSITIVE_KEY]
        assert cache.ttl_of(POSITIVE_KEY) == 120

    async def test_negative_entry_value_and_ttl(
        self, lookup: LookupCache[Widget], cache: FakeCache
    ) -> None:
        await lookup.get("code", "ZZ", use_negative_cache=True)
        await lookup.drain()
        assert cache.sets == [(NEGATIVE_KEY, "neg", 60)]

    async def test_miss_without_negative_cache_writes_nothing(
        self,
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        assert await lookup.get("code", "ZZ") is None
        await lookup.drain()
        assert await lookup.get("code", "ZZ") is None

        assert cache.sets == []
        assert store.calls["find_one"] == 2
        assert not any(key.startswith("neg:") for key in cache.gets)

    async def test_caller_mutation_does_not_reach_cache(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
    ) -> None:
        await repository.create(Widget(code="A1"))

        found = await lookup.get("code", "A1")
        found.status = "mutated"
        await lookup.drain()

        assert Widget.from_cache(cache.entries[POSITIVE_KEY][0]).status == "active"

    async def test_concurrent_misses_both_query_store(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        await repository.create(Widget(code="A1"))

        first, second = await asyncio.gather(
            lookup.get("code", "A1"), lookup.get("code", "A1")
        )
        await lookup.drain()

        assert first == second
        assert store.calls["find_one"] == 2
        assert len(cache.sets) == 2

    async def test_write_failure_is_logged_not_raised(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        created = await repository.create(Widget(code="A1"))
        cache.fail_writes = True

        with caplog.at_level(logging.WARNING, logger="doccache.infrastructure.cache.lookup_cache"):
            assert await lookup.get("code", "A1") == created
            assert await lookup.get("code", "ZZ", True) is None
            await lookup.drain()

        messages = [record.getMessage() for record in caplog.records]
        assert any(m.startswith("Error filling cache for Widget") for m in messages)
        assert any(m.startswith("Error filling neg cache for Widget") for m in messages)
        assert caplog.records[0].cache_key == POSITIVE_KEY

    async def test_unexpected_population_error_is_logged(
        self,
        repository: EntityRepository[Widget],
        caplog: pytest.LogCaptureFixture,
    ) -> None:
        await repository.create(Widget(code="A1"))
        broken_cache = AsyncMock()
        broken_cache.get.return_value = None
        broken_cache.set.side_effect = RuntimeError("boom")
        lookup = LookupCache(repository, broken_cache)

        with caplog.at_level(logging.ERROR, logger="doccache.infrastructure.cache.lookup_cache"):
            assert await lookup.get("code", "A1") is not None
            await lookup.drain()

        assert "Unexpected error populating cache for Widget" in caplog.text


class TestExpiry:
    async def test_positive_entry_expires(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        await repository.create(Widget(code="A1"))
        await lookup.get("code", "A1")
        await lookup.drain()

        cache.advance(119)
        await lookup.get("code", "A1")
        assert store.calls["find_one"] == 1

        cache.advance(1)
        await lookup.get("code", "A1")
        assert store.calls["find_one"] == 2

    async def test_negative_entry_expires(
        self,
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        await lookup.get("code", "ZZ", True)
        await lookup.drain()

        cache.advance(60)
        assert await lookup.get("code", "ZZ", True) is None
        assert store.calls["find_one"] == 2


class TestErrors:
    async def test_negative_read_error_propagates(
        self,
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        cache.fail_reads = True
        with pytest.raises(CacheException):
            await lookup.get("code", "A1", use_negative_cache=True)
        assert cache.gets == ["neg:main:testdb:widgets:code:A1"]
        assert store.calls["find_one"] == 0

    async def test_positive_read_error_propagates(
        self,
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        cache.fail_reads = True
        with pytest.raises(CacheException):
            await lookup.get("code", "A1")
        assert store.calls["find_one"] == 0

    async def test_malformed_payload_propagates(
        self,
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        await cache.set(POSITIVE_KEY, '{"code": 12', 120)
        with pytest.raises(CacheException, match="Malformed cache payload"):
            await lookup.get("code", "A1")
        assert store.calls["find_one"] == 0

    async def test_empty_entry_is_a_miss(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        created = await repository.create(Widget(code="A1"))
        await cache.set("neg:" + POSITIVE_KEY, "", 60)
        await cache.set(POSITIVE_KEY, "", 120)

        assert await lookup.get("code", "A1", True) == created
        assert store.calls["find_one"] == 1

    async def test_store_error_propagates_and_populates_nothing(
        self,
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        store.fail_with = StoreException("Firestore unreachable")
        with pytest.raises(StoreException):
            await lookup.get("code", "A1", use_negative_cache=True)
        await lookup.drain()
        assert cache.sets == []


class TestStaleness:
    async def test_update_leaves_cached_entry_stale_until_ttl(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        widget = await repository.create(Widget(code="A1"))
        await lookup.get("code", "A1")
        await lookup.drain()
        before = widget.updated_at

        await repository.update(widget, {"$set": {"code": "A2"}})
        assert widget.updated_at >= before

        stale = await lookup.get("code", "A1")
        assert stale is not None
        assert stale.code == "A1"
        assert stale.updated_at == before
        assert store.calls["find_one"] == 1

        fresh = await lookup.get("code", "A2")
        assert fresh is not None
        assert fresh.code == "A2"

        cache.advance(120)
        assert await lookup.get("code", "A1") is None

    async def test_delete_leaves_cached_entry(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        store: InMemoryDocumentStore,
    ) -> None:
        widget = await repository.create(Widget(code="A1"))
        await lookup.get("code", "A1")
        await lookup.drain()

        await repository.delete(widget)

        assert await lookup.get("code", "A1") == widget
        assert store.documents == {}


class TestRefreshAndRequire:
    async def test_refresh_writes_before_returning(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
    ) -> None:
        widget = await repository.create(Widget(code="A1"))

        refreshed = await lookup.refresh("code", "A1")

        assert refreshed == widget
        assert lookup.pending_population == 0
        assert Widget.from_cache(cache.entries[POSITIVE_KEY][0]) == widget

    async def test_refresh_overwrites_stale_entry(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
    ) -> None:
        widget = await repository.create(Widget(code="A1"))
        await lookup.get("code", "A1")
        await lookup.drain()
        await repository.update(widget, {"$set": {"quantity": 8}})

        await lookup.refresh("code", "A1")

        cached = await lookup.get("code", "A1")
        assert cached.quantity == 8

    async def test_refresh_missing_writes_nothing(
        self, lookup: LookupCache[Widget], cache: FakeCache
    ) -> None:
        assert await lookup.refresh("code", "ZZ") is None
        assert cache.sets == []
        assert cache.deletes == []

    async def test_refresh_clears_negative_entry(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
        store: InMemoryDocumentStore,
    ) -> None:
        assert await lookup.get("code", "A1", True) is None
        await lookup.drain()
        widget = await repository.create(Widget(code="A1"))
        assert await lookup.get("code", "A1", True) is None

        await lookup.refresh("code", "A1")

        assert cache.deletes == ["neg:" + POSITIVE_KEY]
        assert await lookup.get("code", "A1", True) == widget
        assert store.calls["find_one"] == 2

    async def test_refresh_propagates_write_errors(
        self,
        repository: EntityRepository[Widget],
        lookup: LookupCache[Widget],
        cache: FakeCache,
    ) -> None:
        await repository.create(Widget(code="A1"))
        cache.fail_writes = True
        with pytest.raises(CacheException):
            await lookup.refresh("code", "A1")

    async def test_require_raises_when_missing(self, lookup: LookupCache[Widget]) -> None:
        with pytest.raises(EntityNotFoundException) as exc_info:
            await lookup.require("code", "ZZ", use_negative_cache=True)
        assert exc_info.value.details == {"entity_type": "Widget", "key": "code", "value": "ZZ"}

    async def test_require_returns_entity(
        self, repository: EntityRepository[Widget], lookup: LookupCache[Widget]
    ) -> None:
        widget = await repository.create(Widget(code="A1"))
        assert await lookup.require("code", "A1") == widget
