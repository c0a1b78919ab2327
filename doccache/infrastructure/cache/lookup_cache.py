"""Cache-aside lookup of entities by an arbitrary field, with negative caching.

Read order for ``get(key, value, use_negative_cache)``:

1. negative entry (only when requested): present -> None, no store access
2. positive entry: present -> deserialized entity
3. store query ``key == value`` through the repository
4. not found + negative caching -> background write of the ``neg`` marker
5. found -> background write of the serialized entity

Cache read errors propagate; the lookup never falls back to the store on a
broken cache. Population runs as fire-and-forget tasks: the caller gets its
result without waiting, and population failures are only logged.

There is no single-flight: concurrent misses on one key each query the store
and each populate the cache. Entries are never invalidated by repository
updates or deletes; readers can see stale data until the TTL expires.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Coroutine
from typing import Any

from doccache.core.constants import NEG_CACHE_VALUE
from doccache.domain.entities.base import Entity
from doccache.domain.exceptions import CacheException, EntityNotFoundException
from doccache.infrastructure.cache.cache_protocol import CacheProtocol
from doccache.infrastructure.cache.keys import entity_cache_key, neg_cache_key
from doccache.infrastructure.repositories.entity_repo import EntityRepository

logger = logging.getLogger(__name__)


class LookupCache[EntityT: Entity]:
    """Cache-aside reads for one entity type."""

    def __init__(
        self, repository: EntityRepository[EntityT], cache: CacheProtocol
    ) -> None:
        self.repository = repository
        self.cache = cache
        self.config = repository.config
        self._pending: set[asyncio.Task[None]] = set()

    @property
    def entity_type(self) -> type[EntityT]:
        return self.repository.entity_type

    @property
    def pending_population(self) -> int:
        """Number of background population tasks still running."""
        return len(self._pending)

    async def get(
        self, key: str, value: str, use_negative_cache: bool = False
    ) -> EntityT | None:
        """Return the entity with key == value, or None if none exists.

        Args:
            key: Lookup field name (``id`` reads by document ID).
            value: Lookup value.
            use_negative_cache: Check and fill the negative cache for misses.

        Raises:
            CacheException: Cache unreachable or cached payload unreadable.
            StoreException: Store failure on a cache miss.
        """
        cache_key = entity_cache_key(self.config, key, value)
        neg_key = neg_cache_key(self.config, key, value)

        if use_negative_cache and await self.cache.get(neg_key):
            logger.debug("Negative cache HIT: %s", neg_key)
            return None

        cached = await self.cache.get(cache_key)
        if cached:
            return self.entity_type.from_cache(cached)

        entity = await self.repository.find_one(key, value)
        if entity is None:
            if use_negative_cache:
                self._spawn(self._fill_neg_cache(neg_key))
            return None

        # Snapshot so caller mutations after return cannot leak into the cache.
        self._spawn(self._fill_cache(cache_key, entity.model_copy(deep=True)))
        return entity

    async def require(
        self, key: str, value: str, use_negative_cache: bool = False
    ) -> EntityT:
        """Like get(), but raise EntityNotFoundException instead of returning None."""
        entity = await self.get(key, value, use_negative_cache)
        if entity is None:
            raise EntityNotFoundException(self.repository.entity_name, key, value)
        return entity

    async def refresh(self, key: str, value: str) -> EntityT | None:
        """Read key == value from the store and write the cache entry before returning.

        A found entity also clears any negative entry for the lookup, so
        negative-cached reads see it at once. Unlike background population,
        cache errors propagate. A missing entity writes nothing and returns None.
        """
        entity = await self.repository.find_one(key, value)
        if entity is None:
            return None
        cache_key = entity_cache_key(self.config, key, value)
        await self.cache.set(cache_key, entity.to_cache(), self.config.cache_ttl)
        await self.cache.delete(neg_cache_key(self.config, key, value))
        return entity

    async def drain(self) -> None:
        """Wait for all background population started so far (shutdown, tests)."""
        while self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)

    def _spawn(self, coro: Coroutine[Any, Any, None]) -> None:
        task = asyncio.create_task(coro)
        self._pending.add(task)
        task.add_done_callback(self._on_population_done)

    def _on_population_done(self, task: asyncio.Task[None]) -> None:
        self._pending.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(
                "Unexpected error populating cache for %s",
                self.repository.entity_name,
                exc_info=error,
                extra={"entity_type": self.repository.entity_name},
            )

    async def _fill_cache(self, cache_key: str, entity: EntityT) -> None:
        name = self.repository.entity_name
        try:
            payload = entity.to_cache()
        except (TypeError, ValueError) as e:
            logger.warning(
                "Error serializing cache for %s: %s",
                name,
                e,
                extra={"entity_type": name, "cache_key": cache_key},
            )
            return
        try:
            await self.cache.set(cache_key, payload, self.config.cache_ttl)
        except CacheException as e:
            logger.warning(
                "Error filling cache for %s: %s",
                name,
                e.message,
                extra={"entity_type": name, "cache_key": cache_key},
            )

    async def _fill_neg_cache(self, neg_key: str) -> None:
        name = self.repository.entity_name
        try:
            await self.cache.set(neg_key, NEG_CACHE_VALUE, self.config.neg_cache_ttl)
        except CacheException as e:
            logger.warning(
                "Error filling neg cache for %s: %s",
                name,
                e.message,
                extra={"entity_type": name, "cache_key": neg_key},
            )
