"""Runtime lifespan: startup and shutdown of the named store and cache clients.

Single place for wiring; no business logic here.
"""

from __future__ import annotations

import logging
import weakref
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator

from doccache.core.config import EntityStoreConfig, Settings, get_settings
from doccache.domain.entities.base import Entity
from doccache.infrastructure.cache.lookup_cache import LookupCache
from doccache.infrastructure.cache.redis_cache import (
    RedisCacheClient,
    close_cache_clients,
    get_cache_client,
    register_cache_client,
)
from doccache.infrastructure.firebase.client import (
    close_firestore,
    get_firestore_client,
    init_firestore,
)
from doccache.infrastructure.firebase.document_store import FirestoreDocumentStore
from doccache.infrastructure.repositories.entity_repo import EntityRepository
from doccache.shared.logging import setup_logging

logger = logging.getLogger(__name__)

_lookup_caches: weakref.WeakSet[LookupCache[Any]] = weakref.WeakSet()


@asynccontextmanager
async def create_lifespan(settings: Settings | None = None) -> AsyncIterator[None]:
    """Run startup then yield; on exit run shutdown.

    Startup order: logging, Firestore client, Redis cache client (all under
    settings.store_client_name). Shutdown drains background population of
    every lookup cache built by build_entity_access, closes the cache clients,
    then the Firestore HTTP pools.
    """
    settings = settings or get_settings()
    setup_logging(settings)

    init_firestore(settings.store_client_name, settings)
    cache = RedisCacheClient(settings.store_client_name, settings=settings)
    await cache.connect()
    register_cache_client(cache)
    logger.info("doccache started (client %s)", settings.store_client_name)

    try:
        yield
    finally:
        for lookup in list(_lookup_caches):
            await lookup.drain()
        await close_cache_clients()
        await close_firestore()
        logger.info("doccache stopped")


def build_entity_access[EntityT: Entity](
    entity_type: type[EntityT], config: EntityStoreConfig
) -> tuple[EntityRepository[EntityT], LookupCache[EntityT]]:
    """Return the repository and lookup cache for entity_type.

    Uses the clients registered under config.client_name; call inside
    create_lifespan (or after registering clients yourself).

    Raises:
        ValueError: If config.database is not the database of that client.
    """
    client = get_firestore_client(config.client_name)
    if config.database != client.database:
        raise ValueError(
            f"{entity_type.__name__} config names database {config.database!r} "
            f"but client {config.client_name!r} uses {client.database!r}"
        )
    repository = EntityRepository(
        entity_type, FirestoreDocumentStore(client, config.collection), config
    )
    lookup = LookupCache(repository, get_cache_client(config.client_name))
    _lookup_caches.add(lookup)
    return repository, lookup
