"""doccache: typed Firestore documents behind a Redis cache-aside lookup.

Typical wiring::

    async with create_lifespan():
        repo, lookup = build_entity_access(
            Server, EntityStoreConfig.from_settings(COLLECTION_SERVERS)
        )
        server = await repo.create(Server(discord_id="1234"))
        found = await lookup.get("discord_id", "1234", use_negative_cache=True)
"""

from doccache.core.config import EntityStoreConfig, Settings, get_settings
from doccache.core.lifespan import build_entity_access, create_lifespan
from doccache.domain.entities import (
    COLLECTION_SERVER_MEMBERS,
    COLLECTION_SERVERS,
    Entity,
    Server,
    ServerMember,
    embedded,
)
from doccache.domain.exceptions import (
    CacheException,
    DocCacheException,
    EntityNotFoundException,
    StoreException,
    ValidationException,
)
from doccache.infrastructure.cache import LookupCache, RedisCacheClient
from doccache.infrastructure.firebase import FirestoreDocumentStore
from doccache.infrastructure.repositories import EntityRepository

__all__ = [
    "COLLECTION_SERVERS",
    "COLLECTION_SERVER_MEMBERS",
    "CacheException",
    "DocCacheException",
    "Entity",
    "EntityNotFoundException",
    "EntityRepository",
    "EntityStoreConfig",
    "FirestoreDocumentStore",
    "LookupCache",
    "RedisCacheClient",
    "Server",
    "ServerMember",
    "Settings",
    "StoreException",
    "ValidationException",
    "build_entity_access",
    "create_lifespan",
    "embedded",
    "get_settings",
]
