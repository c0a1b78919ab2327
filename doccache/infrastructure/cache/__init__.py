"""Cache: Redis client, key builders and the cache-aside lookup engine."""

from doccache.infrastructure.cache.cache_protocol import CacheProtocol
from doccache.infrastructure.cache.keys import entity_cache_key, neg_cache_key
from doccache.infrastructure.cache.lookup_cache import LookupCache
from doccache.infrastructure.cache.redis_cache import (
    RedisCacheClient,
    close_cache_clients,
    get_cache_client,
    register_cache_client,
)

__all__ = [
    "CacheProtocol",
    "LookupCache",
    "RedisCacheClient",
    "close_cache_clients",
    "entity_cache_key",
    "get_cache_client",
    "neg_cache_key",
    "register_cache_client",
]
