"""Redis-backed cache client for the lookup cache.

Stores raw string payloads (serialization belongs to the entity) with a TTL.
Unlike a best-effort cache, failures are not hidden: a read against an
unreachable Redis raises CacheException so callers know the cache is down
instead of silently hitting the store on every call.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import Any

import redis.asyncio as redis

from doccache.core.config import Settings, get_settings
from doccache.core.constants import DEFAULT_CLIENT_NAME
from doccache.domain.exceptions import CacheException, CacheUnavailableError

logger = logging.getLogger(__name__)

_cache_clients: dict[str, RedisCacheClient] = {}


class RedisCacheClient:
    """Async Redis cache client (implements CacheProtocol).

    Call connect() at startup and disconnect() at shutdown. An owned client
    that is not connected (failed startup, dropped connection) connects again
    on the next command until disconnect() is called. An injected client is
    used as-is and never reconnected or rebuilt.
    """

    def __init__(
        self,
        name: str = DEFAULT_CLIENT_NAME,
        redis_client: redis.Redis | None = None,
        settings: Settings | None = None,
    ) -> None:
        """Initialize cache client.

        Args:
            name: Client name (store scope) used for the registry and errors.
            redis_client: Optional Redis client for testing or DI.
            settings: Optional settings; defaults to get_settings() on connect.
        """
        self.name = name
        self.redis = redis_client
        self._settings = settings
        self._owns_client = redis_client is None
        self._connected = redis_client is not None
        self._closed = False

    async def connect(self) -> None:
        """Establish Redis connection. Logs and stays unavailable on failure."""
        self._closed = False
        if self.redis is not None:
            return
        settings = self._settings or get_settings()
        client = redis.Redis(
            host=settings.redis_host,
            port=settings.redis_port,
            db=settings.redis_db,
            password=settings.redis_password.get_secret_value()
            if settings.redis_password
            else None,
            decode_responses=True,
            socket_connect_timeout=settings.redis_socket_timeout_seconds,
            socket_timeout=settings.redis_socket_timeout_seconds,
            socket_keepalive=True,
        )
        try:
            await client.ping()
        except (redis.ConnectionError, redis.TimeoutError) as e:
            logger.warning("Redis connection failed for %s: %s", self.name, e)
            await client.aclose()
            self._connected = False
            return
        self.redis = client
        self._connected = True
        logger.info(
            "Redis cache %s connected: %s:%s",
            self.name,
            settings.redis_host,
            settings.redis_port,
        )

    async def disconnect(self) -> None:
        """Close Redis connection. Call on shutdown."""
        self._closed = True
        if self.redis is not None:
            if self._owns_client:
                await self.redis.aclose()
            self.redis = None
            self._connected = False
            logger.info("Redis cache %s disconnected", self.name)

    async def _reconnect(self) -> bool:
        """Drop and rebuild an owned connection. Returns True if reconnected."""
        if not self._owns_client or self.redis is None:
            return False
        try:
            await self.redis.aclose()
        except redis.RedisError:
            logger.debug("Ignoring error closing stale Redis connection", exc_info=True)
        self.redis = None
        self._connected = False
        await self.connect()
        return self._connected

    def is_available(self) -> bool:
        """Return True if Redis is connected and usable."""
        return self._connected and self.redis is not None

    async def _execute(
        self,
        operation: str,
        key: str,
        call: Callable[[redis.Redis], Awaitable[Any]],
    ) -> Any:
        """Run call against Redis, retrying once after a reconnect.

        Raises:
            CacheUnavailableError: If the client is not connected and cannot connect.
            CacheException: On any Redis error.
        """
        if not self.is_available() and self._owns_client and not self._closed:
            await self.connect()
        if not self.is_available() or self.redis is None:
            raise CacheUnavailableError(self.name)
        try:
            return await call(self.redis)
        except (redis.ConnectionError, redis.TimeoutError) as e:
            if not await self._reconnect() or self.redis is None:
                raise CacheException(
                    f"Cache {operation} failed for key {key}: {e}",
                    details={"key": key, "operation": operation},
                ) from e
            try:
                return await call(self.redis)
            except redis.RedisError as retry_error:
                raise CacheException(
                    f"Cache {operation} failed for key {key} after reconnect",
                    details={"key": key, "operation": operation},
                ) from retry_error
        except redis.RedisError as e:
            raise CacheException(
                f"Cache {operation} failed for key {key}: {e}",
                details={"key": key, "operation": operation},
            ) from e

    async def get(self, key: str) -> str | None:
        """Return the cached payload, or None if missing or empty.

        Args:
            key: Cache key (use doccache.infrastructure.cache.keys builders).
        """
        value = await self._execute("get", key, lambda client: client.get(key))
        if value:
            logger.debug("Cache HIT: %s", key)
            return value
        logger.debug("Cache MISS: %s", key)
        return None

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store value with TTL in seconds.

        Args:
            key: Cache key.
            value: Serialized payload.
            ttl: Time-to-live in seconds.
        """
        await self._execute("set", key, lambda client: client.setex(key, ttl, value))
        logger.debug("Cache SET: %s (TTL: %ss)", key, ttl)

    async def delete(self, key: str) -> None:
        """Remove key from cache. A missing key is not an error."""
        await self._execute("delete", key, lambda client: client.delete(key))
        logger.debug("Cache DELETE: %s", key)


def register_cache_client(client: RedisCacheClient) -> None:
    """Make client retrievable by name via get_cache_client."""
    _cache_clients[client.name] = client


def get_cache_client(name: str = DEFAULT_CLIENT_NAME) -> RedisCacheClient:
    """Return the registered cache client for name.

    Raises:
        CacheUnavailableError: If no client is registered under name.
    """
    client = _cache_clients.get(name)
    if client is None:
        raise CacheUnavailableError(name)
    return client


async def close_cache_clients() -> None:
    """Disconnect and unregister every cache client. Call from shutdown."""
    for client in list(_cache_clients.values()):
        await client.disconnect()
    _cache_clients.clear()
