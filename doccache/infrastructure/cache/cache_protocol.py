"""Cache protocol for the lookup cache (DIP)."""

from typing import Protocol


class CacheProtocol(Protocol):
    """String-keyed cache with per-entry expiry (e.g. Redis).

    Absence is signaled by None (or an empty string), never by an error.
    Connectivity failures and other backend errors raise CacheException.
    """

    async def get(self, key: str) -> str | None:
        """Return the cached payload or None."""
        ...

    async def set(self, key: str, value: str, ttl: int) -> None:
        """Store value with TTL in seconds."""
        ...

    async def delete(self, key: str) -> None:
        """Remove key from cache. Missing keys are not an error."""
        ...
