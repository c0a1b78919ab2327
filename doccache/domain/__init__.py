"""Domain layer: entity contract, entity types and exceptions.

No dependencies on infrastructure.
"""

from doccache.domain.entities import Entity, Server, ServerMember, embedded
from doccache.domain.exceptions import (
    CacheException,
    CacheUnavailableError,
    DocCacheException,
    DocumentExistsError,
    DocumentNotFoundError,
    EntityNotFoundException,
    StoreException,
    ValidationException,
)

__all__ = [
    # Entities
    "Entity",
    "Server",
    "ServerMember",
    "embedded",
    # Exceptions
    "CacheException",
    "CacheUnavailableError",
    "DocCacheException",
    "DocumentExistsError",
    "DocumentNotFoundError",
    "EntityNotFoundException",
    "StoreException",
    "ValidationException",
]
