"""Exceptions for the persistence and lookup layer.

NotFound on the lookup path is a normal outcome (None), not an exception;
EntityNotFoundException exists for callers that prefer to raise.
"""

from typing import Any


class DocCacheException(Exception):
    """Base exception for all doccache errors.

    Attributes:
        message: Human-readable error description.
        error_code: Machine-readable error code.
        details: Additional error context (e.g. field, document_id).
    """

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ) -> None:
        """Initialize the exception.

        Args:
            message: Human-readable error description.
            error_code: Optional machine-readable code; defaults to class name.
            details: Optional dict of extra context.
        """
        self.message = message
        self.error_code = error_code or self.__class__.__name__
        self.details = details or {}
        super().__init__(self.message)


class ValidationException(DocCacheException):
    """Raised when an entity fails field validation. Storage is never touched."""

    def __init__(self, message: str, field: str | None = None) -> None:
        """Initialize with message and optional field name.

        Args:
            message: Description of the validation failure.
            field: Optional field that failed validation.
        """
        details = {"field": field} if field else {}
        super().__init__(message, "VALIDATION_ERROR", details)


class StoreException(DocCacheException):
    """Document store unreachable, write conflict or other backend failure."""

    def __init__(
        self,
        message: str,
        error_code: str = "STORE_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class DocumentExistsError(StoreException):
    """Insert of a document whose ID already exists."""

    def __init__(self, collection: str, document_id: str) -> None:
        super().__init__(
            f"Document already exists: {collection}/{document_id}",
            "DOCUMENT_EXISTS",
            {"collection": collection, "document_id": document_id},
        )


class DocumentNotFoundError(StoreException):
    """Update or delete by ID of a document that does not exist."""

    def __init__(self, collection: str, document_id: str) -> None:
        super().__init__(
            f"Document not found: {collection}/{document_id}",
            "DOCUMENT_NOT_FOUND",
            {"collection": collection, "document_id": document_id},
        )


class CacheException(DocCacheException):
    """Cache unreachable, or a cached payload could not be read."""

    def __init__(
        self,
        message: str,
        error_code: str = "CACHE_ERROR",
        details: dict[str, Any] | None = None,
    ) -> None:
        super().__init__(message, error_code, details)


class CacheUnavailableError(CacheException):
    """Cache client is not connected."""

    def __init__(self, client_name: str) -> None:
        super().__init__(
            f"Cache client not connected: {client_name}",
            "CACHE_UNAVAILABLE",
            {"client_name": client_name},
        )


class EntityNotFoundException(DocCacheException):
    """No entity matched a lookup."""

    def __init__(self, entity_type: str, key: str, value: str) -> None:
        super().__init__(
            f"{entity_type} not found: {key}={value}",
            "ENTITY_NOT_FOUND",
            {"entity_type": entity_type, "key": key, "value": value},
        )
