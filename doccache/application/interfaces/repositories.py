"""Document store interface (port) for the repository layer.

Infrastructure implementations fulfill this protocol; the repository and
tests depend only on it.
"""

from __future__ import annotations

from typing import Any, Protocol


class IDocumentStore(Protocol):
    """Collection-scoped document store (one instance per entity type).

    Documents are plain dicts keyed by a string document ID. Failures raise
    StoreException (or a subclass); "not found" on reads is None.
    """

    @property
    def collection(self) -> str:
        """Collection name this store is bound to."""

    async def insert(self, document_id: str, data: dict[str, Any]) -> None:
        """Create a document; raise DocumentExistsError if the ID is taken."""

    async def find_one(
        self, field: str, value: Any
    ) -> tuple[str, dict[str, Any]] | None:
        """Return (document_id, data) of one document with field == value, or None."""

    async def update_by_id(self, document_id: str, patch: dict[str, Any]) -> None:
        """Apply an update-operator document ($set, $unset, ...) as-is.

        Raise DocumentNotFoundError if the document does not exist.
        """

    async def delete_by_id(self, document_id: str) -> None:
        """Delete a document; raise DocumentNotFoundError if it does not exist."""
