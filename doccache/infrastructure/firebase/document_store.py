"""Firestore-backed document store (implements IDocumentStore).

Update patches use update-operator documents and are applied as-is; the
store never wraps bare fields in an implicit ``$set``. Supported operators
and their Firestore counterparts:

- ``$set``: field values in the update mask (dotted paths become nested maps)
- ``$unset``: field paths in the mask with no value, which deletes them
- ``$inc``: ``increment`` field transform
- ``$addToSet``: ``appendMissingElements`` (accepts ``{"$each": [...]}``)
- ``$pull``: ``removeAllFromArray`` (accepts ``{"$in": [...]}``)

Every update is a single commit with an ``exists`` precondition, so updating
a missing document fails instead of creating it.
"""

from __future__ import annotations

import logging
from contextlib import aclosing
from typing import Any

import httpx

from doccache.core.constants import ID_FIELD
from doccache.domain.exceptions import (
    DocumentExistsError,
    DocumentNotFoundError,
    StoreException,
)
from doccache.infrastructure.firebase._rest_client import (
    AlreadyExistsError,
    FirestoreRESTClient,
)
from doccache.infrastructure.firebase._rest_encoding import _encode_value, encode_fields

logger = logging.getLogger(__name__)

UPDATE_OPERATORS = frozenset({"$set", "$unset", "$inc", "$addToSet", "$pull"})


def _assign_path(target: dict[str, Any], path: str, value: Any) -> None:
    """Set value at a dotted path inside target, creating nested maps."""
    *parents, leaf = path.split(".")
    for part in parents:
        target = target.setdefault(part, {})
    target[leaf] = value


def _operand_values(value: Any, modifier: str) -> list[Any]:
    """Unwrap {modifier: [...]} to its list; a bare value is a single element."""
    if isinstance(value, dict):
        if set(value) != {modifier}:
            raise ValueError(f"Expected {{{modifier!r}: [...]}}, got {value!r}")
        return list(value[modifier])
    return [value]


def _operator_mapping(patch: dict[str, Any], operator: str) -> dict[str, Any]:
    operand = patch.get(operator, {})
    if not isinstance(operand, dict):
        raise ValueError(f"{operator} expects a mapping of field paths")
    return operand


def build_update_write(document_name: str, patch: dict[str, Any]) -> dict[str, Any]:
    """Translate an update-operator document into a Firestore commit write.

    Raises:
        ValueError: If patch is empty, has non-operator keys, or touches a
            field path more than once.
    """
    if not patch:
        raise ValueError("Update document is empty")
    unknown = sorted(k for k in patch if k not in UPDATE_OPERATORS)
    if unknown:
        raise ValueError(
            f"Unsupported update operator(s) {unknown}; "
            f"frame updates with one of {sorted(UPDATE_OPERATORS)}"
        )

    fields: dict[str, Any] = {}
    mask: list[str] = []
    transforms: list[dict[str, Any]] = []

    for path, value in _operator_mapping(patch, "$set").items():
        _assign_path(fields, path, value)
        mask.append(path)

    unset = patch.get("$unset", ())
    mask.extend(unset.keys() if isinstance(unset, dict) else unset)

    for path, amount in _operator_mapping(patch, "$inc").items():
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise ValueError(f"$inc amount for {path!r} must be a number")
        transforms.append({"fieldPath": path, "increment": _encode_value(amount)})

    for path, value in _operator_mapping(patch, "$addToSet").items():
        transforms.append(
            {
                "fieldPath": path,
                "appendMissingElements": {
                    "values": [_encode_value(v) for v in _operand_values(value, "$each")]
                },
            }
        )

    for path, value in _operator_mapping(patch, "$pull").items():
        transforms.append(
            {
                "fieldPath": path,
                "removeAllFromArray": {
                    "values": [_encode_value(v) for v in _operand_values(value, "$in")]
                },
            }
        )

    touched = mask + [t["fieldPath"] for t in transforms]
    duplicates = sorted({p for p in touched if touched.count(p) > 1})
    if duplicates:
        raise ValueError(f"Field paths updated more than once: {duplicates}")

    write: dict[str, Any] = {
        "update": {"name": document_name, "fields": encode_fields(fields)},
        "updateMask": {"fieldPaths": mask},
        "currentDocument": {"exists": True},
    }
    if transforms:
        write["updateTransforms"] = transforms
    return write


class FirestoreDocumentStore:
    """Document store bound to one Firestore collection."""

    def __init__(self, client: FirestoreRESTClient, collection: str) -> None:
        self._client = client
        self._coll = client.collection(collection)

    @property
    def collection(self) -> str:
        return self._coll.id

    def _store_error(self, operation: str, error: httpx.HTTPError) -> StoreException:
        details: dict[str, Any] = {"collection": self.collection, "operation": operation}
        if isinstance(error, httpx.HTTPStatusError):
            details["status_code"] = error.response.status_code
        return StoreException(
            f"Firestore {operation} failed on {self.collection}: {error}",
            details=details,
        )

    async def insert(self, document_id: str, data: dict[str, Any]) -> None:
        """Create the document; DocumentExistsError if the ID is taken."""
        try:
            await self._coll.create(document_id, data)
        except AlreadyExistsError:
            raise DocumentExistsError(self.collection, document_id) from None
        except httpx.HTTPError as e:
            raise self._store_error("insert", e) from e
        logger.debug("Inserted %s/%s", self.collection, document_id)

    async def find_one(
        self, field: str, value: Any
    ) -> tuple[str, dict[str, Any]] | None:
        """Return (document_id, data) for the first document with field == value.

        The ID field is a direct document read; any other field is a
        server-side equality query limited to one result.
        """
        try:
            if field == ID_FIELD:
                if not isinstance(value, str) or not value or "/" in value:
                    return None
                snapshot = await self._coll.document(value).get()
                return (snapshot.id, snapshot.to_dict()) if snapshot else None
            query = self._coll.where(field, value).limit(1)
            async with aclosing(query.stream()) as snapshots:
                async for snapshot in snapshots:
                    return snapshot.id, snapshot.to_dict()
            return None
        except httpx.HTTPError as e:
            raise self._store_error("find_one", e) from e

    async def update_by_id(self, document_id: str, patch: dict[str, Any]) -> None:
        """Apply an update-operator document to one document.

        Raises:
            ValueError: If patch is not a valid operator document.
            DocumentNotFoundError: If the document does not exist.
            StoreException: On any other backend failure.
        """
        doc_ref = self._coll.document(document_id)
        write = build_update_write(self._client.document_name(doc_ref.path), patch)
        try:
            found = await self._client.commit([write])
        except httpx.HTTPError as e:
            raise self._store_error("update", e) from e
        if not found:
            raise DocumentNotFoundError(self.collection, document_id)
        logger.debug("Updated %s/%s", self.collection, document_id)

    async def delete_by_id(self, document_id: str) -> None:
        """Delete one document; DocumentNotFoundError if it does not exist."""
        try:
            found = await self._coll.document(document_id).delete(must_exist=True)
        except httpx.HTTPError as e:
            raise self._store_error("delete", e) from e
        if not found:
            raise DocumentNotFoundError(self.collection, document_id)
        logger.debug("Deleted %s/%s", self.collection, document_id)
