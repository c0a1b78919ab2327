"""Generic entity repository: validated create/update/delete on a document store.

One instance per entity type. Mutations go straight to the store and never
touch the lookup cache: entries populated before an update or delete stay
readable until their TTL expires.
"""

from __future__ import annotations

import logging
from typing import Any

from pydantic import ValidationError as PydanticValidationError

from doccache.application.interfaces import IDocumentStore
from doccache.core.config import EntityStoreConfig
from doccache.domain.entities.base import Entity
from doccache.domain.exceptions import StoreException, ValidationException
from doccache.shared.utils import new_entity_id, utc_now

logger = logging.getLogger(__name__)


class EntityRepository[EntityT: Entity]:
    """Create, update, delete and single-document reads for one entity type."""

    def __init__(
        self,
        entity_type: type[EntityT],
        store: IDocumentStore,
        config: EntityStoreConfig,
    ) -> None:
        self.entity_type = entity_type
        self.store = store
        self.config = config

    @property
    def entity_name(self) -> str:
        return self.entity_type.entity_name()

    async def create(self, entity: EntityT) -> EntityT:
        """Assign identity and timestamps, apply defaults, validate, then insert.

        Raises:
            ValidationException: If validation fails (nothing is written).
            StoreException: If the insert fails.
        """
        entity.id = new_entity_id()
        now = utc_now()
        entity.created_at = now
        entity.updated_at = now

        entity.apply_defaults()
        entity.validate_fields()

        await self.store.insert(entity.id, entity.to_document())
        logger.debug("Created %s %s", self.entity_name, entity.id)
        return entity

    async def update(self, entity: EntityT, patch: dict[str, Any]) -> dict[str, Any]:
        """Bump updated_at, validate the in-memory entity and apply patch by ID.

        patch must be an update-operator document. It is not applied to the
        in-memory entity. The caller's dict is left untouched; the returned
        copy is what was sent, with updated_at merged into its ``$set``.

        Raises:
            ValidationException: If validation fails (nothing is written).
            StoreException: If the update fails.
        """
        entity.updated_at = utc_now()
        updates = dict(patch)
        set_fields = updates.get("$set", {})
        if not isinstance(set_fields, dict):
            raise ValueError("$set expects a mapping of field paths")
        updates["$set"] = {**set_fields, "updated_at": entity.updated_at}

        entity.validate_fields()

        await self.store.update_by_id(entity.id, updates)
        logger.debug("Updated %s %s", self.entity_name, entity.id)
        return updates

    async def delete(self, entity: EntityT) -> None:
        """Permanently remove the entity's document.

        Raises:
            ValidationException: If the entity has no ID.
            StoreException: If the delete fails.
        """
        if not entity.id:
            raise ValidationException(
                f"{self.entity_name} id is required to delete", field="id"
            )
        await self.store.delete_by_id(entity.id)
        logger.debug("Deleted %s %s", self.entity_name, entity.id)

    async def find_one(self, field: str, value: Any) -> EntityT | None:
        """Return the entity with field == value from the store, or None.

        Raises:
            StoreException: On backend failure or an unreadable stored document.
        """
        found = await self.store.find_one(field, value)
        if found is None:
            return None
        document_id, data = found
        try:
            return self.entity_type.from_document(document_id, data)
        except PydanticValidationError as e:
            raise StoreException(
                f"Stored {self.entity_name} {document_id} does not match its model",
                details={"collection": self.store.collection, "document_id": document_id},
            ) from e
