"""Entity contract shared by every persisted document type.

Identity and timestamps are owned by the repository: callers build an
entity with its business fields, the repository assigns id, created_at and
updated_at on create and bumps updated_at on update.

Relationships follow two shapes:

- belongs-to: plain ID fields (``owner_id: str | None``, ``member_ids: list[str]``)
  that are stored with the document.
- embeddable views (has-one / has-many): fields declared with ``embedded()``.
  They are filled only by read-side aggregation and are never written to the
  store. They do travel inside the cache payload.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from doccache.core.constants import ID_FIELD
from doccache.domain.exceptions import CacheException, ValidationException
from doccache.shared.utils.datetime import ensure_utc

_EMBEDDED_MARKER = "doccache_embedded"


def embedded(*, many: bool = False) -> Any:
    """Declare an embeddable projection field (never persisted with the owner).

    Args:
        many: True for has-many views (defaults to an empty list), False for
            has-one views (defaults to None).
    """
    extra = {_EMBEDDED_MARKER: True}
    if many:
        return Field(default_factory=list, json_schema_extra=extra)
    return Field(default=None, json_schema_extra=extra)


class Entity(BaseModel):
    """Base for persisted documents: identity, timestamps and validation."""

    model_config = ConfigDict(extra="ignore")

    id: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    @field_validator("created_at", "updated_at")
    @classmethod
    def _normalize_timestamp(cls, value: datetime | None) -> datetime | None:
        return ensure_utc(value)

    @classmethod
    def entity_name(cls) -> str:
        """Logical entity type name used in logs and errors."""
        return cls.__name__

    @classmethod
    def embedded_fields(cls) -> frozenset[str]:
        """Names of fields declared with embedded()."""
        return frozenset(
            name
            for name, info in cls.model_fields.items()
            if isinstance(info.json_schema_extra, dict)
            and info.json_schema_extra.get(_EMBEDDED_MARKER)
        )

    def apply_defaults(self) -> None:
        """Set entity-specific defaults. Called by the repository on create."""

    def check_rules(self) -> None:
        """Entity-specific rules beyond field constraints.

        Raise ValidationException on failure.
        """

    def validate_fields(self) -> None:
        """Validate current in-memory state.

        Re-runs field constraints (assignments after construction are not
        validated by pydantic), requires identity and timestamps, checks
        updated_at >= created_at, then runs check_rules().

        Raises:
            ValidationException: On the first failing field.
        """
        name = self.entity_name()
        try:
            type(self).model_validate(self.model_dump())
        except PydanticValidationError as exc:
            error = exc.errors()[0]
            field = ".".join(str(part) for part in error["loc"]) or None
            raise ValidationException(
                f"{name} field {field!r} is invalid: {error['msg']}", field=field
            ) from exc
        for required in (ID_FIELD, "created_at", "updated_at"):
            if not getattr(self, required):
                raise ValidationException(
                    f"{name} {required} is required", field=required
                )
        if self.updated_at < self.created_at:
            raise ValidationException(
                f"{name} updated_at is earlier than created_at", field="updated_at"
            )
        self.check_rules()

    def to_document(self) -> dict[str, Any]:
        """Store representation: no id (it is the document ID), no embeddables."""
        return self.model_dump(exclude={ID_FIELD, *self.embedded_fields()})

    @classmethod
    def from_document(cls, document_id: str, data: dict[str, Any]) -> Self:
        """Build an entity from a stored document and its ID."""
        return cls.model_validate({**data, ID_FIELD: document_id})

    def to_cache(self) -> str:
        """JSON payload for the lookup cache."""
        return self.model_dump_json()

    @classmethod
    def from_cache(cls, payload: str | bytes) -> Self:
        """Parse a cache payload.

        Raises:
            CacheException: If the payload is not a valid serialized entity.
        """
        try:
            return cls.model_validate_json(payload)
        except PydanticValidationError as exc:
            raise CacheException(
                f"Malformed cache payload for {cls.entity_name()}",
                details={"errors": exc.error_count()},
            ) from exc
