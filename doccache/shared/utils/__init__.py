"""Shared utilities: datetime and identifier generators."""

from doccache.shared.utils.datetime import ensure_utc, utc_now
from doccache.shared.utils.generators import new_entity_id

__all__ = [
    "ensure_utc",
    "new_entity_id",
    "utc_now",
]
