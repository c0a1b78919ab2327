"""Repositories over the document store."""

from doccache.infrastructure.repositories.entity_repo import EntityRepository

__all__ = [
    "EntityRepository",
]
