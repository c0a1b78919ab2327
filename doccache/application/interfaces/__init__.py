"""Application interfaces (ports).

No runtime imports from doccache.infrastructure.
"""

from doccache.application.interfaces.repositories import IDocumentStore

__all__ = [
    "IDocumentStore",
]
