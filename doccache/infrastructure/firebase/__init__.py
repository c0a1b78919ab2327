"""Firestore integration: REST client registry and the document store adapter."""

from doccache.infrastructure.firebase.client import (
    close_firestore,
    get_firestore_client,
    init_firestore,
    register_firestore_client,
)
from doccache.infrastructure.firebase.document_store import (
    UPDATE_OPERATORS,
    FirestoreDocumentStore,
)

__all__ = [
    "UPDATE_OPERATORS",
    "FirestoreDocumentStore",
    "close_firestore",
    "get_firestore_client",
    "init_firestore",
    "register_firestore_client",
]
