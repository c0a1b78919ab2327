"""Thin Firestore REST API client (no firebase-admin).

Uses google-auth for service account tokens and Firestore REST v1.
All HTTP calls use httpx.AsyncClient so they do not block the event loop.
Against the Firestore emulator no credentials are needed.
"""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator
from typing import Any
from urllib.parse import quote

import httpx

from doccache.core.constants import DEFAULT_DATABASE
from doccache.infrastructure.firebase._rest_encoding import (
    _encode_value,
    decode_document,
    encode_document,
)

_FIRESTORE_SCOPE = "https://www.googleapis.com/auth/datastore"
_BASE = "https://firestore.googleapis.com/v1"


def _get_credentials(key_dict: dict):
    """Return google.oauth2.service_account.Credentials for Firestore."""
    from google.oauth2 import service_account

    return service_account.Credentials.from_service_account_info(
        key_dict, scopes=[_FIRESTORE_SCOPE]
    )


def _get_access_token(credentials) -> str:
    from google.auth.transport.requests import Request

    if not credentials.valid:
        credentials.refresh(Request())
    return credentials.token


class AlreadyExistsError(Exception):
    """Raised when createDocument returns 409 (document ID already exists)."""


async def _request_async(
    client: httpx.AsyncClient,
    url: str,
    method: str = "GET",
    body: dict | None = None,
    access_token: str | None = None,
) -> Any:
    """Perform async HTTP request to Firestore REST API.

    404 returns None; 409 raises AlreadyExistsError; other non-2xx statuses
    raise httpx.HTTPStatusError. Transport failures raise httpx.HTTPError.
    """
    headers = {"Content-Type": "application/json"}
    if access_token:
        headers["Authorization"] = f"Bearer {access_token}"
    if method == "GET":
        resp = await client.get(url, headers=headers)
    elif method == "POST":
        resp = await client.post(url, headers=headers, json=body)
    elif method == "DELETE":
        resp = await client.delete(url, headers=headers)
    else:
        raise ValueError(f"Unsupported method: {method!r}")
    if resp.status_code == 404:
        return None
    if resp.status_code == 409:
        raise AlreadyExistsError(url)
    if resp.status_code not in (200, 204):
        resp.raise_for_status()
    raw = resp.content
    return json.loads(raw.decode()) if raw else {}


class DocumentSnapshot:
    """Snapshot of a document (id + data)."""

    def __init__(self, id_: str, data: dict):
        self.id = id_
        self._data = data

    def to_dict(self) -> dict:
        return self._data


def _snapshot(document: dict) -> DocumentSnapshot:
    name = document.get("name", "")
    return DocumentSnapshot(name.split("/")[-1] if name else "", decode_document(document))


class DocumentReference:
    """Reference to a single document; matches firestore API style."""

    def __init__(self, client: FirestoreRESTClient, path: str):
        self._client = client
        self._path = path

    @property
    def id(self) -> str:
        return self._path.split("/")[-1]

    @property
    def path(self) -> str:
        return self._path

    async def get(self) -> DocumentSnapshot | None:
        """Fetch the document; returns None if not found."""
        out = await self._client.request(self._path)
        if out is None:
            return None
        return _snapshot(out)

    async def delete(self, *, must_exist: bool = False) -> bool:
        """Delete the document. Returns False if it was missing.

        Without must_exist the delete is idempotent (Firestore succeeds on a
        missing document); with it, a missing document returns False.
        """
        path = self._path
        if must_exist:
            path = f"{path}?currentDocument.exists=true"
        return await self._client.request(path, method="DELETE") is not None


class _Query:
    """Single equality filter query on one collection, run via runQuery."""

    def __init__(
        self,
        client: FirestoreRESTClient,
        collection_id: str,
        field: str,
        value: Any,
    ):
        self._client = client
        self._collection_id = collection_id
        self._field = field
        self._value = value
        self._limit: int = 0

    def limit(self, n: int) -> _Query:
        self._limit = n
        return self

    async def stream(self) -> AsyncIterator[DocumentSnapshot]:
        """Execute the query and yield document snapshots."""
        structured: dict[str, Any] = {
            "from": [{"collectionId": self._collection_id}],
            "where": {
                "fieldFilter": {
                    "field": {"fieldPath": self._field},
                    "op": "EQUAL",
                    "value": _encode_value(self._value),
                }
            },
        }
        if self._limit:
            structured["limit"] = self._limit

        resp = await self._client.request(
            ":runQuery", method="POST", body={"structuredQuery": structured}
        )
        items = resp if isinstance(resp, list) else ([resp] if resp else [])
        for item in items:
            if "document" not in item:
                continue
            yield _snapshot(item["document"])


class CollectionReference:
    """Reference to a collection; matches firestore API style."""

    def __init__(self, client: FirestoreRESTClient, collection_id: str):
        self._client = client
        self.id = collection_id

    def document(self, document_id: str) -> DocumentReference:
        return DocumentReference(self._client, f"{self.id}/{document_id}")

    async def create(self, document_id: str, data: dict[str, Any]) -> None:
        """Create a document with the given ID (AlreadyExistsError if it exists)."""
        await self._client.request(
            f"{self.id}?documentId={quote(document_id, safe='')}",
            method="POST",
            body=encode_document(data),
        )

    def where(self, field: str, value: Any) -> _Query:
        """Equality query on field. Use .limit(), then .stream()."""
        return _Query(self._client, self.id, field, value)


class FirestoreRESTClient:
    """Lightweight Firestore client using REST API (no firebase-admin)."""

    def __init__(
        self,
        project_id: str,
        credentials=None,
        *,
        database: str = DEFAULT_DATABASE,
        base_url: str = _BASE,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ) -> None:
        self._project_id = project_id
        self._credentials = credentials
        self.database = database
        self._base_url = base_url.rstrip("/")
        self._root = f"projects/{project_id}/databases/{database}/documents"
        self._http = (
            http_client if http_client is not None else httpx.AsyncClient(timeout=timeout)
        )
        self._owns_http = http_client is None

    async def aclose(self) -> None:
        """Close the HTTP client only if we created it (do not close injected client)."""
        if self._owns_http:
            await self._http.aclose()

    async def get_token(self) -> str | None:
        """Return a valid access token, or None when running without credentials.

        Refreshes in a thread so the blocking google-auth call does not stall the loop.
        """
        if self._credentials is None:
            return None
        return await asyncio.to_thread(_get_access_token, self._credentials)

    def document_name(self, path: str) -> str:
        """Full resource name for a collection-relative document path."""
        return f"{self._root}/{path}"

    async def request(
        self, path: str, method: str = "GET", body: dict | None = None
    ) -> Any:
        """Send a request relative to the database documents root.

        Paths starting with ':' are custom methods on the root (runQuery, commit).
        """
        separator = "" if path.startswith(":") else "/"
        url = f"{self._base_url}/{self._root}{separator}{path}"
        return await _request_async(
            self._http,
            url,
            method=method,
            body=body,
            access_token=await self.get_token(),
        )

    async def commit(self, writes: list[dict[str, Any]]) -> bool:
        """Apply writes atomically. Returns False if a precondition found no document."""
        return await self.request(":commit", method="POST", body={"writes": writes}) is not None

    def collection(self, collection_id: str) -> CollectionReference:
        return CollectionReference(self, collection_id)
