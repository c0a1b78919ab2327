"""Firestore client registry (REST-based, no firebase-admin).

Clients are registered by name (the store scope, "main" by default) so each
entity type can be pointed at its own project or database. Credentials come
from FIREBASE_SERVICE_ACCOUNT_KEY (JSON string) or FIREBASE_SERVICE_ACCOUNT_PATH
(file path); with FIRESTORE_EMULATOR_HOST set, no credentials are used.
"""

import json
import logging
from pathlib import Path

from doccache.core.config import Settings, get_settings
from doccache.core.constants import DEFAULT_CLIENT_NAME
from doccache.domain.exceptions import StoreException
from doccache.infrastructure.firebase._rest_client import (
    FirestoreRESTClient,
    _get_credentials,
)

logger = logging.getLogger(__name__)

_firestore_clients: dict[str, FirestoreRESTClient] = {}


def _load_key_dict(settings: Settings) -> dict | None:
    """Return service account dict from env key or file path."""
    key_json = (
        settings.firebase_service_account_key.get_secret_value()
        if settings.firebase_service_account_key
        else None
    )
    if key_json:
        try:
            return json.loads(key_json)
        except json.JSONDecodeError as e:
            raise ValueError("FIREBASE_SERVICE_ACCOUNT_KEY is not valid JSON") from e
    path = settings.firebase_service_account_path
    if path:
        resolved = Path(path).expanduser().resolve()
        if not resolved.is_file():
            logger.warning(
                "FIREBASE_SERVICE_ACCOUNT_PATH set but file not found: %s (resolved: %s)",
                path,
                resolved,
            )
            return None
        with open(resolved, encoding="utf-8") as f:
            return json.load(f)
    return None


def init_firestore(
    name: str = DEFAULT_CLIENT_NAME, settings: Settings | None = None
) -> FirestoreRESTClient:
    """Build and register the Firestore client for name. Idempotent per name.

    Raises:
        StoreException: If credentials are missing or incomplete.
    """
    existing = _firestore_clients.get(name)
    if existing is not None:
        return existing
    settings = settings or get_settings()

    if settings.firestore_emulator_host:
        client = FirestoreRESTClient(
            settings.firestore_project_id or "",
            database=settings.firestore_database,
            base_url=f"http://{settings.firestore_emulator_host}/v1",
            timeout=settings.firestore_timeout_seconds,
        )
        logger.info(
            "Firestore %s using emulator at %s", name, settings.firestore_emulator_host
        )
    else:
        key_dict = _load_key_dict(settings)
        if not key_dict:
            raise StoreException(f"No Firestore credentials for client {name!r}")
        project_id = settings.firestore_project_id or key_dict.get("project_id")
        if not project_id:
            raise StoreException("Firebase service account JSON missing 'project_id'")
        client = FirestoreRESTClient(
            project_id,
            _get_credentials(key_dict),
            database=settings.firestore_database,
            timeout=settings.firestore_timeout_seconds,
        )
        logger.info("Firestore %s initialized for project %s", name, project_id)

    _firestore_clients[name] = client
    return client


def register_firestore_client(name: str, client: FirestoreRESTClient) -> None:
    """Register a prebuilt client (tests, custom transports)."""
    _firestore_clients[name] = client


def get_firestore_client(name: str = DEFAULT_CLIENT_NAME) -> FirestoreRESTClient:
    """Return the registered Firestore client for name.

    Raises:
        StoreException: If no client is registered under name.
    """
    client = _firestore_clients.get(name)
    if client is None:
        raise StoreException(
            f"Firestore client not initialized: {name!r}",
            details={"client_name": name},
        )
    return client


async def close_firestore() -> None:
    """Close every registered client's HTTP pool. Call from shutdown."""
    for name, client in list(_firestore_clients.items()):
        await client.aclose()
        logger.info("Firestore client %s closed", name)
    _firestore_clients.clear()
