"""Application configuration (settings and environment).

Single source of truth for process-wide configuration. Uses pydantic-settings
with .env support. Per-entity storage settings (scope, collection, TTLs) are
carried by EntityStoreConfig, built once per entity type at wiring time.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache

from pydantic import SecretStr, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from doccache.core.constants import (
    DEFAULT_CACHE_TTL,
    DEFAULT_CLIENT_NAME,
    DEFAULT_DATABASE,
    DEFAULT_NEG_CACHE_TTL,
    NEG_CACHE_PREFIX,
)


class Settings(BaseSettings):
    """Settings loaded from environment and .env.

    Firestore needs either service account credentials (key JSON or file
    path) or FIRESTORE_EMULATOR_HOST. Everything else has a default.
    """

    # App
    app_name: str = "doccache"
    debug: bool = False

    # Firestore: use key (env) or path (file); emulator host skips auth entirely.
    firebase_service_account_key: SecretStr | None = None
    firebase_service_account_path: str | None = None
    firestore_project_id: str | None = None
    firestore_database: str = DEFAULT_DATABASE
    firestore_emulator_host: str | None = None
    firestore_timeout_seconds: float = 30.0

    # Redis
    redis_host: str = "localhost"
    redis_port: int = 6379
    redis_db: int = 0
    redis_password: SecretStr | None = None
    redis_socket_timeout_seconds: float = 5.0

    # Lookup cache
    store_client_name: str = DEFAULT_CLIENT_NAME
    cache_ttl_seconds: int = DEFAULT_CACHE_TTL
    neg_cache_ttl_seconds: int = DEFAULT_NEG_CACHE_TTL

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        case_sensitive=False,
    )

    @model_validator(mode="after")
    def validate_store_and_ttls(self) -> "Settings":
        """Validate Firestore access and cache TTLs.

        - Firestore: FIRESTORE_EMULATOR_HOST, FIREBASE_SERVICE_ACCOUNT_KEY or
          FIREBASE_SERVICE_ACCOUNT_PATH required.
        - TTLs: both must be positive (Redis SETEX rejects 0).
        """
        has_key = (
            self.firebase_service_account_key
            and self.firebase_service_account_key.get_secret_value()
        )
        if (
            not self.firestore_emulator_host
            and not has_key
            and not self.firebase_service_account_path
        ):
            raise ValueError(
                "Set FIREBASE_SERVICE_ACCOUNT_KEY (full JSON string), "
                "FIREBASE_SERVICE_ACCOUNT_PATH (path to JSON file) "
                "or FIRESTORE_EMULATOR_HOST (host:port of a local emulator)."
            )
        if self.firestore_emulator_host and not self.firestore_project_id:
            raise ValueError(
                "FIRESTORE_PROJECT_ID is required when FIRESTORE_EMULATOR_HOST is set."
            )
        if self.cache_ttl_seconds <= 0:
            raise ValueError(
                f"cache_ttl_seconds must be positive, got {self.cache_ttl_seconds}"
            )
        if self.neg_cache_ttl_seconds <= 0:
            raise ValueError(
                f"neg_cache_ttl_seconds must be positive, got {self.neg_cache_ttl_seconds}"
            )
        return self


@dataclass(frozen=True)
class EntityStoreConfig:
    """Where one entity type lives and how long its lookups stay cached.

    client_name and database form the store scope; together with collection
    they namespace every cache key for the entity type.
    """

    collection: str
    client_name: str = DEFAULT_CLIENT_NAME
    database: str = DEFAULT_DATABASE
    cache_ttl: int = DEFAULT_CACHE_TTL
    neg_cache_ttl: int = DEFAULT_NEG_CACHE_TTL

    def __post_init__(self) -> None:
        if not self.collection:
            raise ValueError("collection is required")
        if self.client_name == NEG_CACHE_PREFIX:
            raise ValueError(
                f"client_name {NEG_CACHE_PREFIX!r} is reserved for negative cache keys"
            )
        if self.cache_ttl <= 0 or self.neg_cache_ttl <= 0:
            raise ValueError("cache_ttl and neg_cache_ttl must be positive")

    @classmethod
    def from_settings(
        cls, collection: str, settings: Settings | None = None
    ) -> EntityStoreConfig:
        """Build a config for collection using process settings for scope and TTLs."""
        settings = settings or get_settings()
        return cls(
            collection=collection,
            client_name=settings.store_client_name,
            database=settings.firestore_database,
            cache_ttl=settings.cache_ttl_seconds,
            neg_cache_ttl=settings.neg_cache_ttl_seconds,
        )


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings (single instance per process).

    Validation runs on first call, not at import time. In tests, call
    get_settings.cache_clear() before overriding env vars so the next
    get_settings() uses the new values.

    Returns:
        Loaded and validated Settings instance.
    """
    return Settings()
