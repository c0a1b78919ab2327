"""Cache key builders. Single place for key format.

Positive key: ``{client}:{database}:{collection}:{field}:{value}``.
Negative key: the positive key prefixed with ``neg:``.

Every component except the trailing lookup value must not contain
CACHE_KEY_SEP; with the value always last, keys stay unambiguous across
entity types and store scopes.
"""

from doccache.core.config import EntityStoreConfig
from doccache.core.constants import CACHE_KEY_SEP, NEG_CACHE_PREFIX


def _validate_key_components(components: list[tuple[str, str]]) -> None:
    """Raise ValueError on the first component that is empty or contains the separator.

    Args:
        components: List of (value, name) pairs to validate.
    """
    for value, name in components:
        if not value:
            raise ValueError(f"Cache key component {name!r} must not be empty")
        if CACHE_KEY_SEP in value:
            raise ValueError(
                f"Cache key component {name!r} must not contain separator {CACHE_KEY_SEP!r}"
            )


def entity_cache_key(config: EntityStoreConfig, field: str, value: str) -> str:
    """Cache key for an entity looked up by field == value."""
    _validate_key_components(
        [
            (config.client_name, "client_name"),
            (config.database, "database"),
            (config.collection, "collection"),
            (field, "field"),
        ]
    )
    return CACHE_KEY_SEP.join(
        (config.client_name, config.database, config.collection, field, value)
    )


def neg_cache_key(config: EntityStoreConfig, field: str, value: str) -> str:
    """Negative-cache key marking that no entity matched field == value."""
    return f"{NEG_CACHE_PREFIX}{CACHE_KEY_SEP}{entity_cache_key(config, field, value)}"
