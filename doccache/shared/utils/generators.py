"""Entity identifier generation (CUID2)."""

from cuid2 import cuid_wrapper

_cuid_generator = cuid_wrapper()


def new_entity_id() -> str:
    """Return a fresh collision-resistant identifier for a new entity.

    CUID2 output is URL-safe and never contains '/', so it is usable
    directly as a Firestore document ID.
    """
    result = _cuid_generator()
    if not isinstance(result, str):
        raise TypeError(
            f"Expected str from cuid generator, got {type(result).__name__}"
        )
    return result
