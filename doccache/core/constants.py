"""Core constants: cache key structure, sentinel values and default TTLs.

Single source of truth for cache key layout. Used by the cache key
builders and the lookup cache.
"""

# Delimiter for composite keys
CACHE_KEY_SEP = ":"

# Negative-cache entries are the positive key prefixed with this marker
NEG_CACHE_PREFIX = "neg"
NEG_CACHE_VALUE = "neg"

# Seconds
DEFAULT_CACHE_TTL = 120
DEFAULT_NEG_CACHE_TTL = 60

DEFAULT_CLIENT_NAME = "main"
DEFAULT_DATABASE = "(default)"

# Entity identifier field; maps to the Firestore document ID, not a stored field
ID_FIELD = "id"
