"""Error types raised inside the cache layer.

Only `CacheSerializationError` ever reaches callers of the cache; format
errors are converted into cache misses by the manager.
"""


class CacheError(Exception):
    """Base class for cache layer errors."""
    pass


class CacheFormatError(CacheError):
    """A stored document could not be decoded into a cache entry."""
    pass


class CacheSerializationError(CacheError):
    """A value passed to save() cannot be encoded as JSON."""
    pass
