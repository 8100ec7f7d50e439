"""Read-through helper used by the fetch services.

Services ask for a key together with a loader that performs the network
request. The cached value is returned when fresh; otherwise the loader runs
and its result is saved. `force_refresh` skips the read but still saves.
"""

import logging
from typing import Awaitable, Callable, Optional, Type, TypeVar

from newscache.domain.errors import CacheSerializationError
from newscache.domain.interfaces.cache import DataCache, TTLArg
from newscache.domain.models.keys import CacheKey

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CachedFetcher:
    """Wraps loaders with a DataCache lookup."""

    def __init__(self, cache: DataCache):
        self.cache = cache

    def fetch(
        self,
        key: CacheKey,
        loader: Callable[[], T],
        force_refresh: bool = False,
        ttl: TTLArg = None,
        expected_type: Optional[Type] = None,
    ) -> T:
        """Returns the cached value for `key`, or loads and caches it.

        Exceptions raised by the loader propagate unchanged. A None result
        is returned but not cached.
        """
        if not force_refresh:
            cached = self.cache.get(key, expected_type)
            if cached is not None:
                return cached
        value = loader()
        self._save(key, value, ttl)
        return value

    async def afetch(
        self,
        key: CacheKey,
        loader: Callable[[], Awaitable[T]],
        force_refresh: bool = False,
        ttl: TTLArg = None,
        expected_type: Optional[Type] = None,
    ) -> T:
        """Async variant of fetch() for coroutine loaders."""
        if not force_refresh:
            cached = await self.cache.get_async(key, expected_type)
            if cached is not None:
                return cached
        value = await loader()
        self._save(key, value, ttl)
        return value

    def _save(self, key: CacheKey, value: Optional[T], ttl: TTLArg) -> None:
        if value is None:
            logger.debug(f"Loader returned nothing for key: {key}; not caching")
            return
        try:
            self.cache.save(key, value, ttl)
        except CacheSerializationError as e:
            # The fetched data is still returned; it just won't be cached.
            logger.error(f"Could not cache result for key {key}: {e}")
