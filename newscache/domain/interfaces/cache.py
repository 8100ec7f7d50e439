"""Interfaces for the data cache and its persistent store.

Defines the contract upstream services use for storing, retrieving and
invalidating cached payloads, and the contract of the durable tier behind it.
"""

import abc
from typing import Any, Optional, Type, Union
from datetime import timedelta

from ..models.cache import Expiration
from ..models.keys import CacheKey

TTLArg = Union[Expiration, timedelta, float, int, None]


class DataCache(abc.ABC):
    """Abstract Base Class for the two-tier data cache."""

    @abc.abstractmethod
    def save(self, key: CacheKey, value: Any, ttl: TTLArg = None) -> None:
        """Stores a value under the key.

        The value is visible to get() as soon as this returns; the disk
        write happens in the background.

        Args:
            key: The cache key.
            value: A JSON-serializable payload (dataclasses are allowed).
            ttl: Optional override of the key's default TTL.

        Raises:
            CacheSerializationError: If the value cannot be encoded.
        """
        pass

    @abc.abstractmethod
    def get(self, key: CacheKey, expected_type: Optional[Type] = None) -> Optional[Any]:
        """Retrieves a fresh value, or None on a miss.

        Checks memory first, then disk. May block on disk I/O when the
        memory tier misses; use get_async() from an event loop.

        Args:
            key: The cache key.
            expected_type: If given, a cached value of another type is a miss.
        """
        pass

    @abc.abstractmethod
    async def get_async(self, key: CacheKey, expected_type: Optional[Type] = None) -> Optional[Any]:
        """Same as get(), without blocking the running event loop."""
        pass

    @abc.abstractmethod
    def exists(self, key: CacheKey, validate: bool = True) -> bool:
        """Reports whether an entry is stored for the key.

        Args:
            key: The cache key.
            validate: When False, an expired entry that has not been removed
                yet still counts as present.
        """
        pass

    @abc.abstractmethod
    def remove(self, key: CacheKey) -> None:
        """Deletes the entry from memory now and from disk in the background."""
        pass

    @abc.abstractmethod
    def clear_all(self) -> None:
        """Empties memory now and wipes the disk tier in the background."""
        pass

    @abc.abstractmethod
    def clear_expired(self, wait: bool = False) -> Optional[int]:
        """Schedules deletion of expired files on disk. Memory is left alone.

        Args:
            wait: Block until the sweep has run.

        Returns:
            The number of files removed when waiting, otherwise None. Also
            None if the sweep could not run.
        """
        pass

    @abc.abstractmethod
    def flush(self, timeout: Optional[float] = None) -> bool:
        """Blocks until scheduled disk work has finished.

        Returns:
            False if the timeout elapsed first.
        """
        pass


class PersistentStore(abc.ABC):
    """Durable identifier -> serialized entry storage.

    Write methods must only be called from one thread at a time.
    """

    @abc.abstractmethod
    def put(self, identifier: str, payload: str) -> None:
        pass

    @abc.abstractmethod
    def get(self, identifier: str) -> Optional[str]:
        pass

    @abc.abstractmethod
    def contains(self, identifier: str) -> bool:
        pass

    @abc.abstractmethod
    def remove(self, identifier: str) -> None:
        pass

    @abc.abstractmethod
    def clear(self) -> None:
        pass

    @abc.abstractmethod
    def sweep_expired(self, now: Optional[float] = None) -> int:
        """Deletes expired entries and returns how many were removed."""
        pass

    @abc.abstractmethod
    def file_count(self) -> int:
        pass

    @abc.abstractmethod
    def size_bytes(self) -> int:
        pass
