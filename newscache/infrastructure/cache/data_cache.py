"""Two-tier data cache: in-memory table in front of the JSON file store.

Reads check memory first and fall back to disk, promoting disk hits into
memory. Writes update memory synchronously and hand the disk write to the
DiskWorker (write-behind). Expired entries are discovered lazily on get().

The memory lock is never held across file I/O or while waiting for room in
the disk queue. Each memory update takes a ticket under the lock, and disk
jobs are enqueued in ticket order afterwards, so the disk job order matches
the order in which memory was updated.

Files whose removal (remove, clear_all, expiry) is still queued are
shadowed: the disk tier is not consulted for them until the worker has
deleted them, so a stale file is never promoted back into memory.
"""

import asyncio
import logging
import threading
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Type, Union

from newscache.domain.errors import CacheFormatError
from newscache.domain.interfaces.cache import DataCache, PersistentStore, TTLArg
from newscache.domain.models.cache import CacheEntry, Expiration
from newscache.domain.models.keys import CacheKey
from newscache.infrastructure.cache.disk_store import DEFAULT_CACHE_DIR, DiskStore
from newscache.infrastructure.cache.disk_worker import DEFAULT_QUEUE_SIZE, DiskWorker

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CacheStats:
    memory_entries: int
    disk_files: int
    disk_bytes: int
    directory: Optional[Path] = None


class DataCacheManager(DataCache):
    """Memory + disk cache keyed by CacheKey variants.

    Construct one per process and pass it to whatever needs caching.
    Values handed to save() are kept by reference in memory and must not
    be mutated afterwards.
    """

    def __init__(
        self,
        cache_dir: Union[str, Path, None] = None,
        store: Optional[PersistentStore] = None,
        worker: Optional[DiskWorker] = None,
        queue_size: int = DEFAULT_QUEUE_SIZE,
        ttl_overrides: Optional[Dict[str, Expiration]] = None,
        clock: Callable[[], float] = time.time,
    ):
        """Initializes the cache.

        Args:
            cache_dir: Directory for the disk tier (ignored when `store` is given).
            store: Persistent store to use instead of a DiskStore.
            worker: Disk worker to use instead of a private one.
            queue_size: Capacity of the private worker's queue.
            ttl_overrides: Per-namespace TTLs replacing the key defaults.
            clock: Time source in unix seconds.
        """
        self._store = store if store is not None else DiskStore(cache_dir or DEFAULT_CACHE_DIR)
        self._worker = worker if worker is not None else DiskWorker(queue_size=queue_size)
        self._ttl_overrides: Dict[str, Expiration] = dict(ttl_overrides or {})
        self._clock = clock

        self._lock = threading.Lock()
        self._memory: Dict[str, CacheEntry] = {}
        self._invalidations = 0  # guarded by _lock
        self._next_ticket = 0  # guarded by _lock
        # Disk jobs are submitted in ticket order under _turn; never taken with _lock held.
        self._turn = threading.Condition()
        self._serving = 0
        # Worker jobs only ever take _pending_lock. Lock order: _lock -> _pending_lock.
        self._pending_lock = threading.Lock()
        self._pending_removals: Dict[str, int] = {}
        self._pending_clears = 0

        logger.info(f"DataCacheManager initialized (store={type(self._store).__name__}, "
                    f"ttl_overrides={sorted(self._ttl_overrides)})")

    # --- TTL resolution ---

    def ttl_for(self, key: CacheKey, ttl: TTLArg = None) -> Expiration:
        """Per-call override, then configured namespace override, then the key default."""
        override = Expiration.coerce(ttl)
        if override is not None:
            return override
        return self._ttl_overrides.get(key.namespace, key.default_ttl)

    # --- DataCache Interface Implementation ---

    def save(self, key: CacheKey, value: Any, ttl: TTLArg = None) -> None:
        identifier = key.identifier
        entry = CacheEntry.create(value, self.ttl_for(key, ttl), now=self._clock())
        payload = entry.to_json()  # CacheSerializationError propagates before any state changes
        with self._lock:
            self._memory[identifier] = entry
            ticket = self._take_ticket()
        self._enqueue(ticket, self._store.put, identifier, payload)
        logger.debug(f"Saved key={identifier} (ttl={Expiration(entry.ttl)})")

    def get(self, key: CacheKey, expected_type: Optional[Type] = None) -> Optional[Any]:
        identifier = key.identifier
        now = self._clock()

        removal = None
        with self._lock:
            entry = self._memory.get(identifier)
            if entry is not None and entry.is_expired(now):
                del self._memory[identifier]
                removal = self._schedule_removal(identifier)
            shadowed = self._is_shadowed(identifier)
            epoch = self._invalidations
        if removal is not None:
            self._enqueue_removal(removal, identifier)
            logger.debug(f"Memory entry expired for key: {identifier}")
            return None
        if entry is not None:
            logger.debug(f"Memory cache hit for key: {identifier}")
            return self._checked_value(identifier, entry, expected_type)
        if shadowed:
            logger.debug(f"Cache miss for key: {identifier} (disk removal pending)")
            return None

        entry = self._load_from_disk(identifier)
        if entry is None:
            logger.debug(f"Cache miss for key: {identifier}")
            return None

        with self._lock:
            current = self._memory.get(identifier)
            if current is not None:
                # A save() landed while the file was being read; it is newer.
                entry = current
            elif self._invalidations != epoch:
                # A removal or clear raced with the read; the file may be stale.
                logger.debug(f"Cache miss for key: {identifier} (invalidated during disk read)")
                return None
            elif entry.is_expired(now):
                removal = self._schedule_removal(identifier)
            else:
                self._memory[identifier] = entry
                logger.debug(f"Disk cache hit for key: {identifier}, promoted to memory")
        if removal is not None:
            self._enqueue_removal(removal, identifier)
            logger.debug(f"Disk entry expired for key: {identifier}. Removing file.")
            return None
        return self._checked_value(identifier, entry, expected_type)

    async def get_async(self, key: CacheKey, expected_type: Optional[Type] = None) -> Optional[Any]:
        return await asyncio.to_thread(self.get, key, expected_type)

    def exists(self, key: CacheKey, validate: bool = True) -> bool:
        identifier = key.identifier
        with self._lock:
            entry = self._memory.get(identifier)
            shadowed = self._is_shadowed(identifier)
        if entry is not None:
            return not validate or not entry.is_expired(self._clock())
        if shadowed:
            return False
        if not validate:
            return self._store.contains(identifier)
        payload = self._store.get(identifier)
        if payload is None:
            return False
        try:
            return not CacheEntry.is_document_expired(payload, self._clock())
        except CacheFormatError:
            return False

    def remove(self, key: CacheKey) -> None:
        identifier = key.identifier
        with self._lock:
            self._memory.pop(identifier, None)
            ticket = self._schedule_removal(identifier)
        self._enqueue_removal(ticket, identifier)
        logger.debug(f"Removed key: {identifier}")

    def clear_all(self) -> None:
        with self._lock:
            self._memory.clear()
            self._invalidations += 1
            with self._pending_lock:
                self._pending_clears += 1
            ticket = self._take_ticket()
        if not self._enqueue(ticket, self._clear_disk):
            with self._pending_lock:
                self._pending_clears -= 1
        logger.info("Cleared memory cache; disk wipe scheduled.")

    def clear_expired(self, wait: bool = False) -> Optional[int]:
        result: List[int] = []
        done = threading.Event()

        def sweep() -> None:
            try:
                result.append(self._sweep_expired())
            finally:
                done.set()

        with self._lock:
            ticket = self._take_ticket()
        if not self._enqueue(ticket, sweep) or not wait:
            return None
        done.wait()
        return result[0] if result else None

    def flush(self, timeout: Optional[float] = None) -> bool:
        return self._worker.flush(timeout)

    # --- Lifecycle & introspection ---

    def close(self) -> None:
        """Drains pending disk work and stops the worker."""
        self._worker.shutdown(wait=True)

    def __enter__(self) -> "DataCacheManager":
        return self

    def __exit__(self, *exc_info: Any) -> None:
        self.close()

    def stats(self) -> CacheStats:
        with self._lock:
            memory_entries = len(self._memory)
        return CacheStats(
            memory_entries=memory_entries,
            disk_files=self._store.file_count(),
            disk_bytes=self._store.size_bytes(),
            directory=getattr(self._store, "directory", None),
        )

    def drop_memory(self) -> None:
        """Forgets the memory tier only, as a process restart would."""
        with self._lock:
            self._memory.clear()

    # --- Disk jobs (run on the worker thread) ---

    def _remove_from_disk(self, identifier: str) -> None:
        try:
            self._store.remove(identifier)
        finally:
            self._release_removal(identifier)

    def _clear_disk(self) -> None:
        try:
            self._store.clear()
        finally:
            with self._pending_lock:
                self._pending_clears -= 1

    def _sweep_expired(self) -> int:
        return self._store.sweep_expired(self._clock())

    # --- Internal helpers ---

    def _take_ticket(self) -> int:
        """Reserves the next disk job slot. Caller holds _lock and must _enqueue the ticket."""
        ticket = self._next_ticket
        self._next_ticket += 1
        return ticket

    def _enqueue(self, ticket: int, fn: Callable[..., Any], *args: Any) -> bool:
        """Submits a disk job once all earlier tickets are queued. Caller must not hold _lock."""
        with self._turn:
            while self._serving != ticket:
                self._turn.wait()
            try:
                return self._worker.submit(fn, *args)
            finally:
                self._serving += 1
                self._turn.notify_all()

    def _schedule_removal(self, identifier: str) -> int:
        """Marks a disk delete as pending and returns its ticket. Caller holds _lock."""
        self._invalidations += 1
        with self._pending_lock:
            self._pending_removals[identifier] = self._pending_removals.get(identifier, 0) + 1
        return self._take_ticket()

    def _enqueue_removal(self, ticket: int, identifier: str) -> None:
        if not self._enqueue(ticket, self._remove_from_disk, identifier):
            self._release_removal(identifier)

    def _release_removal(self, identifier: str) -> None:
        with self._pending_lock:
            remaining = self._pending_removals.get(identifier, 0) - 1
            if remaining > 0:
                self._pending_removals[identifier] = remaining
            else:
                self._pending_removals.pop(identifier, None)

    def _is_shadowed(self, identifier: str) -> bool:
        with self._pending_lock:
            return self._pending_clears > 0 or identifier in self._pending_removals

    def _load_from_disk(self, identifier: str) -> Optional[CacheEntry]:
        payload = self._store.get(identifier)
        if payload is None:
            return None
        try:
            return CacheEntry.from_json(payload)
        except CacheFormatError as e:
            # Corrupt files stay on disk until remove/clear/sweep
            logger.warning(f"Ignoring unreadable cache file for key {identifier}: {e}")
            return None

    @staticmethod
    def _checked_value(identifier: str, entry: CacheEntry, expected_type: Optional[Type]) -> Optional[Any]:
        if expected_type is not None and not isinstance(entry.value, expected_type):
            logger.warning(f"Cached value for key {identifier} is {type(entry.value).__name__}, "
                           f"expected {expected_type.__name__}; treating as miss")
            return None
        return entry.value
