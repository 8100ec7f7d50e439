"""Two-tier cache for downloaded image bytes, keyed by URL.

Simpler than the data cache: no TTL, a memory tier bounded both by entry
count and by total bytes, and a diskcache.Cache as the durable tier. Disk
writes run on a private DiskWorker so set() never waits on the disk.
"""

import logging
import threading
from collections import OrderedDict
from pathlib import Path
from typing import Optional, Union

import diskcache as dc

from newscache.infrastructure.cache.disk_worker import DiskWorker

logger = logging.getLogger(__name__)

DEFAULT_MEMORY_LIMIT = 50
DEFAULT_MEMORY_COST_LIMIT = 30 * 1024 * 1024
DEFAULT_IMAGE_CACHE_DIR = Path.home() / ".newscache" / "image_cache"


class ImageCache:
    """Memory (count and byte limited) + diskcache storage for image bytes."""

    def __init__(self,
                 directory: Union[str, Path] = DEFAULT_IMAGE_CACHE_DIR,
                 memory_limit: int = DEFAULT_MEMORY_LIMIT,
                 memory_cost_limit: int = DEFAULT_MEMORY_COST_LIMIT):
        if memory_limit <= 0:
            raise ValueError("Memory limit must be positive.")
        if memory_cost_limit <= 0:
            raise ValueError("Memory cost limit must be positive.")
        self.memory_limit = memory_limit
        self.memory_cost_limit = memory_cost_limit
        self._memory: "OrderedDict[str, bytes]" = OrderedDict()
        self._memory_bytes = 0
        self._lock = threading.Lock()
        try:
            self.disk_cache: Optional[dc.Cache] = dc.Cache(str(directory), timeout=1)
            logger.info(f"Initialized image disk cache at: {self.disk_cache.directory}")
        except Exception as e:
            logger.error(f"Failed to initialize image disk cache at {directory}: {e}", exc_info=True)
            self.disk_cache = None
        self._worker = DiskWorker(name="newscache-images")

    def get(self, url: str) -> Optional[bytes]:
        """Memory first, then disk; disk hits are promoted into memory."""
        with self._lock:
            data = self._memory.get(url)
            if data is not None:
                self._memory.move_to_end(url)
                return data
        if self.disk_cache is None:
            return None
        try:
            data = self.disk_cache.get(url)
        except Exception as e:
            logger.warning(f"Image disk cache read failed for {url}: {e}")
            return None
        if not isinstance(data, bytes):
            return None
        self._remember(url, data)
        return data

    def set(self, url: str, data: bytes) -> None:
        """Stores in memory now; the disk write is queued."""
        self._remember(url, data)
        if self.disk_cache is not None:
            self._worker.submit(self._write_to_disk, url, data)

    def flush(self, timeout: Optional[float] = None) -> bool:
        return self._worker.flush(timeout)

    def clear_memory(self) -> None:
        with self._lock:
            self._memory.clear()
            self._memory_bytes = 0

    def clear(self) -> None:
        """Empties both tiers. Returns once the disk tier has been wiped."""
        self.clear_memory()
        if self.disk_cache is not None:
            self._worker.submit(self._clear_disk)
            self._worker.flush()

    def close(self) -> None:
        self._worker.shutdown(wait=True)
        if self.disk_cache is not None:
            self.disk_cache.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._memory)

    @property
    def memory_bytes(self) -> int:
        with self._lock:
            return self._memory_bytes

    def _remember(self, url: str, data: bytes) -> None:
        with self._lock:
            previous = self._memory.pop(url, None)
            if previous is not None:
                self._memory_bytes -= len(previous)
            if len(data) > self.memory_cost_limit:
                logger.debug(f"Image too large for memory cache ({len(data)} bytes): {url}")
                return
            self._memory[url] = data
            self._memory_bytes += len(data)
            while len(self._memory) > self.memory_limit or self._memory_bytes > self.memory_cost_limit:
                evicted, evicted_data = self._memory.popitem(last=False)
                self._memory_bytes -= len(evicted_data)
                logger.debug(f"Image memory cache evicted: {evicted}")

    # --- Disk jobs (run on the worker thread) ---

    def _write_to_disk(self, url: str, data: bytes) -> None:
        try:
            self.disk_cache.set(url, data)
        except Exception as e:
            logger.warning(f"Image disk cache write failed for {url}: {e}")

    def _clear_disk(self) -> None:
        try:
            self.disk_cache.clear()
        except Exception as e:
            logger.error(f"Failed to clear image disk cache: {e}")
