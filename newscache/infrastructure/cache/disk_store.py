"""File-based persistent tier of the data cache.

One JSON document per cache identifier, named by the SHA-256 of the
identifier plus a fixed extension. Writes go through a temp file and
os.replace so a concurrent reader sees either the old or the new document,
never a partial one.

All failures are logged and swallowed: a failed write leaves the memory tier
authoritative, a failed read is a miss.
"""

import hashlib
import logging
import os
import shutil
import time
from pathlib import Path
from typing import Iterator, Optional, Union

from newscache.domain.errors import CacheFormatError
from newscache.domain.interfaces.cache import PersistentStore
from newscache.domain.models.cache import CacheEntry

logger = logging.getLogger(__name__)

CACHE_FILE_SUFFIX = ".cache"
TEMP_FILE_SUFFIX = ".tmp"
DEFAULT_CACHE_DIR = Path.home() / ".newscache" / "data_cache"


def hashed_filename(identifier: str) -> str:
    """Content-addressed file name for an identifier."""
    return hashlib.sha256(identifier.encode("utf-8")).hexdigest() + CACHE_FILE_SUFFIX


class DiskStore(PersistentStore):
    """Persistent store writing one file per identifier under `directory`."""

    def __init__(self, directory: Union[str, Path] = DEFAULT_CACHE_DIR):
        self.directory = Path(directory)
        self._setup_dir()
        logger.info(f"DiskStore initialized at {self.directory}")

    def _setup_dir(self) -> None:
        """Creates the cache directory if it doesn't exist."""
        try:
            self.directory.mkdir(parents=True, exist_ok=True)
        except OSError as e:
            logger.error(f"Failed to create cache directory {self.directory}: {e}")

    def path_for(self, identifier: str) -> Path:
        return self.directory / hashed_filename(identifier)

    def put(self, identifier: str, payload: str) -> None:
        filepath = self.path_for(identifier)
        temp_filepath = filepath.with_suffix(TEMP_FILE_SUFFIX)
        try:
            # Directory may have been removed externally since startup
            self.directory.mkdir(parents=True, exist_ok=True)
            temp_filepath.write_text(payload, encoding="utf-8")
            os.replace(str(temp_filepath), str(filepath))
            logger.debug(f"Stored cache file for key={identifier}: {filepath.name}")
        except OSError as e:
            logger.error(f"Failed to write cache file {filepath}: {e}")
            try:
                temp_filepath.unlink(missing_ok=True)
            except OSError as cleanup_err:
                logger.debug(f"Could not remove temp file {temp_filepath}: {cleanup_err}")

    def get(self, identifier: str) -> Optional[str]:
        filepath = self.path_for(identifier)
        try:
            return filepath.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except (OSError, UnicodeDecodeError) as e:
            logger.warning(f"Failed to read cache file {filepath}: {e}")
            return None

    def contains(self, identifier: str) -> bool:
        return self.path_for(identifier).is_file()

    def remove(self, identifier: str) -> None:
        filepath = self.path_for(identifier)
        try:
            filepath.unlink(missing_ok=True)
            logger.debug(f"Deleted cache file for key={identifier}")
        except OSError as e:
            logger.warning(f"Failed to delete cache file {filepath}: {e}")

    def clear(self) -> None:
        if self.directory.exists():
            try:
                shutil.rmtree(self.directory)
            except OSError as e:
                logger.error(f"Failed to clear cache directory {self.directory}: {e}")
        self._setup_dir()
        logger.info(f"Cleared disk cache at: {self.directory}")

    def sweep_expired(self, now: Optional[float] = None) -> int:
        now = time.time() if now is None else now
        removed = 0
        for filepath in self._iter_cache_files():
            try:
                expired = CacheEntry.is_document_expired(filepath.read_bytes(), now)
            except FileNotFoundError:
                continue
            except (OSError, CacheFormatError) as e:
                logger.debug(f"Skipping unreadable cache file {filepath.name}: {e}")
                continue
            if not expired:
                continue
            try:
                filepath.unlink(missing_ok=True)
                removed += 1
            except OSError as e:
                logger.warning(f"Failed to delete expired cache file {filepath}: {e}")
        logger.info(f"Swept {removed} expired cache file(s) from {self.directory}")
        return removed

    # --- Statistics ---

    def file_count(self) -> int:
        return sum(1 for _ in self._iter_cache_files())

    def size_bytes(self) -> int:
        total = 0
        for filepath in self._iter_cache_files():
            try:
                total += filepath.stat().st_size
            except OSError:
                continue  # removed while iterating
        return total

    def _iter_cache_files(self) -> Iterator[Path]:
        try:
            yield from (p for p in self.directory.glob("*" + CACHE_FILE_SUFFIX) if p.is_file())
        except OSError as e:
            logger.warning(f"Failed to list cache directory {self.directory}: {e}")
