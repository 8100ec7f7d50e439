"""Command Handler: Orchestrates CLI command execution.

Receives commands from the main entry point (main.py) and runs them
against the data cache and the image cache, reporting through the UI.
"""

import logging
from typing import Optional

from newscache.domain.interfaces.user_interface import UserInterface
from newscache.domain.models.keys import iter_policies
from newscache.infrastructure.cache.data_cache import DataCacheManager
from newscache.infrastructure.cache.image_cache import ImageCache
from newscache.infrastructure.cli.display import format_bytes

logger = logging.getLogger(__name__)


class CommandHandler:
    """Handles incoming commands and delegates to the caches."""

    def __init__(
        self,
        data_cache: DataCacheManager,
        ui: UserInterface,
        image_cache: Optional[ImageCache] = None,
        ttl_overrides: Optional[dict] = None,
    ):
        self.data_cache = data_cache
        self.image_cache = image_cache
        self.ui = ui
        self.ttl_overrides = ttl_overrides or {}

    def handle_info(self) -> None:
        """Handles the 'info' command."""
        logger.info("Handling 'info' command")
        stats = self.data_cache.stats()
        rows = [
            ("Directory", stats.directory if stats.directory is not None else "-"),
            ("Files", stats.disk_files),
            ("Size", format_bytes(stats.disk_bytes)),
            ("Memory entries", stats.memory_entries),
        ]
        self.ui.display_table("Data cache", ("Property", "Value"), rows)

    def handle_policies(self) -> None:
        """Handles the 'policies' command: default and effective TTL per namespace."""
        rows = []
        for namespace, default_ttl in iter_policies():
            effective = self.ttl_overrides.get(namespace, default_ttl)
            rows.append((namespace, default_ttl, effective))
        self.ui.display_table("TTL policies", ("Namespace", "Default TTL", "Effective TTL"), rows)

    def handle_clear(self, include_images: bool = True) -> None:
        """Handles the 'clear' command."""
        logger.info(f"Handling 'clear' command (include_images={include_images})")
        self.data_cache.clear_all()
        if not self.data_cache.flush():
            self.ui.display_warning("Timed out waiting for the disk cache to be cleared.")
            return
        if include_images and self.image_cache is not None:
            self.image_cache.clear()
        self.ui.display_info("Cache cleared successfully.")

    def handle_sweep(self) -> None:
        """Handles the 'sweep' command: deletes expired files from the disk tier."""
        logger.info("Handling 'sweep' command")
        removed = self.data_cache.clear_expired(wait=True)
        if removed is None:
            self.ui.display_warning("The disk sweep did not run.")
            return
        remaining = self.data_cache.stats().disk_files
        self.ui.display_info(f"Removed {removed} expired cache file(s); {remaining} remaining.")
