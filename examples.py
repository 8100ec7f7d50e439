#!/usr/bin/env python3
"""
Examples of programmatic usage of the newscache components.

Shows how a fetch service uses the data cache: read-through with a loader,
forced refresh, TTL overrides, and reloading from disk after a restart.

Usage:
    python examples.py
"""

import asyncio
import tempfile
from pathlib import Path

from newscache.core.services.cached_fetch import CachedFetcher
from newscache.domain.models.cache import Expiration
from newscache.domain.models.keys import NewsListKey, StarFortuneKey, WeatherKey
from newscache.infrastructure.cache.data_cache import DataCacheManager
from newscache.infrastructure.monitoring.logger_setup import setup_logging


def fake_news_request(category: str, page: int):
    print(f"  -> requesting news for {category}, page {page}")
    return [{"title": f"{category} headline {i}", "page": page} for i in range(2)]


def example_read_through(cache: DataCacheManager):
    print("\n=== Read-through fetch ===")
    fetcher = CachedFetcher(cache)
    key = NewsListKey("guonei", 1)
    first = fetcher.fetch(key, lambda: fake_news_request("guonei", 1))
    second = fetcher.fetch(key, lambda: fake_news_request("guonei", 1))
    print(f"  same result from cache: {first == second}")
    fetcher.fetch(key, lambda: fake_news_request("guonei", 1), force_refresh=True)


def example_ttl_override(cache: DataCacheManager):
    print("\n=== TTL override ===")
    key = StarFortuneKey("leo", "2026-01-30")
    cache.save(key, {"summary": "A good day"}, ttl=Expiration.days(1))
    print(f"  default TTL {key.default_ttl}, saved with {Expiration.days(1)}")
    print(f"  exists: {cache.exists(key)}")


def example_restart(cache_dir: Path):
    print("\n=== Durability across restarts ===")
    key = WeatherKey("Beijing")
    with DataCacheManager(cache_dir=cache_dir) as cache:
        cache.save(key, {"temperature": 21})
    with DataCacheManager(cache_dir=cache_dir) as cache:
        print(f"  reloaded from disk: {cache.get(key)}")
        print(f"  stats: {cache.stats()}")


async def example_async(cache: DataCacheManager):
    print("\n=== Async lookup ===")
    value = await cache.get_async(NewsListKey("guonei", 1))
    print(f"  got {len(value or [])} item(s) without blocking the loop")


def main():
    setup_logging()
    with tempfile.TemporaryDirectory() as tmp:
        cache_dir = Path(tmp) / "data_cache"
        with DataCacheManager(cache_dir=cache_dir) as cache:
            example_read_through(cache)
            example_ttl_override(cache)
            asyncio.run(example_async(cache))
        example_restart(cache_dir)


if __name__ == "__main__":
    main()
