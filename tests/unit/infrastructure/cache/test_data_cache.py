import asyncio
import threading
import time
import pytest
from datetime import timedelta
from pathlib import Path

from newscache.domain.errors import CacheSerializationError
from newscache.domain.models.cache import Expiration
from newscache.domain.models.keys import (
    DreamSearchKey,
    NewsListKey,
    QuizKey,
    StarFortuneKey,
    WeatherKey,
)
from newscache.infrastructure.cache.data_cache import DataCacheManager
from newscache.infrastructure.cache.disk_store import DiskStore


NEWS = NewsListKey("guonei", 1)
ITEMS = [{"title": "A"}, {"title": "B"}]


def test_save_then_get_round_trip(cache: DataCacheManager):
    cache.save(NEWS, ITEMS)
    assert cache.get(NEWS) == ITEMS


def test_get_unknown_key_is_a_miss(cache: DataCacheManager):
    assert cache.get(WeatherKey("nowhere")) is None


def test_entry_expires_after_ttl(cache: DataCacheManager, clock):
    cache.save(QuizKey(), {"q": 1}, ttl=1)
    clock.advance(1.5)
    assert cache.get(QuizKey()) is None


def test_infinite_ttl_survives_far_future(cache: DataCacheManager, clock):
    cache.save(QuizKey(), {"q": 1}, ttl=Expiration.never())
    clock.advance(100 * 365 * 86400)
    assert cache.get(QuizKey()) == {"q": 1}


def test_ttl_override_forms(cache: DataCacheManager, clock):
    cache.save(WeatherKey("a"), 1, ttl=timedelta(seconds=10))
    cache.save(WeatherKey("b"), 2, ttl=Expiration.minutes(1))
    clock.advance(30)
    assert cache.get(WeatherKey("a")) is None
    assert cache.get(WeatherKey("b")) == 2


def test_news_scenario_uses_ten_minute_default(cache: DataCacheManager, clock):
    cache.save(NEWS, ITEMS)
    clock.advance(9 * 60)
    assert cache.get(NEWS) == ITEMS
    clock.advance(2 * 60)
    assert cache.get(NEWS) is None


def test_expired_memory_entry_is_removed_from_disk(cache: DataCacheManager, clock, cache_dir: Path):
    cache.save(NEWS, ITEMS)
    cache.flush()
    assert DiskStore(cache_dir).contains(NEWS.identifier)
    clock.advance(11 * 60)
    assert cache.get(NEWS) is None
    cache.flush()
    assert not DiskStore(cache_dir).contains(NEWS.identifier)


def test_restart_loads_from_disk_and_promotes(cache: DataCacheManager, mocker):
    cache.save(NEWS, ITEMS)
    assert cache.flush(timeout=5)
    cache.drop_memory()
    assert cache.stats().memory_entries == 0

    assert cache.get(NEWS) == ITEMS
    assert cache.stats().memory_entries == 1

    # promoted: the next lookup does not touch the disk
    spy = mocker.spy(cache._store, "get")
    assert cache.get(NEWS) == ITEMS
    spy.assert_not_called()


def test_new_manager_reads_previous_managers_files(cache_dir: Path, clock):
    with DataCacheManager(cache_dir=cache_dir, clock=clock) as first:
        first.save(DreamSearchKey("snake"), ["good luck"])
    with DataCacheManager(cache_dir=cache_dir, clock=clock) as second:
        assert second.get(DreamSearchKey("snake")) == ["good luck"]


def test_expired_disk_entry_is_miss_and_deleted(cache: DataCacheManager, clock):
    cache.save(NEWS, ITEMS)
    cache.flush()
    cache.drop_memory()
    clock.advance(11 * 60)
    assert cache.get(NEWS) is None
    cache.flush()
    assert not cache._store.contains(NEWS.identifier)
    assert cache.stats().memory_entries == 0


def test_corrupt_disk_file_is_a_miss_and_kept(cache: DataCacheManager):
    path = cache._store.path_for(NEWS.identifier)
    path.write_text("{ definitely not an entry", encoding="utf-8")
    assert cache.get(NEWS) is None
    assert path.exists()


def test_key_isolation(cache: DataCacheManager):
    k1 = StarFortuneKey("a:b", "c")
    k2 = StarFortuneKey("a", "b:c")
    cache.save(k1, "v1")
    cache.save(k2, "v2")
    cache.flush()
    cache.drop_memory()
    assert cache.get(k1) == "v1"
    assert cache.get(k2) == "v2"


def test_save_replaces_previous_value_in_both_tiers(cache: DataCacheManager):
    cache.save(NEWS, ["old"])
    cache.save(NEWS, ["new"])
    assert cache.get(NEWS) == ["new"]
    cache.flush()
    cache.drop_memory()
    assert cache.get(NEWS) == ["new"]


def test_unserializable_value_raises_and_leaves_cache_untouched(cache: DataCacheManager):
    cache.save(NEWS, ITEMS)
    with pytest.raises(CacheSerializationError):
        cache.save(NEWS, {"bad": object()})
    assert cache.get(NEWS) == ITEMS


def test_expected_type_mismatch_is_a_miss(cache: DataCacheManager):
    cache.save(NEWS, ITEMS)
    assert cache.get(NEWS, expected_type=dict) is None
    assert cache.get(NEWS, expected_type=list) == ITEMS


def test_remove(cache: DataCacheManager):
    cache.save(NEWS, ITEMS)
    cache.remove(NEWS)
    assert cache.get(NEWS) is None
    cache.flush()
    assert not cache._store.contains(NEWS.identifier)


def test_remove_shadows_disk_until_file_is_gone(cache: DataCacheManager, mocker):
    cache.save(NEWS, ITEMS)
    cache.flush()
    cache.drop_memory()

    gate = threading.Event()
    cache._worker.submit(gate.wait, 5)  # hold the worker
    cache.remove(NEWS)
    try:
        assert cache.get(NEWS) is None
        assert not cache.exists(NEWS)
    finally:
        gate.set()
    cache.flush()
    assert cache.get(NEWS) is None


def test_clear_all_then_get_misses(cache: DataCacheManager):
    cache.save(NEWS, ITEMS)
    cache.save(QuizKey(), {"q": 1})
    cache.clear_all()
    assert cache.get(NEWS) is None
    cache.clear_all()
    cache.flush()
    assert cache.get(QuizKey()) is None
    assert cache.stats().disk_files == 0
    assert cache._store.directory.is_dir()


def test_save_after_clear_all_survives_the_wipe(cache: DataCacheManager):
    cache.save(NEWS, ["old"])
    cache.clear_all()
    cache.save(NEWS, ["new"])
    cache.flush()
    cache.drop_memory()
    assert cache.get(NEWS) == ["new"]


def test_clear_expired_only_touches_disk(cache: DataCacheManager, clock):
    cache.save(NEWS, ITEMS)                      # 10 minutes
    cache.save(DreamSearchKey("snake"), ["ok"])  # 30 days
    cache.flush()
    clock.advance(11 * 60)

    cache.clear_expired()
    cache.flush()

    assert not cache._store.contains(NEWS.identifier)
    assert cache._store.contains(DreamSearchKey("snake").identifier)
    assert cache.stats().memory_entries == 2  # memory expires lazily
    assert cache.get(NEWS) is None


def test_exists_validates_expiration_by_default(cache: DataCacheManager, clock):
    assert not cache.exists(NEWS)
    cache.save(NEWS, ITEMS)
    assert cache.exists(NEWS)
    clock.advance(11 * 60)
    assert not cache.exists(NEWS)
    assert cache.exists(NEWS, validate=False)


def test_exists_on_disk_only(cache: DataCacheManager, clock):
    cache.save(NEWS, ITEMS)
    cache.flush()
    cache.drop_memory()
    assert cache.exists(NEWS)
    clock.advance(11 * 60)
    assert not cache.exists(NEWS)
    assert cache.exists(NEWS, validate=False)  # stale file not swept yet
    assert cache.stats().memory_entries == 0   # exists never promotes


def test_configured_namespace_ttl_override(cache_dir: Path, clock):
    with DataCacheManager(cache_dir=cache_dir, clock=clock,
                          ttl_overrides={"news": Expiration.seconds(5)}) as manager:
        manager.save(NEWS, ITEMS)
        assert manager.ttl_for(NEWS) == Expiration.seconds(5)
        assert manager.ttl_for(NEWS, ttl=60) == Expiration.seconds(60)
        clock.advance(6)
        assert manager.get(NEWS) is None


def test_disk_write_failure_keeps_memory_authoritative(cache: DataCacheManager, mocker):
    mocker.patch("pathlib.Path.write_text", side_effect=OSError("read-only file system"))
    cache.save(NEWS, ITEMS)
    assert cache.flush(timeout=5)
    assert cache.get(NEWS) == ITEMS
    assert not cache._store.contains(NEWS.identifier)


def test_concurrent_writers_leave_one_readable_value(cache: DataCacheManager):
    values = [[f"writer-{i}"] for i in range(16)]
    start = threading.Barrier(len(values))

    def write(value):
        start.wait()
        for _ in range(10):
            cache.save(NEWS, value)

    threads = [threading.Thread(target=write, args=(v,)) for v in values]
    for t in threads:
        t.start()
    for t in threads:
        t.join()

    in_memory = cache.get(NEWS)
    assert in_memory in values
    cache.flush()
    cache.drop_memory()
    assert cache.get(NEWS) == in_memory


def test_get_async(cache: DataCacheManager):
    cache.save(NEWS, ITEMS)
    cache.flush()
    cache.drop_memory()
    assert asyncio.run(cache.get_async(NEWS)) == ITEMS
    assert asyncio.run(cache.get_async(QuizKey())) is None


def test_stats(cache: DataCacheManager, cache_dir: Path):
    cache.save(NEWS, ITEMS)
    cache.save(QuizKey(), {"q": 1})
    cache.flush()
    stats = cache.stats()
    assert stats.memory_entries == 2
    assert stats.disk_files == 2
    assert stats.disk_bytes > 0
    assert stats.directory == cache_dir


def test_file_content_is_json_entry(cache: DataCacheManager, clock):
    import json
    cache.save(NEWS, ITEMS)
    cache.flush()
    document = json.loads(cache._store.path_for(NEWS.identifier).read_text(encoding="utf-8"))
    assert document == {"value": ITEMS, "created_at": clock.now, "ttl": 600.0}


def test_clear_expired_can_wait_for_the_removed_count(cache: DataCacheManager, clock):
    cache.save(NEWS, ITEMS)
    cache.save(NewsListKey("guoji", 1), ["x"])
    cache.save(DreamSearchKey("snake"), ["ok"])
    clock.advance(11 * 60)
    assert cache.clear_expired(wait=True) == 2
    assert cache.clear_expired() is None
    assert cache.flush(timeout=5)
    assert cache.stats().disk_files == 1


def test_clear_expired_after_close_reports_nothing(cache_dir: Path, clock):
    manager = DataCacheManager(cache_dir=cache_dir, clock=clock)
    manager.close()
    assert manager.clear_expired(wait=True) is None


def test_memory_hit_does_not_wait_for_a_full_disk_queue(cache_dir: Path, clock):
    manager = DataCacheManager(cache_dir=cache_dir, clock=clock, queue_size=1)
    started, gate = threading.Event(), threading.Event()

    def hold_worker():
        started.set()
        gate.wait(5)

    manager._worker.submit(hold_worker)
    writer = threading.Thread(target=manager.save, args=(NEWS, ITEMS))
    try:
        assert started.wait(5)
        manager.save(QuizKey(), {"q": 1})  # occupies the only queue slot
        writer.start()
        time.sleep(0.05)  # writer is now waiting for room in the queue

        results = []
        reader = threading.Thread(target=lambda: results.append(manager.get(QuizKey())))
        reader.start()
        reader.join(timeout=1)
        assert results == [{"q": 1}]
        assert manager.get(NEWS) == ITEMS
    finally:
        gate.set()
        if writer.ident is not None:
            writer.join(5)
        manager.close()

    with DataCacheManager(cache_dir=cache_dir, clock=clock) as reopened:
        assert reopened.get(QuizKey()) == {"q": 1}
        assert reopened.get(NEWS) == ITEMS


def test_disk_jobs_keep_memory_order_under_contention(cache_dir: Path, clock):
    with DataCacheManager(cache_dir=cache_dir, clock=clock, queue_size=1) as manager:
        def churn(i):
            for n in range(20):
                manager.save(NEWS, [i, n])
                if n % 5 == 0:
                    manager.remove(NEWS)

        threads = [threading.Thread(target=churn, args=(i,)) for i in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        final = manager.get(NEWS)
        assert manager.flush(timeout=5)
    with DataCacheManager(cache_dir=cache_dir, clock=clock) as reopened:
        assert reopened.get(NEWS) == final
