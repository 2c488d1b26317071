"""
CacheManager behaviour with and without a Redis backend.
"""
import pytest

from blogsphere.cache import LATEST_PREFIX, TRENDING_KEY, CacheManager, invalidate_if_stale, mark_feeds_stale


@pytest.fixture
def backend(fake_redis):
    return fake_redis


@pytest.fixture
def manager(backend) -> CacheManager:
    manager = CacheManager()
    manager._redis = backend
    return manager


@pytest.mark.asyncio
async def test_get_or_load_caches_result(manager):
    calls = []

    async def loader():
        calls.append(1)
        return [{"blog_id": "a"}]

    assert await manager.get_or_load("k", loader) == [{"blog_id": "a"}]
    assert await manager.get_or_load("k", loader) == [{"blog_id": "a"}]
    assert len(calls) == 1
    assert manager.stats == {"hits": 1, "misses": 1, "hit_rate": 50.0}


@pytest.mark.asyncio
async def test_invalidate_feeds_drops_only_feed_keys(manager, backend):
    await manager.set(f"{LATEST_PREFIX}:1", [1])
    await manager.set(f"{LATEST_PREFIX}:2", [2])
    await manager.set(TRENDING_KEY, [3])
    await manager.set("other", [4])

    await manager.invalidate_feeds()
    assert set(backend.data) == {"other"}


@pytest.mark.asyncio
async def test_redis_failure_falls_through(manager, backend):
    backend.fail = True

    async def loader():
        return ["fresh"]

    assert await manager.get_or_load("k", loader) == ["fresh"]
    await manager.invalidate_feeds()


@pytest.mark.asyncio
async def test_disabled_cache_is_always_a_miss():
    manager = CacheManager()

    async def loader():
        return {"n": 1}

    assert await manager.get_or_load("k", loader) == {"n": 1}
    assert await manager.get("k") is None
    assert manager.stats["hits"] == 0


@pytest.mark.asyncio
async def test_feed_invalidation_waits_for_commit(db_session, feed_cache):
    feed_cache.data[TRENDING_KEY] = "[]"

    mark_feeds_stale(db_session)
    assert TRENDING_KEY in feed_cache.data

    await invalidate_if_stale(db_session)
    assert TRENDING_KEY not in feed_cache.data
    assert "feeds_stale" not in db_session.info


@pytest.mark.asyncio
async def test_unmarked_session_leaves_feeds(db_session, feed_cache):
    feed_cache.data[TRENDING_KEY] = "[]"
    await invalidate_if_stale(db_session)
    assert TRENDING_KEY in feed_cache.data
