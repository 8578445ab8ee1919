from unittest.mock import AsyncMock

import fakeredis
import pytest
import pytest_asyncio
from fakeredis import aioredis
from redis.exceptions import RedisError

from tests.conftest import InMemoryTaskRepository, RecordingPublisher, make_task
from todo_api.cache.keys import task_cache_key, tasks_cache_key
from todo_api.cache.layer import MemoryCacheLayer, RedisCacheLayer, build_cache_layer
from todo_api.core.config import Settings
from todo_api.models import TaskStatus
from todo_api.services.task_service import TaskService


@pytest.fixture
def settings() -> Settings:
    return Settings(cache_namespace="test:")


@pytest_asyncio.fixture
async def fake_redis():
    redis = aioredis.FakeRedis(decode_responses=True)
    yield redis
    await redis.flushall()
    await redis.aclose()


@pytest_asyncio.fixture
async def redis_cache(settings, fake_redis):
    cache = RedisCacheLayer(settings, redis=fake_redis)
    await cache.init_cache()
    return cache


@pytest.mark.asyncio
async def test_redis_set_and_get_are_namespaced(redis_cache, fake_redis):
    await redis_cache.set("task-1", '{"id": 1}', ttl=300)

    assert await redis_cache.get("task-1") == '{"id": 1}'
    assert await fake_redis.get("test:task-1") == '{"id": 1}'
    assert 0 < await fake_redis.ttl("test:task-1") <= 300
    assert await redis_cache.get("task-2") is None


@pytest.mark.asyncio
async def test_redis_delete_pattern_removes_only_matching_keys(redis_cache, fake_redis):
    for task_id in range(1, 251):
        await redis_cache.set(task_cache_key(task_id), "{}", ttl=300)
    await redis_cache.set(tasks_cache_key(None, None, 1, 10), "{}", ttl=300)
    await fake_redis.set("other:task-1", "{}")

    deleted = await redis_cache.delete_pattern("task-*")

    assert deleted == 250
    assert await redis_cache.get(task_cache_key(7)) is None
    assert await redis_cache.get(tasks_cache_key(None, None, 1, 10)) == "{}"
    assert await fake_redis.get("other:task-1") == "{}"

    assert await redis_cache.delete_pattern("tasks-*") == 1
    assert await redis_cache.delete_pattern("tasks-*") == 0


@pytest.mark.asyncio
async def test_redis_errors_propagate(settings):
    redis = AsyncMock()
    redis.get.side_effect = RedisError("connection lost")
    redis.scan.side_effect = RedisError("connection lost")
    cache = RedisCacheLayer(settings, redis=redis)

    with pytest.raises(RedisError):
        await cache.get("task-1")
    with pytest.raises(RedisError):
        await cache.delete_pattern("task-*")


@pytest.mark.asyncio
async def test_memory_cache_expires_entries_by_their_own_ttl():
    clock = [0.0]
    cache = MemoryCacheLayer(maxsize=10, timer=lambda: clock[0])

    await cache.set("task-1", "short", ttl=10)
    await cache.set("task-2", "long", ttl=300)
    clock[0] = 11.0

    assert await cache.get("task-1") is None
    assert await cache.get("task-2") == "long"


@pytest.mark.asyncio
async def test_memory_cache_delete_pattern():
    cache = MemoryCacheLayer()
    await cache.set(task_cache_key(1), "a", ttl=300)
    await cache.set(task_cache_key(2), "b", ttl=300)
    await cache.set(tasks_cache_key("x", TaskStatus.ACTIVE, 1, 10), "c", ttl=300)

    assert await cache.delete_pattern("task-*") == 2
    assert await cache.get(task_cache_key(1)) is None
    assert await cache.get(tasks_cache_key("x", TaskStatus.ACTIVE, 1, 10)) == "c"


def test_build_cache_layer_selects_backend():
    assert isinstance(build_cache_layer(Settings(cache_backend="memory")), MemoryCacheLayer)
    assert isinstance(build_cache_layer(Settings(cache_backend="redis")), RedisCacheLayer)


@pytest.mark.asyncio
async def test_undecodable_redis_entry_is_a_miss(settings):
    server = fakeredis.FakeServer()
    raw = aioredis.FakeRedis(server=server)
    decoding = aioredis.FakeRedis(server=server, decode_responses=True)
    cache = RedisCacheLayer(settings, redis=decoding)
    await raw.set("test:task-1", b"\xff\xfe garbage")

    assert await cache.get("task-1") is None

    service = TaskService(
        InMemoryTaskRepository([make_task(1, title="Fresh")]),
        cache,
        RecordingPublisher(),
    )
    task = await service.get_task(1)

    assert task.title == "Fresh"
    assert '"Fresh"' in await decoding.get("test:task-1")
    await raw.aclose()
    await decoding.aclose()
