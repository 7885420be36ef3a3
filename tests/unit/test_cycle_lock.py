"""Tests for CycleLock (in-process lock + Redis lease)."""

import asyncio

import pytest
from reduction_fakes import FakeRedis
from redis.exceptions import ConnectionError as RedisConnectionError

from src.pr_common.errors import CycleAbortedError, CycleInProgressError
from src.pr_engine.cycle_lock import CycleLock


def _lock(redis: FakeRedis, ttl_seconds: float = 60) -> CycleLock:
    async def factory() -> FakeRedis:
        return redis

    return CycleLock(redis_factory=factory, key="test:lock", ttl_seconds=ttl_seconds)


async def test_acquire_and_release() -> None:
    redis = FakeRedis()
    lock = _lock(redis)

    async with lock.hold() as token:
        assert redis.data["test:lock"] == token
        assert lock.locked

    assert "test:lock" not in redis.data
    assert not lock.locked


async def test_overlap_in_same_process_rejected() -> None:
    lock = _lock(FakeRedis())
    entered = asyncio.Event()
    release = asyncio.Event()

    async def holder() -> None:
        async with lock.hold():
            entered.set()
            await release.wait()

    task = asyncio.create_task(holder())
    await entered.wait()
    with pytest.raises(CycleInProgressError):
        async with lock.hold():
            pass
    release.set()
    await task


async def test_lease_held_by_other_process_rejected() -> None:
    redis = FakeRedis()
    redis.data["test:lock"] = "someone-else"
    lock = _lock(redis)

    with pytest.raises(CycleInProgressError):
        async with lock.hold():
            pass

    # The foreign lease is untouched and the local lock is free again
    assert redis.data["test:lock"] == "someone-else"
    assert not lock.locked


async def test_released_on_error() -> None:
    redis = FakeRedis()
    lock = _lock(redis)

    with pytest.raises(RuntimeError):
        async with lock.hold():
            raise RuntimeError("boom")

    assert "test:lock" not in redis.data


async def test_expired_lease_not_released_by_old_holder() -> None:
    redis = FakeRedis()
    lock = _lock(redis)

    async with lock.hold():
        # Lease expired and was re-acquired elsewhere
        redis.data["test:lock"] = "new-holder"

    assert redis.data["test:lock"] == "new-holder"


async def test_lease_renewed_while_cycle_runs() -> None:
    redis = FakeRedis()
    first = _lock(redis, ttl_seconds=0.3)
    second = _lock(redis, ttl_seconds=0.3)

    async with first.hold() as token:
        # Well past the original TTL
        await asyncio.sleep(0.5)
        assert await redis.get("test:lock") == token
        with pytest.raises(CycleInProgressError):
            async with second.hold():
                pass

    assert await redis.get("test:lock") is None


async def test_lost_lease_aborts_running_body() -> None:
    redis = FakeRedis()
    lock = _lock(redis, ttl_seconds=0.3)
    finished = False

    with pytest.raises(CycleAbortedError):
        async with lock.hold():
            redis.data["test:lock"] = "another-process"
            await asyncio.sleep(1)
            finished = True

    assert not finished
    assert redis.data["test:lock"] == "another-process"
    assert not lock.locked


async def test_transient_renewal_error_tolerated() -> None:
    redis = FakeRedis()
    lock = _lock(redis, ttl_seconds=0.3)
    redis.eval_errors = [RedisConnectionError("blip")]

    async with lock.hold() as token:
        await asyncio.sleep(0.25)
        assert await redis.get("test:lock") == token


async def test_release_error_is_logged_not_raised() -> None:
    redis = FakeRedis()
    lock = _lock(redis)

    async with lock.hold():
        redis.eval_errors = [RedisConnectionError("gone")]

    assert not lock.locked
