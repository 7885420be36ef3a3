"""Cycle mutual exclusion: at most one run_cycle at a time.

Two layers:
  1. asyncio.Lock for overlapping triggers inside one process
  2. Redis lease (SET NX PX + token) for overlapping processes; the TTL bounds
     how long a crashed holder can block the next cycle

While held, a keep-alive task re-extends the lease every TTL/3 (Lua
compare-and-pexpire). If the lease is lost, the holding task is cancelled and
hold() raises CycleAbortedError: a cycle never keeps running without its lease.

Release only deletes the key if it still holds our token (Lua compare-and-delete),
so an expired lease that was re-acquired elsewhere is never released by us.
"""

import asyncio
import contextlib
import logging
import uuid
from collections.abc import AsyncIterator, Awaitable, Callable
from contextlib import asynccontextmanager

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from config.settings import settings
from src.pr_common.errors import CycleAbortedError, CycleInProgressError
from src.pr_common.redis_client import get_redis

logger = logging.getLogger(__name__)

_RELEASE_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
end
return 0
"""

_RENEW_SCRIPT = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("pexpire", KEYS[1], ARGV[2])
end
return 0
"""


class _Lease:
    def __init__(self, token: str) -> None:
        self.token = token
        self.lost = False
        self.body_done = False


class CycleLock:
    def __init__(
        self,
        redis_factory: Callable[[], Awaitable[aioredis.Redis]] = get_redis,
        key: str = settings.CYCLE_LOCK_KEY,
        ttl_seconds: float = settings.CYCLE_LOCK_TTL_SECONDS,
    ) -> None:
        self._local = asyncio.Lock()
        self._redis_factory = redis_factory
        self._key = key
        self._ttl_ms = int(ttl_seconds * 1000)

    @property
    def locked(self) -> bool:
        return self._local.locked()

    @asynccontextmanager
    async def hold(self) -> AsyncIterator[str]:
        """Yield the lease token.

        Raises CycleInProgressError if already held, CycleAbortedError if the
        lease is lost while the body is still running.
        """
        if self._local.locked():
            raise CycleInProgressError()
        async with self._local:
            redis = await self._redis_factory()
            lease = _Lease(uuid.uuid4().hex)
            acquired = await redis.set(self._key, lease.token, nx=True, px=self._ttl_ms)
            if not acquired:
                logger.info("Cycle lease %s held by another process", self._key)
                raise CycleInProgressError()

            owner = asyncio.current_task()
            keeper = asyncio.create_task(self._keep_alive(redis, lease, owner))
            try:
                yield lease.token
            except asyncio.CancelledError:
                if lease.lost and owner is not None and owner.uncancel() == 0:
                    raise CycleAbortedError("cycle lease lost") from None
                raise
            finally:
                lease.body_done = True
                keeper.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await keeper
                await self._release(redis, lease.token)

    async def _keep_alive(
        self, redis: aioredis.Redis, lease: _Lease, owner: asyncio.Task | None
    ) -> None:
        loop = asyncio.get_running_loop()
        interval = self._ttl_ms / 3000
        expires_at = loop.time() + self._ttl_ms / 1000
        while True:
            await asyncio.sleep(interval)
            try:
                renewed = await redis.eval(
                    _RENEW_SCRIPT, 1, self._key, lease.token, self._ttl_ms
                )
            except (RedisError, OSError) as e:
                logger.warning("Cycle lease %s renewal failed: %s", self._key, e)
                if loop.time() < expires_at:
                    continue
                renewed = 0
            if renewed:
                expires_at = loop.time() + self._ttl_ms / 1000
                continue

            lease.lost = True
            logger.error("Cycle lease %s lost; aborting the running cycle", self._key)
            if owner is not None and not lease.body_done:
                owner.cancel()
            return

    async def _release(self, redis: aioredis.Redis, token: str) -> None:
        try:
            released = await redis.eval(_RELEASE_SCRIPT, 1, self._key, token)
        except (RedisError, OSError) as e:
            # The lease expires on its own after the TTL
            logger.error("Cycle lease %s release failed: %s", self._key, e)
            return
        if not released:
            logger.warning("Cycle lease %s expired before release", self._key)
