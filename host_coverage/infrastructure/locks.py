"""
Per-host locks.

Every coverage transition holds the host's lock for the whole unit of
work, so two admins acting on the same host are serialised and the
second always reads the first one's committed result.

Two backends:

* ``RedisHostLocks`` -- ``DistributedLock`` per host key.  SET NX EX for
  acquire, a Lua script for atomic check-and-delete on release.  Used
  when several API processes share one database.
* ``LocalHostLocks`` -- one ``asyncio.Lock`` per host id.  Single process
  deployments and tests.

Failing to get the lock within the wait budget raises
``ConcurrencyConflict``; a Redis connection problem raises
``StoreUnavailable``.
"""

from __future__ import annotations

import asyncio
import logging
import time
import uuid
from contextlib import asynccontextmanager
from typing import AsyncContextManager, AsyncIterator, Protocol

import redis.asyncio as aioredis
from redis.exceptions import RedisError

from host_coverage.domain.errors import ConcurrencyConflict, StoreUnavailable

logger = logging.getLogger(__name__)

_RELEASE_LUA = """
if redis.call("get", KEYS[1]) == ARGV[1] then
    return redis.call("del", KEYS[1])
else
    return 0
end
"""


class DistributedLock:
    def __init__(
        self,
        client: aioredis.Redis,
        key: str,
        ttl_seconds: int = 30,
        poll_interval: float = 0.05,
    ):
        self.redis = client
        self.key = f"lock:{key}"
        self.ttl = ttl_seconds
        self.poll_interval = poll_interval
        self.token = str(uuid.uuid4())

    async def acquire(self, wait_seconds: float = 0.0) -> bool:
        """Try to acquire, polling for up to *wait_seconds*. True on success."""
        deadline = time.monotonic() + wait_seconds
        while True:
            if await self.redis.set(self.key, self.token, nx=True, ex=self.ttl):
                return True
            if time.monotonic() >= deadline:
                return False
            await asyncio.sleep(self.poll_interval)

    async def release(self) -> None:
        """Release only if we still own the lock (atomic via Lua)."""
        await self.redis.eval(_RELEASE_LUA, 1, self.key, self.token)


class HostLocks(Protocol):
    def hold(self, host_id: str) -> AsyncContextManager[None]: ...


class RedisHostLocks:
    def __init__(
        self,
        client: aioredis.Redis,
        ttl_seconds: int = 30,
        wait_seconds: float = 10.0,
    ):
        self.client = client
        self.ttl = ttl_seconds
        self.wait = wait_seconds

    @asynccontextmanager
    async def hold(self, host_id: str) -> AsyncIterator[None]:
        lock = DistributedLock(self.client, f"host:{host_id}", self.ttl)
        try:
            acquired = await lock.acquire(wait_seconds=self.wait)
        except RedisError as exc:
            raise StoreUnavailable(f"Lock service unavailable: {exc}") from exc
        if not acquired:
            logger.warning("Timed out waiting for %s", lock.key)
            raise ConcurrencyConflict(
                f"Host {host_id} is locked by another operation; retry"
            )
        try:
            yield
        finally:
            try:
                await lock.release()
            except RedisError:
                # the key still expires after its TTL
                logger.warning("Could not release %s", lock.key, exc_info=True)


class LocalHostLocks:
    """One ``asyncio.Lock`` per host, dropped once nobody holds or awaits it."""

    def __init__(self, wait_seconds: float = 10.0):
        self.wait = wait_seconds
        self._locks: dict[str, asyncio.Lock] = {}
        self._users: dict[str, int] = {}

    @asynccontextmanager
    async def hold(self, host_id: str) -> AsyncIterator[None]:
        lock = self._locks.setdefault(host_id, asyncio.Lock())
        self._users[host_id] = self._users.get(host_id, 0) + 1
        try:
            try:
                await asyncio.wait_for(lock.acquire(), timeout=self.wait)
            except asyncio.TimeoutError as exc:
                logger.warning("Timed out waiting for lock on host %s", host_id)
                raise ConcurrencyConflict(
                    f"Host {host_id} is locked by another operation; retry"
                ) from exc
            try:
                yield
            finally:
                lock.release()
        finally:
            self._users[host_id] -= 1
            if not self._users[host_id]:
                del self._users[host_id]
                del self._locks[host_id]
