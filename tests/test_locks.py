"""
Per-host lock tests.

1. ``DistributedLock`` acquire / release logic (mocked Redis).
2. ``RedisHostLocks`` maps a held lock to ``ConcurrencyConflict`` and a
   Redis outage to ``StoreUnavailable``.
3. ``LocalHostLocks`` serialises work on one host only.
"""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest
from redis.exceptions import ConnectionError as RedisConnectionError

from host_coverage.domain.errors import ConcurrencyConflict, StoreUnavailable
from host_coverage.infrastructure.locks import (
    DistributedLock,
    LocalHostLocks,
    RedisHostLocks,
)


class TestDistributedLock:
    """Tests the Redis distributed lock logic (mocked Redis)."""

    @pytest.mark.asyncio
    async def test_acquire_succeeds(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)

        lock = DistributedLock(mock_redis, "host:h1", ttl_seconds=10)
        assert await lock.acquire() is True
        mock_redis.set.assert_called_once_with(
            "lock:host:h1", lock.token, nx=True, ex=10
        )

    @pytest.mark.asyncio
    async def test_acquire_fails_if_held(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        lock = DistributedLock(mock_redis, "host:h1", ttl_seconds=10)
        assert await lock.acquire() is False

    @pytest.mark.asyncio
    async def test_acquire_waits_for_release(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(side_effect=[False, False, True])

        lock = DistributedLock(mock_redis, "host:h1", poll_interval=0.001)
        assert await lock.acquire(wait_seconds=1.0) is True
        assert mock_redis.set.call_count == 3

    @pytest.mark.asyncio
    async def test_release_calls_eval(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        lock = DistributedLock(mock_redis, "host:h1", ttl_seconds=10)
        await lock.acquire()
        await lock.release()

        mock_redis.eval.assert_called_once()
        assert mock_redis.eval.call_args.args[2:] == ("lock:host:h1", lock.token)


class TestRedisHostLocks:
    @pytest.mark.asyncio
    async def test_hold_releases_after_block(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(return_value=1)

        locks = RedisHostLocks(mock_redis, wait_seconds=0)
        async with locks.hold("h1"):
            mock_redis.eval.assert_not_called()
        mock_redis.eval.assert_called_once()

    @pytest.mark.asyncio
    async def test_held_lock_is_a_conflict(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=False)

        locks = RedisHostLocks(mock_redis, wait_seconds=0)
        with pytest.raises(ConcurrencyConflict):
            async with locks.hold("h1"):
                pass

    @pytest.mark.asyncio
    async def test_redis_outage_is_store_unavailable(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(side_effect=RedisConnectionError("refused"))

        locks = RedisHostLocks(mock_redis, wait_seconds=0)
        with pytest.raises(StoreUnavailable):
            async with locks.hold("h1"):
                pass

    @pytest.mark.asyncio
    async def test_release_failure_does_not_mask_result(self):
        mock_redis = AsyncMock()
        mock_redis.set = AsyncMock(return_value=True)
        mock_redis.eval = AsyncMock(side_effect=RedisConnectionError("gone"))

        locks = RedisHostLocks(mock_redis, wait_seconds=0)
        async with locks.hold("h1"):
            done = True
        assert done


class TestLocalHostLocks:
    @pytest.mark.asyncio
    async def test_same_host_is_serialised(self):
        locks = LocalHostLocks(wait_seconds=1)
        order: list[str] = []

        async def work(name: str):
            async with locks.hold("h1"):
                order.append(f"{name}-in")
                await asyncio.sleep(0.01)
                order.append(f"{name}-out")

        await asyncio.gather(work("a"), work("b"))
        assert order == ["a-in", "a-out", "b-in", "b-out"]

    @pytest.mark.asyncio
    async def test_other_hosts_are_independent(self):
        locks = LocalHostLocks(wait_seconds=0.05)
        async with locks.hold("h1"):
            async with locks.hold("h2"):
                pass

    @pytest.mark.asyncio
    async def test_timeout_is_a_conflict(self):
        locks = LocalHostLocks(wait_seconds=0.01)
        async with locks.hold("h1"):
            with pytest.raises(ConcurrencyConflict):
                async with locks.hold("h1"):
                    pass

    @pytest.mark.asyncio
    async def test_registry_is_empty_after_use(self):
        locks = LocalHostLocks(wait_seconds=1)
        async with locks.hold("h1"):
            assert "h1" in locks._locks
        assert locks._locks == {}
        assert locks._users == {}

    @pytest.mark.asyncio
    async def test_registry_is_empty_after_timeout(self):
        locks = LocalHostLocks(wait_seconds=0.01)
        async with locks.hold("h1"):
            with pytest.raises(ConcurrencyConflict):
                async with locks.hold("h1"):
                    pass
            assert locks._users == {"h1": 1}
        assert locks._locks == {}
        assert locks._users == {}

    @pytest.mark.asyncio
    async def test_registry_is_empty_after_error_inside(self):
        locks = LocalHostLocks(wait_seconds=1)
        with pytest.raises(LookupError):
            async with locks.hold("unknown-host"):
                raise LookupError("no such host")
        assert locks._locks == {}

    @pytest.mark.asyncio
    async def test_waiter_keeps_the_entry_alive(self):
        locks = LocalHostLocks(wait_seconds=1)
        seen: list[int] = []

        async def work():
            async with locks.hold("h1"):
                await asyncio.sleep(0.01)
                seen.append(locks._users["h1"])

        await asyncio.gather(work(), work(), work())
        # while the first holder sleeps the other two queue up
        assert seen[0] == 3
        assert locks._locks == {}
