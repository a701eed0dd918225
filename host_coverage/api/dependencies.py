"""FastAPI dependency injection helpers."""

from functools import lru_cache

from fastapi import Header

from host_coverage.config import settings
from host_coverage.infrastructure.database import async_session_factory
from host_coverage.infrastructure.locks import HostLocks, LocalHostLocks, RedisHostLocks
from host_coverage.infrastructure.redis_client import get_redis
from host_coverage.services.coverage import CoverageService


def _build_locks() -> HostLocks:
    if settings.lock_backend == "local":
        return LocalHostLocks(wait_seconds=settings.host_lock_wait_seconds)
    return RedisHostLocks(
        get_redis(),
        ttl_seconds=settings.host_lock_ttl_seconds,
        wait_seconds=settings.host_lock_wait_seconds,
    )


@lru_cache
def get_coverage_service() -> CoverageService:
    """One service (and one lock registry) per process."""
    return CoverageService(async_session_factory, _build_locks())


async def get_actor(x_actor: str = Header(..., min_length=1)) -> str:
    """Identity of the caller, set by the authenticating gateway."""
    return x_actor
