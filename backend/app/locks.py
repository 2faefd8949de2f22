"""Single-flight guard for deployments. Redis when REDIS_URL is set, otherwise in-process."""
from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import Any, AsyncIterator

from redis.exceptions import RedisError

from app.config import settings
from app.errors import DeploymentInProgress

logger = logging.getLogger(__name__)

_redis: Any = None
_local_held: set[str] = set()


def _enabled() -> bool:
    return bool(settings.redis_url and settings.redis_url.strip())


async def _get_client() -> Any | None:
    global _redis
    if not _enabled():
        return None
    if _redis is not None:
        return _redis
    try:
        from redis.asyncio import Redis
        _redis = Redis.from_url(
            settings.redis_url.strip(),
            decode_responses=True,
        )
        await _redis.ping()
        logger.info("Redis lock backend connected")
        return _redis
    except Exception as e:
        logger.warning("Redis unavailable, using in-process locks: %s", e)
        _redis = None
        return None


async def close() -> None:
    """Close Redis connection (call on shutdown)."""
    global _redis
    if _redis is not None:
        try:
            await _redis.aclose()
        except Exception as e:
            logger.warning("Redis close: %s", e)
        _redis = None


def lock_key(*parts: Any) -> str:
    """Build a lock key from parts (None-safe)."""
    safe = [str(p) if p is not None else "" for p in parts]
    return f"appforge:lock:{':'.join(safe)}"


@dataclass
class LockHandle:
    """A granted lock. Released through the backend that granted it."""
    key: str
    redis_lock: Any = None


async def acquire(key: str, ttl_seconds: int) -> LockHandle | None:
    """
    Take the lock if free, else return None.
    On Redis the lock carries an owner token and expires after ttl_seconds,
    so a crashed holder cannot block others forever.
    """
    client = await _get_client()
    if client is not None:
        redis_lock = client.lock(key, timeout=ttl_seconds, blocking=False)
        if await redis_lock.acquire(blocking=False):
            return LockHandle(key, redis_lock)
        return None
    if key in _local_held:
        return None
    _local_held.add(key)
    return LockHandle(key)


async def release(handle: LockHandle) -> None:
    if handle.redis_lock is None:
        _local_held.discard(handle.key)
        return
    try:
        await handle.redis_lock.release()
    except RedisError as e:
        # Expired, another run may hold the key now
        logger.warning("Lock %s not released: %s", handle.key, e)


@asynccontextmanager
async def single_flight(key: str, ttl_seconds: int | None = None) -> AsyncIterator[LockHandle]:
    """Hold key for the duration of the block; raise DeploymentInProgress if someone else holds it."""
    handle = await acquire(key, ttl_seconds or settings.deploy_lock_ttl)
    if handle is None:
        raise DeploymentInProgress("A deployment is already running for this project")
    try:
        yield handle
    finally:
        await release(handle)
