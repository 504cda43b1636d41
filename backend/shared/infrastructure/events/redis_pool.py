"""
Shared async Redis client for notifications.

Created on first publish rather than at import, so the API starts (and
tests run) without a Redis server when EVENTS_ENABLED is false.
"""

from __future__ import annotations

import asyncio
from typing import Any

import redis.asyncio as redis

from shared.config.settings import settings, REDIS_URL
from shared.config.logging import get_logger
from shared.utils.health import health_check_with_timeout

logger = get_logger(__name__)

_client: redis.Redis | None = None
_client_lock: asyncio.Lock | None = None


def _new_client() -> redis.Redis:
    return redis.from_url(
        REDIS_URL,
        max_connections=settings.redis_pool_max_connections,
        decode_responses=True,
        socket_connect_timeout=settings.redis_socket_timeout,
        socket_timeout=settings.redis_socket_timeout,
        health_check_interval=30,
    )


async def get_redis_pool() -> redis.Redis:
    """The process-wide client, created on first use."""
    global _client, _client_lock

    if _client is not None:
        return _client

    # Created lazily: a lock built at import would bind to no running loop
    if _client_lock is None:
        _client_lock = asyncio.Lock()

    async with _client_lock:
        if _client is None:
            _client = _new_client()
            logger.info(
                "Redis client created",
                max_connections=settings.redis_pool_max_connections,
                socket_timeout=settings.redis_socket_timeout,
            )
    return _client


async def close_redis_pool() -> None:
    global _client, _client_lock

    client, _client, _client_lock = _client, None, None
    if client is not None:
        await client.aclose()
        logger.info("Redis client closed")


@health_check_with_timeout(timeout=3.0, component="redis", critical=False)
async def check_redis_health() -> dict[str, Any]:
    client = await get_redis_pool()
    await client.ping()
    return {"max_connections": settings.redis_pool_max_connections}
