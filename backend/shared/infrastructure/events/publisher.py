"""
Low-level publish with size check and retry.

Transient Redis errors are retried with jittered exponential backoff
(REDIS_PUBLISH_MAX_RETRIES attempts in total). Callers that must not fail,
which is every domain publisher, catch what finally escapes.
"""

from __future__ import annotations

import asyncio
import random

import redis.asyncio as redis

from shared.config.settings import settings
from shared.config.logging import get_logger
from .event_types import MAX_EVENT_SIZE
from .event_schema import Event

logger = get_logger(__name__)

MAX_RETRY_DELAY = 10.0

RETRYABLE_ERRORS = (redis.RedisError, OSError)


def calculate_retry_delay_with_jitter(attempt: int, base_delay: float = 0.1) -> float:
    """Random delay in [base_delay, base_delay * 2**attempt], capped at MAX_RETRY_DELAY."""
    ceiling = min(base_delay * 2**attempt, MAX_RETRY_DELAY)
    return random.uniform(base_delay, max(ceiling, base_delay))


def _encode(event: Event) -> str:
    payload = event.to_json()
    size = len(payload.encode("utf-8"))
    if size > MAX_EVENT_SIZE:
        raise ValueError(f"{event.type} event is {size} bytes, limit is {MAX_EVENT_SIZE}")
    return payload


async def publish_event(redis_client: redis.Redis, channel: str, event: Event) -> int:
    """
    Publish one event on one channel.

    Returns the number of subscribers that received it. Raises ValueError
    for an oversized event (never retried) and the last Redis error once
    every attempt has failed.
    """
    payload = _encode(event)
    attempts = max(settings.redis_publish_max_retries, 1)

    for attempt in range(attempts):
        try:
            return await redis_client.publish(channel, payload)
        except RETRYABLE_ERRORS as e:
            if attempt == attempts - 1:
                logger.error(
                    "Giving up publishing event",
                    channel=channel,
                    event_type=event.type,
                    session_id=event.session_id,
                    attempts=attempts,
                    error=str(e),
                )
                raise

            delay = calculate_retry_delay_with_jitter(attempt, settings.redis_publish_retry_delay)
            logger.warning(
                "Publishing event failed, will retry",
                channel=channel,
                event_type=event.type,
                attempt=attempt + 1,
                delay_seconds=round(delay, 3),
                error=str(e),
            )
            await asyncio.sleep(delay)

    raise AssertionError("unreachable")  # pragma: no cover
