"""
Dependency health checks.

A check is an async function returning optional details. Decorated with
health_check_with_timeout it never raises: a timeout or error becomes an
unhealthy ComponentHealth instead.

Components are critical or optional. The database is critical, since no
bill can be computed without it. Redis only carries notifications that are
already fire-and-forget, so losing it leaves the service degraded, not down.
"""

from __future__ import annotations

import asyncio
import functools
import time
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable, Callable

from shared.config.logging import get_logger

logger = get_logger(__name__)


class HealthStatus(str, Enum):
    HEALTHY = "healthy"
    DEGRADED = "degraded"
    UNHEALTHY = "unhealthy"


@dataclass
class ComponentHealth:
    component: str
    status: HealthStatus
    critical: bool = True
    latency_ms: float = 0.0
    error: str | None = None
    details: dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status == HealthStatus.HEALTHY

    def to_dict(self) -> dict[str, Any]:
        body: dict[str, Any] = {
            "status": self.status.value,
            "critical": self.critical,
            "latency_ms": round(self.latency_ms, 2),
        }
        if self.error:
            body["error"] = self.error
        if self.details:
            body["details"] = self.details
        return body


def health_check_with_timeout(
    timeout: float = 5.0,
    component: str | None = None,
    critical: bool = True,
) -> Callable[[Callable[..., Awaitable[dict[str, Any] | None]]], Callable[..., Awaitable[ComponentHealth]]]:
    """
    Usage:

        @health_check_with_timeout(timeout=3.0, component="redis", critical=False)
        async def check_redis_health():
            await pool.ping()
    """

    def decorator(func):
        name = component or func.__name__.removeprefix("check_").removesuffix("_health")

        @functools.wraps(func)
        async def wrapper(*args: Any, **kwargs: Any) -> ComponentHealth:
            started = time.perf_counter()
            try:
                details = await asyncio.wait_for(func(*args, **kwargs), timeout=timeout)
            except asyncio.TimeoutError:
                error = f"no answer within {timeout}s"
            except Exception as e:
                error = str(e) or e.__class__.__name__
            else:
                return ComponentHealth(
                    component=name,
                    status=HealthStatus.HEALTHY,
                    critical=critical,
                    latency_ms=(time.perf_counter() - started) * 1000,
                    details=details or {},
                )

            logger.warning("Health check failed", component=name, critical=critical, error=error)
            return ComponentHealth(
                component=name,
                status=HealthStatus.UNHEALTHY,
                critical=critical,
                latency_ms=(time.perf_counter() - started) * 1000,
                error=error,
            )

        return wrapper

    return decorator


def overall_status(results: list[ComponentHealth]) -> HealthStatus:
    """Unhealthy if a critical component is down, degraded if only optional ones are."""
    if any(not r.ok and r.critical for r in results):
        return HealthStatus.UNHEALTHY
    if any(not r.ok for r in results):
        return HealthStatus.DEGRADED
    return HealthStatus.HEALTHY


async def aggregate_health_checks(checks: list[Awaitable[ComponentHealth]]) -> dict[str, Any]:
    """Run checks concurrently and summarise them."""
    results = list(await asyncio.gather(*checks))
    return {
        "status": overall_status(results).value,
        "components": {r.component: r.to_dict() for r in results},
    }
