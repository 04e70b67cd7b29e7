"""UP/DOWN liveness checks with per-target caching and change detection."""

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable

import httpx
import structlog

from ..cache import TTLCache
from ..common import describe_error, utc_now_iso

logger = structlog.get_logger(__name__)

DEFAULT_HEALTH_CACHE_TTL_MS = 300_000
DEFAULT_HEALTH_TIMEOUT_MS = 10_000
DEFAULT_USER_AGENT = "ServicePulse/1.0"


class HealthStatus(str, Enum):
    UNKNOWN = "UNKNOWN"
    UP = "UP"
    DOWN = "DOWN"


@dataclass(frozen=True)
class HealthCacheEntry:
    status: HealthStatus
    timestamp: str
    http_status: int | None = None
    last_error: str | None = None
    # Whether the observation that produced this entry changed the status.
    changed: bool = False


@dataclass(frozen=True)
class HealthCheckResult:
    status: HealthStatus
    cached: bool
    timestamp: str
    cache_age_s: int | None = None
    http_status: int | None = None
    status_changed: bool = False
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "status": self.status.value,
            "cached": self.cached,
            "timestamp": self.timestamp,
        }
        if self.cached:
            out["cacheAge"] = self.cache_age_s
        else:
            out["statusChanged"] = self.status_changed
        if self.http_status is not None:
            out["httpStatus"] = self.http_status
        if self.error:
            out["error"] = self.error
        return out


class HealthMonitor:
    """
    Liveness checker keyed by target URL.

    Status is UP iff the response status is 2xx; transport errors and
    timeouts force DOWN. A change is reported only when a previous status
    exists for the target and differs from the new one.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        *,
        cache_ttl_ms: int = DEFAULT_HEALTH_CACHE_TTL_MS,
        timeout_ms: int = DEFAULT_HEALTH_TIMEOUT_MS,
        user_agent: str = DEFAULT_USER_AGENT,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client
        self.cache_ttl_ms = cache_ttl_ms
        self.timeout_ms = timeout_ms
        self.user_agent = user_agent
        self._cache: TTLCache[str, HealthCacheEntry] = TTLCache(cache_ttl_ms / 1000.0, clock=clock)

    def current_status(self, target_url: str) -> HealthStatus:
        entry, _fresh = self._cache.get(target_url)
        return entry.status if entry is not None else HealthStatus.UNKNOWN

    def last_entry(self, target_url: str) -> HealthCacheEntry | None:
        entry, _fresh = self._cache.get(target_url)
        return entry

    @property
    def targets(self) -> int:
        return len(self._cache)

    async def check(self, target_url: str, cache_ttl_ms: int | None = None) -> HealthCheckResult:
        ttl_ms = self.cache_ttl_ms if cache_ttl_ms is None else cache_ttl_ms
        entry, hit, age = await self._cache.get_or_load(
            target_url,
            lambda: self._probe(target_url),
            ttl_seconds=ttl_ms / 1000.0,
        )
        if hit:
            logger.info("Health cache hit", target_url=target_url, status=entry.status.value, cache_age_s=round(age))
            return HealthCheckResult(
                status=entry.status,
                cached=True,
                timestamp=entry.timestamp,
                cache_age_s=round(age),
            )
        return HealthCheckResult(
            status=entry.status,
            cached=False,
            timestamp=entry.timestamp,
            http_status=entry.http_status,
            status_changed=entry.changed,
            error=entry.last_error,
        )

    async def _probe(self, target_url: str) -> HealthCacheEntry:
        previous = self.last_entry(target_url)
        timestamp = utc_now_iso()
        logger.info("Health cache miss, checking target", target_url=target_url)

        http_status: int | None = None
        error: str | None = None
        try:
            resp = await asyncio.wait_for(
                self.client.get(
                    target_url,
                    headers={"User-Agent": self.user_agent},
                    timeout=self.timeout_ms / 1000.0,
                    follow_redirects=True,
                ),
                timeout=self.timeout_ms / 1000.0,
            )
            http_status = resp.status_code
            status = HealthStatus.UP if resp.is_success else HealthStatus.DOWN
        except Exception as exc:
            if isinstance(exc, asyncio.TimeoutError):
                error = f"TimeoutError: no complete response within {self.timeout_ms}ms"
            else:
                error = describe_error(exc)
            status = HealthStatus.DOWN
            logger.error("Health check failed", target_url=target_url, error=error)

        changed = previous is not None and previous.status != status
        if changed:
            logger.warning(
                "Status change",
                target_url=target_url,
                previous=previous.status.value,
                current=status.value,
            )
        logger.info("Health check completed", target_url=target_url, http_status=http_status, status=status.value)

        return HealthCacheEntry(
            status=status,
            timestamp=timestamp,
            http_status=http_status,
            last_error=error,
            changed=changed,
        )
