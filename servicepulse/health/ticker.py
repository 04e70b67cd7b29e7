"""Fixed-interval driver for the health monitor."""

from datetime import datetime, timezone
from typing import Any, Dict, Optional

import structlog
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.interval import IntervalTrigger

from .monitor import HealthCheckResult, HealthMonitor


logger = structlog.get_logger(__name__)

TICK_JOB_ID = "health_tick"


class Ticker:
    """Runs a health check immediately on start, then every ``interval_seconds``."""

    def __init__(self, monitor: HealthMonitor, target_url: str, interval_seconds: float = 60):
        self.monitor = monitor
        self.target_url = target_url
        self.interval_seconds = float(interval_seconds)
        self.scheduler: Optional[AsyncIOScheduler] = None
        self.running = False
        self.tick_count = 0
        self.last_result: Optional[HealthCheckResult] = None

    def start(self):
        """Start ticking. Must be called from a running event loop."""
        if self.running:
            logger.warning("Ticker already running", target_url=self.target_url)
            return

        self.scheduler = AsyncIOScheduler(timezone=timezone.utc)
        self.scheduler.add_job(
            func=self.tick,
            trigger=IntervalTrigger(seconds=self.interval_seconds),
            id=TICK_JOB_ID,
            name=f"Health check {self.target_url}",
            next_run_time=datetime.now(timezone.utc),
            max_instances=1,
            coalesce=True,
        )
        self.scheduler.start()
        self.running = True
        logger.info("Ticker started", target_url=self.target_url, interval_seconds=self.interval_seconds)

    def stop(self):
        """Stop ticking."""
        if not self.running:
            logger.warning("Ticker not running", target_url=self.target_url)
            return

        if self.scheduler is not None:
            self.scheduler.shutdown(wait=False)
            self.scheduler = None
        self.running = False
        logger.info("Ticker stopped", target_url=self.target_url, ticks=self.tick_count)

    async def tick(self) -> Optional[HealthCheckResult]:
        """One fire-and-forget check. Errors are logged and swallowed."""
        self.tick_count += 1
        logger.info("Tick", target_url=self.target_url, tick=self.tick_count)

        try:
            result = await self.monitor.check(self.target_url)
        except Exception as e:
            logger.error("Failed to trigger health check", target_url=self.target_url, error=str(e))
            return None

        self.last_result = result
        return result

    def status(self) -> Dict[str, Any]:
        return {
            "running": self.running,
            "targetUrl": self.target_url,
            "intervalMs": int(self.interval_seconds * 1000),
            "intervalSeconds": self.interval_seconds,
            "ticks": self.tick_count,
            "lastStatus": self.last_result.status.value if self.last_result else None,
        }
