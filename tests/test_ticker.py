import asyncio

import httpx
import pytest
from structlog.testing import capture_logs

from servicepulse.health import HealthCheckResult, HealthMonitor, HealthStatus, Ticker
from servicepulse.health.ticker import TICK_JOB_ID


class _FailingMonitor:
    async def check(self, target_url, cache_ttl_ms=None):
        raise RuntimeError("monitor exploded")


@pytest.mark.asyncio
async def test_start_runs_first_tick_immediately(local_server, server_state):
    async with httpx.AsyncClient() as client:
        monitor = HealthMonitor(client)
        ticker = Ticker(monitor, f"{local_server}/ok", interval_seconds=3600)
        ticker.start()
        try:
            for _ in range(100):
                if ticker.last_result is not None:
                    break
                await asyncio.sleep(0.02)
        finally:
            ticker.stop()

    assert ticker.tick_count == 1
    assert ticker.last_result.status == HealthStatus.UP
    assert server_state.hits["/ok"] == 1
    assert ticker.running is False


@pytest.mark.asyncio
async def test_start_and_stop_are_idempotent_with_warnings(local_server):
    async with httpx.AsyncClient() as client:
        ticker = Ticker(HealthMonitor(client), f"{local_server}/ok", interval_seconds=3600)
        with capture_logs() as logs:
            ticker.start()
            ticker.start()
            ticker.stop()
            ticker.stop()

    events = [e["event"] for e in logs if e["log_level"] == "warning"]
    assert events == ["Ticker already running", "Ticker not running"]
    assert ticker.scheduler is None


@pytest.mark.asyncio
async def test_tick_swallows_monitor_errors():
    ticker = Ticker(_FailingMonitor(), "http://target.test/health")
    with capture_logs() as logs:
        result = await ticker.tick()

    assert result is None
    assert ticker.tick_count == 1
    assert ticker.last_result is None
    assert any(e["event"] == "Failed to trigger health check" for e in logs)


@pytest.mark.asyncio
async def test_status_reports_interval_and_last_status(local_server):
    async with httpx.AsyncClient() as client:
        ticker = Ticker(HealthMonitor(client), f"{local_server}/error", interval_seconds=60)
        assert ticker.status()["lastStatus"] is None
        await ticker.tick()

    status = ticker.status()
    assert status == {
        "running": False,
        "targetUrl": f"{local_server}/error",
        "intervalMs": 60_000,
        "intervalSeconds": 60.0,
        "ticks": 1,
        "lastStatus": "DOWN",
    }


class _FlakyMonitor:
    """Fails the first check, succeeds afterwards."""

    def __init__(self):
        self.calls = 0

    async def check(self, target_url, cache_ttl_ms=None):
        self.calls += 1
        if self.calls == 1:
            raise RuntimeError("first check exploded")
        return HealthCheckResult(status=HealthStatus.UP, cached=False, timestamp="2026-01-01T00:00:00.000Z")


async def _wait_for_ticks(ticker, n, timeout=5.0):
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while ticker.tick_count < n and loop.time() < deadline:
        await asyncio.sleep(0.02)


@pytest.mark.asyncio
async def test_ticks_repeat_on_interval():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text="ok"))
    async with httpx.AsyncClient(transport=transport) as client:
        ticker = Ticker(HealthMonitor(client, cache_ttl_ms=0), "http://target.test/health", interval_seconds=0.05)
        ticker.start()
        try:
            await _wait_for_ticks(ticker, 3)
        finally:
            ticker.stop()

    assert ticker.tick_count >= 3
    assert ticker.last_result.status == HealthStatus.UP


@pytest.mark.asyncio
async def test_failing_ticks_do_not_stop_the_schedule():
    ticker = Ticker(_FailingMonitor(), "http://target.test/health", interval_seconds=0.05)
    ticker.start()
    try:
        await _wait_for_ticks(ticker, 3)
        assert ticker.running is True
        assert ticker.scheduler.get_job(TICK_JOB_ID) is not None
    finally:
        ticker.stop()

    assert ticker.tick_count >= 3
    assert ticker.last_result is None


@pytest.mark.asyncio
async def test_tick_after_failure_records_result():
    monitor = _FlakyMonitor()
    ticker = Ticker(monitor, "http://target.test/health", interval_seconds=0.05)
    ticker.start()
    try:
        await _wait_for_ticks(ticker, 2)
    finally:
        ticker.stop()

    assert monitor.calls >= 2
    assert ticker.last_result is not None
    assert ticker.status()["lastStatus"] == "UP"
