from __future__ import annotations

import time

import httpx
import structlog
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from servicepulse import __version__
from servicepulse.a2a import AsyncTaskHandler
from servicepulse.agents import AgentRegistry, build_default_registry
from servicepulse.api_testing import HTTPTestExecutor
from servicepulse.cache import TTLCache
from servicepulse.common import utc_now_iso
from servicepulse.config import ServicePulseConfig
from servicepulse.errors import SubmissionError
from servicepulse.health import HealthMonitor, Ticker

logger = structlog.get_logger(__name__)

A2A_ROUTE = "/a2a/agent/{agent_id}"


def create_app(
    config: ServicePulseConfig | None = None,
    *,
    http_client: httpx.AsyncClient | None = None,
    agents: AgentRegistry | None = None,
) -> FastAPI:
    config = config or ServicePulseConfig()
    app = FastAPI(title="ServicePulse", version=__version__)

    owns_client = http_client is None
    client = http_client or httpx.AsyncClient()

    test_cache = TTLCache(config.test_cache_ttl_ms / 1000.0)
    executor = HTTPTestExecutor(client, test_cache)
    monitor = HealthMonitor(
        client,
        cache_ttl_ms=config.health_cache_ttl_ms,
        timeout_ms=config.request_timeout_ms,
    )
    if agents is None:
        agents = build_default_registry(
            executor,
            monitor,
            default_cache_ttl_ms=config.test_cache_ttl_ms,
            default_timeout_ms=config.request_timeout_ms,
            default_target_url=config.health_target_url,
        )
    handler = AsyncTaskHandler(agents, client, callback_timeout_seconds=config.callback_timeout_seconds)
    ticker = (
        Ticker(monitor, config.health_target_url, config.health_check_interval_seconds)
        if config.health_target_url
        else None
    )

    app.state.config = config
    app.state.http_client = client
    app.state.test_cache = test_cache
    app.state.executor = executor
    app.state.monitor = monitor
    app.state.agents = agents
    app.state.handler = handler
    app.state.ticker = ticker
    app.state.started_monotonic = time.monotonic()

    @app.on_event("startup")
    async def _startup() -> None:
        if ticker is not None:
            ticker.start()
        logger.info("ServicePulse started", agents=agents.ids(), health_target_url=config.health_target_url)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        if ticker is not None and ticker.running:
            ticker.stop()
        await handler.wait_idle()
        if owns_client:
            await client.aclose()
        logger.info("ServicePulse stopped")

    @app.get("/health")
    async def health() -> dict:
        return {
            "status": "alive",
            "timestamp": utc_now_iso(),
            "uptime": round(time.monotonic() - app.state.started_monotonic, 3),
            "endpoints": {
                "a2a": [A2A_ROUTE.format(agent_id=agent_id) for agent_id in agents.ids()],
                "status": "/status",
            },
        }

    @app.post(A2A_ROUTE)
    async def submit_task(agent_id: str, request: Request) -> JSONResponse:
        try:
            try:
                body = await request.json()
            except ValueError as exc:
                raise SubmissionError("Request body is not valid JSON") from exc
            ack = await handler.submit(agent_id, body)
        except SubmissionError as e:
            logger.warning("Task submission rejected", agent_id=agent_id, error=e.message)
            return JSONResponse(content=e.to_dict(), status_code=e.status_code)
        except Exception as e:
            logger.error("Critical handler error", agent_id=agent_id, error=str(e))
            return JSONResponse(
                content={
                    "status": "error",
                    "status_code": 500,
                    "message": "Internal Server Error",
                    "data": {"details": str(e)},
                },
                status_code=500,
            )
        return JSONResponse(content=ack, status_code=202)

    @app.get("/tasks/{task_id}")
    async def get_task(task_id: str) -> JSONResponse:
        task = handler.get_task(task_id)
        if task is None:
            return JSONResponse(content={"error": "Task not found or already finished"}, status_code=404)
        return JSONResponse(content=task.to_dict())

    @app.get("/status")
    async def status() -> dict:
        return {
            "service": "servicepulse",
            "version": __version__,
            "agents": agents.ids(),
            "ticker": ticker.status() if ticker is not None else {"running": False, "targetUrl": None},
            "cache": {"testResults": len(test_cache), "healthTargets": monitor.targets},
            "tasksInFlight": handler.in_flight,
        }

    return app
