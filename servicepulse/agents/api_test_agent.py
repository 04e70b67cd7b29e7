from __future__ import annotations

import structlog

from ..api_testing import HTTPTestExecutor
from ..api_testing.models import DEFAULT_CACHE_TTL_MS, DEFAULT_TIMEOUT_MS
from .base import AgentResponse
from .instructions import parse_test_instruction
from .report import render_test_report

logger = structlog.get_logger(__name__)


class ApiTestAgent:
    """Runs one API test described by the instruction and reports on it."""

    name = "apiTestAgent"

    def __init__(
        self,
        executor: HTTPTestExecutor,
        *,
        default_cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ):
        self.executor = executor
        self.default_cache_ttl_ms = default_cache_ttl_ms
        self.default_timeout_ms = default_timeout_ms

    async def generate(self, prompt: str) -> AgentResponse:
        request = parse_test_instruction(
            prompt,
            default_cache_ttl_ms=self.default_cache_ttl_ms,
            default_timeout_ms=self.default_timeout_ms,
        )
        logger.info("Running API test", agent=self.name, method=request.method, url=request.url)
        result = await self.executor.execute(request)
        return AgentResponse(
            text=render_test_report(result),
            tool_results=[{"toolName": "api-test", "result": result.to_dict()}],
        )
