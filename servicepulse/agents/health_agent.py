from __future__ import annotations

from typing import Optional

import structlog

from ..errors import InstructionError
from ..health import HealthMonitor
from .base import AgentResponse
from .instructions import find_url
from .report import render_health_report

logger = structlog.get_logger(__name__)


class HealthAgent:
    """Reports UP/DOWN for the URL named in the instruction, or the configured target."""

    name = "healthAgent"

    def __init__(self, monitor: HealthMonitor, *, default_target_url: Optional[str] = None):
        self.monitor = monitor
        self.default_target_url = default_target_url

    async def generate(self, prompt: str) -> AgentResponse:
        target_url = find_url(prompt) or self.default_target_url
        if not target_url:
            raise InstructionError("No target URL in the instruction and no default target configured")
        logger.info("Checking health", agent=self.name, target_url=target_url)
        result = await self.monitor.check(target_url)
        return AgentResponse(
            text=render_health_report(target_url, result),
            tool_results=[{"toolName": "health-check", "targetUrl": target_url, "result": result.to_dict()}],
        )
