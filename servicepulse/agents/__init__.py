"""Tool-driven agents behind the task protocol."""

from typing import Optional

from ..api_testing import HTTPTestExecutor
from ..health import HealthMonitor
from .api_test_agent import ApiTestAgent
from .base import AgentRegistry, AgentResponse, ReasoningAgent
from .health_agent import HealthAgent


def build_default_registry(
    executor: HTTPTestExecutor,
    monitor: HealthMonitor,
    *,
    default_cache_ttl_ms: int,
    default_timeout_ms: int,
    default_target_url: Optional[str] = None,
) -> AgentRegistry:
    registry = AgentRegistry()
    registry.register(
        ApiTestAgent.name,
        ApiTestAgent(executor, default_cache_ttl_ms=default_cache_ttl_ms, default_timeout_ms=default_timeout_ms),
    )
    registry.register(HealthAgent.name, HealthAgent(monitor, default_target_url=default_target_url))
    return registry


__all__ = [
    "AgentRegistry",
    "AgentResponse",
    "ApiTestAgent",
    "HealthAgent",
    "ReasoningAgent",
    "build_default_registry",
]
