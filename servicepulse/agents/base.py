from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Protocol

from ..errors import UnknownAgentError


@dataclass(frozen=True)
class AgentResponse:
    text: str
    tool_results: list[dict[str, Any]] = field(default_factory=list)


class ReasoningAgent(Protocol):
    """Turns an instruction into free text plus structured tool output."""

    name: str

    async def generate(self, prompt: str) -> AgentResponse: ...


class AgentRegistry:
    def __init__(self, agents: dict[str, ReasoningAgent] | None = None):
        self._agents: dict[str, ReasoningAgent] = dict(agents or {})

    def register(self, agent_id: str, agent: ReasoningAgent) -> None:
        self._agents[agent_id] = agent

    def get(self, agent_id: str) -> ReasoningAgent:
        agent = self._agents.get(agent_id)
        if agent is None:
            raise UnknownAgentError(agent_id)
        return agent

    def ids(self) -> list[str]:
        return sorted(self._agents)

    def __contains__(self, agent_id: object) -> bool:
        return agent_id in self._agents
