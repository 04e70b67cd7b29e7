"""Exception types raised at the handler boundary.

Transport failures and validation mismatches are never raised; they are
captured into result values by the executor and the health monitor.
"""

from __future__ import annotations

from typing import Any


class ServicePulseError(Exception):
    """Base class for errors raised by ServicePulse."""


class SubmissionError(ServicePulseError):
    """Inbound task submission could not be accepted."""

    def __init__(self, message: str, *, status_code: int = 400, details: Any = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.details = details if details is not None else message

    def to_dict(self) -> dict[str, Any]:
        return {
            "status": "error",
            "status_code": self.status_code,
            "message": self.message,
            "data": {"details": self.details},
        }


class UnknownAgentError(ServicePulseError):
    def __init__(self, agent_id: str):
        super().__init__(f"Agent '{agent_id}' not found")
        self.agent_id = agent_id


class InstructionError(ServicePulseError):
    """An agent could not interpret the instruction text."""
