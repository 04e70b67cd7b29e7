"""Agent-to-agent task protocol with push-notification callbacks."""

from .handler import AsyncTaskHandler
from .schema import parse_submission
from .tasks import CallbackTarget, Task, TaskState, TaskStore

__all__ = ["AsyncTaskHandler", "CallbackTarget", "Task", "TaskState", "TaskStore", "parse_submission"]
