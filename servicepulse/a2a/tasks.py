from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any


class TaskState(str, Enum):
    RECEIVED = "received"
    ACCEPTED = "accepted"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


_TRANSITIONS: dict[TaskState, set[TaskState]] = {
    TaskState.RECEIVED: {TaskState.ACCEPTED, TaskState.FAILED},
    TaskState.ACCEPTED: {TaskState.RUNNING, TaskState.FAILED},
    TaskState.RUNNING: {TaskState.COMPLETED, TaskState.FAILED},
    TaskState.COMPLETED: set(),
    TaskState.FAILED: set(),
}

TERMINAL_STATES = {TaskState.COMPLETED, TaskState.FAILED}


class InvalidTransition(ValueError):
    pass


@dataclass(frozen=True)
class CallbackTarget:
    url: str
    token: str


@dataclass
class Task:
    task_id: str
    context_id: str
    agent_id: str
    prompt: str
    callback: CallbackTarget
    request_id: str | int | None = None
    state: TaskState = TaskState.RECEIVED
    error: str | None = None
    created_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    updated_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    @property
    def is_terminal(self) -> bool:
        return self.state in TERMINAL_STATES

    def transition(self, new_state: TaskState, *, error: str | None = None) -> None:
        if new_state not in _TRANSITIONS[self.state]:
            raise InvalidTransition(f"Task {self.task_id}: {self.state.value} -> {new_state.value} not allowed")
        self.state = new_state
        self.updated_at = datetime.now(timezone.utc)
        if error is not None:
            self.error = error

    def to_dict(self) -> dict[str, Any]:
        # callback token deliberately omitted
        return {
            "taskId": self.task_id,
            "contextId": self.context_id,
            "agentId": self.agent_id,
            "state": self.state.value,
            "error": self.error,
            "createdAt": self.created_at.isoformat(),
            "updatedAt": self.updated_at.isoformat(),
        }


class TaskStore:
    """In-flight tasks keyed by task id, with the asyncio tasks running them."""

    def __init__(self) -> None:
        self._tasks: dict[str, Task] = {}
        self._runners: dict[str, asyncio.Task[None]] = {}

    def __len__(self) -> int:
        return len(self._tasks)

    def __contains__(self, task_id: object) -> bool:
        return task_id in self._tasks

    def add(self, task: Task) -> None:
        if task.task_id in self._tasks:
            raise ValueError(f"Task {task.task_id} is already in flight")
        self._tasks[task.task_id] = task

    def get(self, task_id: str) -> Task | None:
        return self._tasks.get(task_id)

    def attach(self, task_id: str, runner: asyncio.Task[None]) -> None:
        task = self._tasks.get(task_id)
        self._runners[task_id] = runner

        def _done(_runner: asyncio.Task[None]) -> None:
            # a runner cancelled before its first step never reaches its own cleanup
            if self._runners.get(task_id) is runner:
                del self._runners[task_id]
            if task is not None and self._tasks.get(task_id) is task:
                del self._tasks[task_id]

        runner.add_done_callback(_done)

    def runner(self, task_id: str) -> asyncio.Task[None] | None:
        return self._runners.get(task_id)

    def discard(self, task_id: str) -> None:
        self._tasks.pop(task_id, None)

    async def wait_idle(self) -> None:
        while self._runners:
            await asyncio.gather(*list(self._runners.values()), return_exceptions=True)
