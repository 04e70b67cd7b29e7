"""Asynchronous task protocol: accept now, run in the background, call back later."""

from __future__ import annotations

import asyncio
from typing import Any

import httpx
import structlog

from ..agents import AgentRegistry
from ..common import describe_error
from ..errors import SubmissionError
from .callback import push_callback
from .schema import build_completed_payload, build_failed_payload, parse_submission
from .tasks import CallbackTarget, Task, TaskState, TaskStore

logger = structlog.get_logger(__name__)


class AsyncTaskHandler:
    """
    Accepts task submissions for registered agents.

    ``submit`` validates the envelope and returns the acknowledgment without
    awaiting any network I/O. The task then runs on the event loop and ends
    with exactly one callback push, for completed and failed tasks alike.
    """

    def __init__(
        self,
        agents: AgentRegistry,
        client: httpx.AsyncClient,
        *,
        store: TaskStore | None = None,
        callback_timeout_seconds: float = 15.0,
    ):
        self.agents = agents
        self.client = client
        self.store = store if store is not None else TaskStore()
        self.callback_timeout_seconds = callback_timeout_seconds

    async def submit(self, agent_id: str, raw: Any) -> dict[str, Any]:
        """Raises SubmissionError when the envelope is unusable; nothing is started then."""
        accepted = parse_submission(raw)
        if accepted.task_id in self.store:
            raise SubmissionError(f"Task {accepted.task_id} is already in flight", status_code=409)
        task = Task(
            task_id=accepted.task_id,
            context_id=accepted.context_id,
            agent_id=agent_id,
            prompt=accepted.prompt,
            callback=CallbackTarget(url=accepted.callback_url, token=accepted.callback_token),
            request_id=accepted.request_id,
        )
        self.store.add(task)
        task.transition(TaskState.ACCEPTED)

        runner = asyncio.get_running_loop().create_task(self._run(task), name=f"task-{task.task_id}")
        self.store.attach(task.task_id, runner)

        logger.info("Task accepted", task_id=task.task_id, agent_id=agent_id)
        return {
            "status": "success",
            "status_code": 202,
            "message": "request received",
            "task_id": task.task_id,
        }

    async def _run(self, task: Task) -> None:
        try:
            payload = await self._execute(task)
            await self._push(task, payload)
        except asyncio.CancelledError:
            # cancelled before a terminal state: the caller still gets its one callback
            if not task.is_terminal:
                error = "Task cancelled"
                task.transition(TaskState.FAILED, error=error)
                logger.warning("Task cancelled", task_id=task.task_id, agent_id=task.agent_id)
                await self._push(task, build_failed_payload(task, error))
            raise
        finally:
            self.store.discard(task.task_id)

    async def _execute(self, task: Task) -> dict[str, Any]:
        """Run the agent; returns the callback payload for the terminal state reached."""
        task.transition(TaskState.RUNNING)
        logger.info("Task running", task_id=task.task_id, agent_id=task.agent_id)
        try:
            agent = self.agents.get(task.agent_id)
            response = await agent.generate(task.prompt)
            payload = build_completed_payload(task, response)
        except Exception as exc:
            error = describe_error(exc)
            task.transition(TaskState.FAILED, error=error)
            logger.error("Task failed", task_id=task.task_id, agent_id=task.agent_id, error=error)
            return build_failed_payload(task, error)

        task.transition(TaskState.COMPLETED)
        logger.info("Task completed", task_id=task.task_id, agent_id=task.agent_id)
        return payload

    async def _push(self, task: Task, payload: dict[str, Any]) -> None:
        ok, info = await push_callback(
            self.client,
            task.callback,
            payload,
            timeout_seconds=self.callback_timeout_seconds,
        )
        if ok:
            logger.info("Callback delivered", task_id=task.task_id, state=task.state.value)
        else:
            logger.error("Callback push failed", task_id=task.task_id, state=task.state.value, error=info.get("error"))

    def get_task(self, task_id: str) -> Task | None:
        return self.store.get(task_id)

    @property
    def in_flight(self) -> int:
        return len(self.store)

    async def wait_idle(self) -> None:
        await self.store.wait_idle()
