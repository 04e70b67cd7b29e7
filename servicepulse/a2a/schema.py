from __future__ import annotations

import json
import uuid
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from ..common import utc_now_iso
from ..errors import SubmissionError

if TYPE_CHECKING:
    from ..agents.base import AgentResponse
    from .tasks import Task

# JSON-RPC methods accepted on the task submission route.
SUPPORTED_METHODS = {"message/send", "message/stream"}


class _Envelope(BaseModel):
    model_config = ConfigDict(extra="allow", populate_by_name=True)


class MessagePart(_Envelope):
    kind: str | None = None
    text: str | None = None


class Message(_Envelope):
    role: str | None = None
    parts: list[MessagePart] = Field(default_factory=list)


class PushNotificationConfig(_Envelope):
    url: str | None = None
    token: str | None = None


class TaskConfiguration(_Envelope):
    push_notification_config: PushNotificationConfig | None = Field(None, alias="pushNotificationConfig")


class TaskParams(_Envelope):
    message: Message | None = None
    context_id: str | None = Field(None, alias="contextId")
    task_id: str | None = Field(None, alias="taskId")
    configuration: TaskConfiguration | None = None


class TaskSubmission(_Envelope):
    jsonrpc: str = "2.0"
    id: str | int | None = None
    method: str | None = None
    params: TaskParams | None = None


class AcceptedSubmission(BaseModel):
    """A submission that passed validation; every field the task needs is present."""

    request_id: str | int | None
    task_id: str
    context_id: str
    prompt: str
    callback_url: str
    callback_token: str


def parse_submission(raw: Any) -> AcceptedSubmission:
    if not isinstance(raw, dict):
        raise SubmissionError("Request body must be a JSON object")
    try:
        submission = TaskSubmission.model_validate(raw)
    except ValidationError as exc:
        details = exc.errors(include_url=False, include_context=False)
        raise SubmissionError("Malformed task submission", details=details) from exc

    if submission.jsonrpc != "2.0":
        raise SubmissionError(f"Unsupported jsonrpc version {submission.jsonrpc!r}")
    if submission.method is not None and submission.method not in SUPPORTED_METHODS:
        raise SubmissionError(f"Unsupported method {submission.method!r}")

    params = submission.params or TaskParams()
    push = params.configuration.push_notification_config if params.configuration else None
    callback_url = (push.url or "").strip() if push else ""
    callback_token = (push.token or "").strip() if push else ""
    if not callback_url or not callback_token:
        raise SubmissionError("Missing pushNotificationConfig in request")

    parts = params.message.parts if params.message else []
    prompt = (parts[0].text or "").strip() if parts else ""
    if not prompt:
        raise SubmissionError("Could not find main prompt in message.parts[0].text")

    return AcceptedSubmission(
        request_id=submission.id,
        task_id=params.task_id or str(uuid.uuid4()),
        context_id=params.context_id or str(uuid.uuid4()),
        prompt=prompt,
        callback_url=callback_url,
        callback_token=callback_token,
    )


def _text_message(text: str) -> dict[str, Any]:
    return {
        "messageId": str(uuid.uuid4()),
        "role": "agent",
        "parts": [{"kind": "text", "text": text}],
        "kind": "message",
    }


def _task_envelope(task: "Task", state: str, text: str, artifacts: list[dict[str, Any]]) -> dict[str, Any]:
    return {
        "jsonrpc": "2.0",
        "id": task.request_id,
        "result": {
            "id": task.task_id,
            "contextId": task.context_id,
            "status": {
                "state": state,
                "timestamp": utc_now_iso(),
                "message": _text_message(text),
            },
            "artifacts": artifacts,
            "history": [],
            "kind": "task",
        },
    }


def build_completed_payload(task: "Task", response: "AgentResponse") -> dict[str, Any]:
    artifacts: list[dict[str, Any]] = [
        {
            "artifactId": str(uuid.uuid4()),
            "name": f"{task.agent_id}Response",
            "parts": [{"kind": "text", "text": response.text}],
        }
    ]
    if response.tool_results:
        artifacts.append(
            {
                "artifactId": str(uuid.uuid4()),
                "name": "ToolResults",
                "parts": [
                    {"kind": "text", "text": r if isinstance(r, str) else json.dumps(r, ensure_ascii=False)}
                    for r in response.tool_results
                ],
            }
        )
    return _task_envelope(task, "completed", response.text, artifacts)


def build_failed_payload(task: "Task", error: str) -> dict[str, Any]:
    return _task_envelope(task, "failed", f"Task failed: {error}", [])
