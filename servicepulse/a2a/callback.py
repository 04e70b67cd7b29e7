from __future__ import annotations

from typing import Any

import httpx

from .tasks import CallbackTarget


async def push_callback(
    client: httpx.AsyncClient,
    target: CallbackTarget,
    payload: dict[str, Any],
    *,
    timeout_seconds: float = 15.0,
) -> tuple[bool, dict[str, Any]]:
    headers = {
        "Content-Type": "application/json",
        "Authorization": f"Bearer {target.token}",
    }
    try:
        resp = await client.post(target.url, json=payload, headers=headers, timeout=timeout_seconds)
    except Exception as e:
        msg = f"{type(e).__name__}: {e}"
        if target.token:
            msg = msg.replace(target.token, "<redacted>")
        return False, {"ok": False, "error": msg}
    ok = resp.is_success
    info: dict[str, Any] = {"ok": ok, "status_code": resp.status_code}
    if not ok:
        info["error"] = f"callback rejected with HTTP {resp.status_code}"
    return ok, info
