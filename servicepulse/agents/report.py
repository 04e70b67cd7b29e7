"""Human-readable rendering of test and health results."""

from __future__ import annotations

from typing import Any

from ..api_testing.models import TestResult
from ..health.monitor import HealthCheckResult, HealthStatus

MAX_BODY_CHARS = 2000


def _icon(ok: bool) -> str:
    return "✅" if ok else "❌"


def _fmt_ms(value: Any) -> str:
    try:
        return f"{float(value):.0f}ms"
    except (TypeError, ValueError):
        return str(value)


def _validation_lines(validations: dict[str, Any]) -> list[str]:
    lines: list[str] = []
    status = validations.get("statusCode")
    if status:
        lines.append(f"- {_icon(status['passed'])} Status code: expected {status['expected']}, got {status['actual']}")
    ok = validations.get("responseOk")
    if ok:
        lines.append(f"- {_icon(ok['passed'])} Successful response (2xx): got {ok['actual']}")
    timing = validations.get("responseTime")
    if timing:
        lines.append(
            f"- {_icon(timing['passed'])} Response time: {_fmt_ms(timing['actual'])} "
            f"(max {_fmt_ms(timing['maxAllowed'])})"
        )
    for item in validations.get("bodyContains") or []:
        lines.append(f"- {_icon(item['found'])} Body contains {item['text']!r}")
    for item in validations.get("bodyNotContains") or []:
        lines.append(f"- {_icon(item['notFound'])} Body does not contain {item['text']!r}")
    for item in validations.get("headers") or []:
        lines.append(f"- {_icon(item['present'])} Header {item['header']!r} present")
    rtype = validations.get("responseType")
    if rtype:
        lines.append(f"- {_icon(rtype['passed'])} Response type: expected {rtype['expected']}, got {rtype['actual']}")
    return lines


def render_test_report(result: TestResult) -> str:
    verdict = "PASSED" if result.passed else "FAILED"
    lines = [f"{_icon(result.passed)} **Test Result: {verdict}**", ""]

    lines.append("**Request Details:**")
    lines.append(f"- URL: {result.url}")
    lines.append(f"- Method: {result.method}")
    if result.response is not None:
        lines.append(f"- Response Time: {_fmt_ms(result.response.response_time_ms)}")
        lines.append(f"- Status: {result.response.status_code} {result.response.status_text}".rstrip())
    if result.cached:
        lines.append("- Served from cache")
    lines.append("")

    lines.append(f"**Checks:** {result.passed_checks}/{result.total_checks} passed")
    lines.extend(_validation_lines(result.validations))

    if result.error:
        lines.append("")
        lines.append(f"⚠️ **Error:** {result.error}")

    body = result.response.body if result.response is not None else None
    if body:
        fence = "json" if "json" in result.response.media_type.lower() else ""
        shown = body if len(body) <= MAX_BODY_CHARS else body[:MAX_BODY_CHARS] + "\n... (truncated)"
        lines.append("")
        lines.append("**Response Body:**")
        lines.append(f"```{fence}")
        lines.append(shown)
        lines.append("```")

    return "\n".join(lines)


def render_health_report(target_url: str, result: HealthCheckResult) -> str:
    up = result.status == HealthStatus.UP
    lines = [f"{_icon(up)} **{target_url} is {result.status.value}**", ""]
    if result.http_status is not None:
        lines.append(f"- HTTP status: {result.http_status}")
    if result.cached:
        lines.append(f"- Cached result ({result.cache_age_s}s old)")
    lines.append(f"- Checked at: {result.timestamp}")
    if result.status_changed:
        lines.append("- 🚨 Status changed since the previous check")
    if result.error:
        lines.append(f"- ⚠️ Error: {result.error}")
    return "\n".join(lines)
