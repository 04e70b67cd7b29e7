import httpx
import pytest

from servicepulse.agents import build_default_registry
from servicepulse.agents.report import MAX_BODY_CHARS, render_test_report
from servicepulse.api_testing import HTTPTestExecutor
from servicepulse.api_testing.models import ResponseSnapshot, TestResult
from servicepulse.errors import InstructionError, UnknownAgentError
from servicepulse.health import HealthMonitor


def _registry(client, default_target_url=None):
    return build_default_registry(
        HTTPTestExecutor(client),
        HealthMonitor(client),
        default_cache_ttl_ms=300_000,
        default_timeout_ms=5_000,
        default_target_url=default_target_url,
    )


@pytest.mark.asyncio
async def test_api_test_agent_runs_structured_instruction(local_server):
    prompt = f'Test this API endpoint:\nURL: {local_server}/created\nMethod: POST\nValidate: {{"statusCode": 201}}'
    async with httpx.AsyncClient() as client:
        response = await _registry(client).get("apiTestAgent").generate(prompt)

    assert response.text.startswith("✅ **Test Result: PASSED**")
    assert "- Method: POST" in response.text
    (tool,) = response.tool_results
    assert tool["toolName"] == "api-test"
    assert tool["result"]["testStatus"] == "PASS"
    assert tool["result"]["validations"]["statusCode"] == {"expected": 201, "actual": 201, "passed": True}


@pytest.mark.asyncio
async def test_health_agent_prefers_url_in_prompt(local_server):
    async with httpx.AsyncClient() as client:
        agent = _registry(client, default_target_url="http://127.0.0.1:1/").get("healthAgent")
        response = await agent.generate(f"is {local_server}/ok up?")

    assert f"{local_server}/ok is UP" in response.text
    assert response.tool_results[0]["targetUrl"] == f"{local_server}/ok"


@pytest.mark.asyncio
async def test_health_agent_without_any_target_raises():
    async with httpx.AsyncClient() as client:
        agent = _registry(client).get("healthAgent")
        with pytest.raises(InstructionError):
            await agent.generate("how is everything?")


def test_registry_lookup():
    registry = _registry(httpx.AsyncClient())
    assert registry.ids() == ["apiTestAgent", "healthAgent"]
    assert "apiTestAgent" in registry
    with pytest.raises(UnknownAgentError):
        registry.get("weatherAgent")


def test_report_truncates_long_bodies():
    result = TestResult(
        status="PASS",
        cached=True,
        timestamp="2024-01-01T00:00:00.000Z",
        method="GET",
        url="https://example.com",
        request_headers={},
        validations={"responseOk": {"expected": "2xx", "actual": 200, "passed": True}},
        response=ResponseSnapshot(
            status_code=200,
            status_text="OK",
            headers={},
            body="x" * (MAX_BODY_CHARS + 10),
            response_time_ms=12.4,
            media_type="text/plain",
        ),
        total_checks=1,
        passed_checks=1,
    )
    text = render_test_report(result)
    assert "- Served from cache" in text
    assert "- Response Time: 12ms" in text
    assert "... (truncated)" in text
    assert "x" * (MAX_BODY_CHARS + 1) not in text
