"""HTTP API test execution with a read-through result cache."""

from __future__ import annotations

import asyncio
import json
import time
from dataclasses import replace

import httpx
import structlog

from ..cache import TTLCache
from ..common import describe_error, utc_now_iso
from .models import DEFAULT_CACHE_TTL_MS, FAIL, ResponseSnapshot, TestRequest, TestResult
from .validation import validate_response

logger = structlog.get_logger(__name__)

DEFAULT_USER_AGENT = "ServicePulse-APITest/1.0"


def cache_key(request: TestRequest) -> str:
    """
    Key covering everything that can change the outcome of a test: method,
    url, body, headers and expectations.
    """
    return json.dumps(
        [
            request.method,
            request.url,
            request.body,
            sorted((k.lower(), v) for k, v in request.headers.items()),
            request.expectations.to_dict(),
        ],
        sort_keys=True,
        separators=(",", ":"),
    )


def _render_body(raw: str, media_type: str) -> str:
    if "json" not in media_type.lower():
        return raw
    try:
        return json.dumps(json.loads(raw), indent=2, ensure_ascii=False)
    except ValueError:
        return raw


class HTTPTestExecutor:
    """Runs TestRequests against live endpoints.

    At most one outbound request is made per cache key and TTL window:
    concurrent calls for the same key wait on the first one and share its
    result. Failures (transport errors included) are cached too.
    """

    def __init__(
        self,
        client: httpx.AsyncClient,
        cache: TTLCache[str, TestResult] | None = None,
        *,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self.client = client
        self.cache: TTLCache[str, TestResult] = cache if cache is not None else TTLCache(DEFAULT_CACHE_TTL_MS / 1000.0)
        self.user_agent = user_agent

    async def execute(self, request: TestRequest) -> TestResult:
        key = cache_key(request)
        result, hit, age = await self.cache.get_or_load(
            key,
            lambda: self._run(request),
            ttl_seconds=request.cache_ttl_ms / 1000.0,
        )
        if hit:
            logger.info(
                "API test cache hit",
                method=request.method,
                url=request.url,
                test_status=result.status,
                cache_age_s=round(age),
            )
            return replace(result, cached=True)
        return result

    def _request_headers(self, request: TestRequest) -> dict[str, str]:
        headers = dict(request.headers)
        if not any(k.lower() == "user-agent" for k in headers):
            headers["User-Agent"] = self.user_agent
        return headers

    async def _fetch(self, request: TestRequest) -> tuple[httpx.Response, float, str | None]:
        started = time.perf_counter()
        http_request = self.client.build_request(
            request.method,
            request.url,
            headers=self._request_headers(request),
            content=request.body if request.sends_body else None,
            timeout=request.timeout_ms / 1000.0,
        )
        resp = await self.client.send(http_request, stream=True, follow_redirects=True)
        elapsed_ms = round((time.perf_counter() - started) * 1000.0, 3)
        try:
            body = await self._read_body(resp)
        finally:
            await resp.aclose()
        return resp, elapsed_ms, body

    async def _run(self, request: TestRequest) -> TestResult:
        timestamp = utc_now_iso()
        logger.info("API test cache miss, sending request", method=request.method, url=request.url)

        # httpx timeouts apply per connect/read/write step; this bounds the whole exchange
        try:
            resp, elapsed_ms, body = await asyncio.wait_for(self._fetch(request), timeout=request.timeout_ms / 1000.0)
        except Exception as exc:
            if isinstance(exc, asyncio.TimeoutError):
                error = f"TimeoutError: no complete response within {request.timeout_ms}ms"
            else:
                error = describe_error(exc)
            logger.error("API test failed", method=request.method, url=request.url, error=error)
            return TestResult(
                status=FAIL,
                cached=False,
                timestamp=timestamp,
                method=request.method,
                url=request.url,
                request_headers=dict(request.headers),
                response=None,
                validations={},
                total_checks=1,
                passed_checks=0,
                error=error,
            )

        media_type = resp.headers.get("content-type", "")
        snapshot = ResponseSnapshot(
            status_code=resp.status_code,
            status_text=resp.reason_phrase,
            headers={k.lower(): v for k, v in resp.headers.items()},
            body=body,
            response_time_ms=elapsed_ms,
            media_type=media_type,
        )
        report = validate_response(snapshot, request.expectations)

        log = logger.info if report.status != FAIL else logger.warning
        log(
            "API test completed",
            method=request.method,
            url=request.url,
            status_code=resp.status_code,
            elapsed_ms=elapsed_ms,
            test_status=report.status,
            passed_checks=report.passed_checks,
            total_checks=report.total_checks,
        )
        return TestResult(
            status=report.status,
            cached=False,
            timestamp=timestamp,
            method=request.method,
            url=request.url,
            request_headers=dict(request.headers),
            response=snapshot,
            validations=report.validations_dict(),
            total_checks=report.total_checks,
            passed_checks=report.passed_checks,
        )

    async def _read_body(self, resp: httpx.Response) -> str | None:
        try:
            await resp.aread()
            raw = resp.text
        except httpx.TimeoutException:
            raise
        except httpx.HTTPError as exc:
            logger.warning("Could not read response body", url=str(resp.request.url), error=describe_error(exc))
            return None
        return _render_body(raw, resp.headers.get("content-type", ""))
