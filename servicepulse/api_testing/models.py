from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

HTTP_METHODS = ("GET", "POST", "PUT", "DELETE", "PATCH")
# Methods that never carry a request body, whatever the caller supplies.
BODYLESS_METHODS = frozenset({"GET", "DELETE"})
RESPONSE_TYPES = ("json", "text", "html", "xml")

DEFAULT_CACHE_TTL_MS = 300_000
DEFAULT_TIMEOUT_MS = 10_000

PASS = "PASS"
FAIL = "FAIL"

# Validation slot names, as rendered in TestResult.to_dict()["validations"].
RULE_STATUS_CODE = "statusCode"
RULE_RESPONSE_TIME = "responseTime"
RULE_BODY_CONTAINS = "bodyContains"
RULE_BODY_NOT_CONTAINS = "bodyNotContains"
RULE_HEADERS = "headers"
RULE_RESPONSE_TYPE = "responseType"
RULE_RESPONSE_OK = "responseOk"


def _pick(data: dict[str, Any], *names: str) -> Any:
    for name in names:
        if name in data and data[name] is not None:
            return data[name]
    return None


def _str_tuple(value: Any, name: str) -> tuple[str, ...] | None:
    if value is None:
        return None
    if isinstance(value, str):
        return (value,)
    if not isinstance(value, (list, tuple)):
        raise ValueError(f"{name} must be a list of strings")
    return tuple(str(v) for v in value)


@dataclass(frozen=True)
class ValidationSpec:
    """Declared expectations about a response. ``None`` means the rule is not declared."""

    status_code: int | None = None
    status_code_range: tuple[int, int] | None = None
    max_response_time_ms: float | None = None
    body_contains: tuple[str, ...] | None = None
    body_not_contains: tuple[str, ...] | None = None
    required_headers: tuple[str, ...] | None = None
    response_type: str | None = None

    def __post_init__(self) -> None:
        if self.status_code_range is not None:
            rng = tuple(int(x) for x in self.status_code_range)
            if len(rng) != 2:
                raise ValueError("status_code_range must have exactly two items")
            object.__setattr__(self, "status_code_range", rng)
        if self.response_type is not None:
            rtype = str(self.response_type).strip().lower()
            if rtype not in RESPONSE_TYPES:
                raise ValueError(f"response_type must be one of {RESPONSE_TYPES}, got {self.response_type!r}")
            object.__setattr__(self, "response_type", rtype)

    @property
    def is_empty(self) -> bool:
        return all(v is None for v in self.to_dict().values())

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "ValidationSpec":
        if not data:
            return cls()
        if not isinstance(data, dict):
            raise ValueError("expectations must be an object")
        status_code = _pick(data, "statusCode", "status_code")
        max_time = _pick(data, "maxResponseTime", "max_response_time_ms", "max_response_time")
        return cls(
            status_code=int(status_code) if status_code is not None else None,
            status_code_range=_pick(data, "statusCodeRange", "status_code_range"),
            max_response_time_ms=float(max_time) if max_time is not None else None,
            body_contains=_str_tuple(_pick(data, "bodyContains", "body_contains"), "bodyContains"),
            body_not_contains=_str_tuple(_pick(data, "bodyNotContains", "body_not_contains"), "bodyNotContains"),
            required_headers=_str_tuple(_pick(data, "requiredHeaders", "required_headers"), "requiredHeaders"),
            response_type=_pick(data, "responseType", "response_type"),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "statusCodeRange": list(self.status_code_range) if self.status_code_range else None,
            "maxResponseTime": self.max_response_time_ms,
            "bodyContains": list(self.body_contains) if self.body_contains is not None else None,
            "bodyNotContains": list(self.body_not_contains) if self.body_not_contains is not None else None,
            "requiredHeaders": list(self.required_headers) if self.required_headers is not None else None,
            "responseType": self.response_type,
        }


@dataclass(frozen=True)
class TestRequest:
    __test__ = False  # not a pytest test class

    url: str
    method: str = "GET"
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None
    expectations: ValidationSpec = field(default_factory=ValidationSpec)
    cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS
    timeout_ms: int = DEFAULT_TIMEOUT_MS

    def __post_init__(self) -> None:
        url = str(self.url or "").strip()
        if not url:
            raise ValueError("url is required")
        method = str(self.method or "GET").strip().upper()
        if method not in HTTP_METHODS:
            raise ValueError(f"method must be one of {HTTP_METHODS}, got {self.method!r}")
        if int(self.timeout_ms) <= 0:
            raise ValueError("timeout_ms must be positive")
        object.__setattr__(self, "url", url)
        object.__setattr__(self, "method", method)
        object.__setattr__(self, "headers", {str(k): str(v) for k, v in (self.headers or {}).items()})

    @property
    def sends_body(self) -> bool:
        return self.body is not None and self.method not in BODYLESS_METHODS

    @classmethod
    def from_dict(
        cls,
        data: dict[str, Any],
        *,
        default_cache_ttl_ms: int = DEFAULT_CACHE_TTL_MS,
        default_timeout_ms: int = DEFAULT_TIMEOUT_MS,
    ) -> "TestRequest":
        body = data.get("body")
        if isinstance(body, (dict, list)):
            body = json.dumps(body)
        headers = data.get("headers") or {}
        if not isinstance(headers, dict):
            raise ValueError("headers must be an object")
        ttl = _pick(data, "cacheTTL", "cache_ttl_ms")
        timeout = _pick(data, "timeout", "timeout_ms")
        return cls(
            url=str(data.get("url") or ""),
            method=str(data.get("method") or "GET"),
            headers=headers,
            body=str(body) if body is not None else None,
            expectations=ValidationSpec.from_dict(_pick(data, "expectations", "validate")),
            cache_ttl_ms=int(ttl) if ttl is not None else default_cache_ttl_ms,
            timeout_ms=int(timeout) if timeout is not None else default_timeout_ms,
        )


@dataclass(frozen=True)
class ResponseSnapshot:
    status_code: int
    status_text: str = ""
    headers: dict[str, str] = field(default_factory=dict)
    body: str | None = None
    response_time_ms: float = 0.0
    media_type: str = ""

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code <= 299

    def to_dict(self) -> dict[str, Any]:
        return {
            "statusCode": self.status_code,
            "statusText": self.status_text,
            "headers": dict(self.headers),
            "body": self.body,
            "responseTime": self.response_time_ms,
        }


@dataclass(frozen=True)
class CheckOutcome:
    """One individual check. ``subject`` is the token or header name for list rules."""

    rule: str
    passed: bool
    expected: Any = None
    actual: Any = None
    subject: str | None = None

    def to_dict(self) -> dict[str, Any]:
        if self.rule == RULE_RESPONSE_TIME:
            return {"maxAllowed": self.expected, "actual": self.actual, "passed": self.passed}
        if self.rule == RULE_BODY_CONTAINS:
            return {"text": self.subject, "found": self.passed}
        if self.rule == RULE_BODY_NOT_CONTAINS:
            return {"text": self.subject, "notFound": self.passed}
        if self.rule == RULE_HEADERS:
            return {"header": self.subject, "present": self.passed}
        return {"expected": self.expected, "actual": self.actual, "passed": self.passed}


@dataclass(frozen=True)
class ValidationReport:
    # rule slot -> CheckOutcome, or a list of them for per-token/per-header rules
    validations: dict[str, Any]
    total_checks: int
    passed_checks: int

    @property
    def failed_checks(self) -> int:
        return self.total_checks - self.passed_checks

    @property
    def status(self) -> str:
        return PASS if self.passed_checks == self.total_checks else FAIL

    def validations_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {}
        for rule, outcome in self.validations.items():
            if isinstance(outcome, list):
                out[rule] = [o.to_dict() for o in outcome]
            else:
                out[rule] = outcome.to_dict()
        return out


@dataclass(frozen=True)
class TestResult:
    __test__ = False  # not a pytest test class

    status: str
    cached: bool
    timestamp: str
    method: str
    url: str
    request_headers: dict[str, str]
    response: ResponseSnapshot | None
    validations: dict[str, Any]
    total_checks: int
    passed_checks: int
    error: str | None = None

    @property
    def failed_checks(self) -> int:
        return self.total_checks - self.passed_checks

    @property
    def passed(self) -> bool:
        return self.status == PASS

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "testStatus": self.status,
            "cached": self.cached,
            "timestamp": self.timestamp,
            "request": {"method": self.method, "url": self.url, "headers": dict(self.request_headers)},
            "totalChecks": self.total_checks,
            "passedChecks": self.passed_checks,
            "failedChecks": self.failed_checks,
        }
        if self.response is not None:
            out["response"] = self.response.to_dict()
            out["validations"] = self.validations
        if self.error:
            out["error"] = self.error
        return out
