"""
Parsing of structured test instructions.

Accepted forms, tried in order:

1. A JSON object with at least ``url`` (same keys as ``TestRequest.from_dict``).
2. ``Key: value`` lines, e.g.::

       Test this API endpoint:
       URL: https://api.example.com/users
       Method: POST
       Headers: {"Authorization": "Bearer t"}
       Body: {"name": "x"}
       Validate: {"statusCode": 201, "maxResponseTime": 500}

3. Free text: the first http(s) URL, with an HTTP method word if one
   precedes it.
"""

from __future__ import annotations

import json
import re
from typing import Any

from ..api_testing.models import HTTP_METHODS, TestRequest
from ..errors import InstructionError

_URL_RE = re.compile(r"https?://[^\s<>\"'`]+")
_METHOD_RE = re.compile(r"\b(" + "|".join(HTTP_METHODS) + r")\b", re.IGNORECASE)
_FIELD_RE = re.compile(r"^\s*(url|method|headers|body|validate|expectations|cache\s*ttl|timeout)\s*:\s*(.*?)\s*$", re.IGNORECASE)

_FIELD_KEYS = {
    "url": "url",
    "method": "method",
    "headers": "headers",
    "body": "body",
    "validate": "expectations",
    "expectations": "expectations",
    "cachettl": "cacheTTL",
    "timeout": "timeout",
}
_JSON_FIELDS = {"headers", "expectations"}
_INT_FIELDS = {"cacheTTL", "timeout"}


def find_url(text: str) -> str | None:
    match = _URL_RE.search(text or "")
    if not match:
        return None
    return match.group(0).rstrip(".,;:)]}")


def _parse_json_object(text: str) -> dict[str, Any] | None:
    s = (text or "").strip()
    if not s.startswith("{"):
        return None
    try:
        obj = json.loads(s)
    except ValueError:
        return None
    return obj if isinstance(obj, dict) else None


def _parse_fields(text: str) -> dict[str, Any]:
    fields: dict[str, Any] = {}
    for line in (text or "").splitlines():
        match = _FIELD_RE.match(line)
        if not match:
            continue
        key = _FIELD_KEYS[re.sub(r"\s+", "", match.group(1).lower())]
        raw = match.group(2)
        if not raw:
            continue
        if key in _JSON_FIELDS:
            try:
                fields[key] = json.loads(raw)
            except ValueError as exc:
                raise InstructionError(f"{match.group(1)} is not valid JSON: {exc}") from exc
        elif key in _INT_FIELDS:
            digits = re.match(r"\d+", raw)
            if not digits:
                raise InstructionError(f"{match.group(1)} must be a number of milliseconds")
            fields[key] = int(digits.group(0))
        else:
            fields[key] = raw
    return fields


def parse_test_instruction(
    text: str,
    *,
    default_cache_ttl_ms: int,
    default_timeout_ms: int,
) -> TestRequest:
    data = _parse_json_object(text)
    if data is None:
        data = _parse_fields(text)
    if not data.get("url"):
        url = find_url(text)
        if url is None:
            raise InstructionError("No endpoint URL found in the instruction")
        data["url"] = url
        if not data.get("method"):
            before = text[: text.find(url)]
            methods = _METHOD_RE.findall(before)
            if methods:
                data["method"] = methods[-1].upper()
    try:
        return TestRequest.from_dict(
            data,
            default_cache_ttl_ms=default_cache_ttl_ms,
            default_timeout_ms=default_timeout_ms,
        )
    except (TypeError, ValueError) as exc:
        raise InstructionError(str(exc)) from exc
