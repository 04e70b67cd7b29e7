"""Command-line access to ServicePulse.

Usage:
    servicepulse test https://api.example.com/users --expect '{"statusCode": 200}'
    servicepulse test https://api.example.com/users -X POST -H "Authorization: Bearer t" --body '{"a": 1}'
    servicepulse check https://api.example.com/health
    servicepulse serve
"""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

import httpx

from servicepulse.agents.report import render_health_report, render_test_report
from servicepulse.api_testing import HTTPTestExecutor, TestRequest, ValidationSpec
from servicepulse.api_testing.models import HTTP_METHODS
from servicepulse.config import load_config
from servicepulse.health import HealthMonitor, HealthStatus
from servicepulse.logging_config import configure_logging


def _parse_headers(items: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for item in items:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header {item!r}, expected 'Name: value'")
        headers[name.strip()] = value.strip()
    return headers


def _print(payload: dict[str, Any], text: str, as_json: bool) -> None:
    if as_json:
        print(json.dumps(payload, indent=2, ensure_ascii=False))
    else:
        print(text)


async def _run_test(args: argparse.Namespace, timeout_ms: int) -> int:
    request = TestRequest(
        url=args.url,
        method=args.method,
        headers=_parse_headers(args.header),
        body=args.body,
        expectations=ValidationSpec.from_dict(json.loads(args.expect) if args.expect else None),
        timeout_ms=args.timeout or timeout_ms,
    )
    async with httpx.AsyncClient() as client:
        result = await HTTPTestExecutor(client).execute(request)
    _print(result.to_dict(), render_test_report(result), args.json)
    return 0 if result.passed else 1


async def _run_check(args: argparse.Namespace, timeout_ms: int) -> int:
    async with httpx.AsyncClient() as client:
        monitor = HealthMonitor(client, timeout_ms=args.timeout or timeout_ms)
        result = await monitor.check(args.url)
    _print(result.to_dict(), render_health_report(args.url, result), args.json)
    return 0 if result.status == HealthStatus.UP else 1


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="servicepulse", description="Cached HTTP API testing and health checks")
    parser.add_argument("--config", default=None, help="Path to a YAML config file")
    sub = parser.add_subparsers(dest="command", required=True)

    test = sub.add_parser("test", help="Run one API test")
    test.add_argument("url")
    test.add_argument("-X", "--method", default="GET", type=str.upper, choices=HTTP_METHODS)
    test.add_argument("-H", "--header", action="append", default=[], help="Request header, 'Name: value'")
    test.add_argument("--body", default=None, help="Request body (ignored for GET/DELETE)")
    test.add_argument("--expect", default=None, help="Expectations as JSON, e.g. '{\"statusCode\": 200}'")
    test.add_argument("--timeout", type=int, default=None, help="Request timeout in milliseconds")
    test.add_argument("--json", action="store_true", help="Print the raw result as JSON")

    check = sub.add_parser("check", help="Check whether an endpoint is UP or DOWN")
    check.add_argument("url")
    check.add_argument("--timeout", type=int, default=None, help="Request timeout in milliseconds")
    check.add_argument("--json", action="store_true", help="Print the raw result as JSON")

    sub.add_parser("serve", help="Run the HTTP service")
    return parser


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)
    config = load_config(args.config)

    if args.command == "serve":
        from servicepulse.server import serve

        serve(config)
        return 0

    configure_logging("WARNING", config.log_format, file=sys.stderr)
    try:
        if args.command == "test":
            return asyncio.run(_run_test(args, config.request_timeout_ms))
        return asyncio.run(_run_check(args, config.request_timeout_ms))
    except ValueError as e:
        print(f"error: {e}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
