"""Response validation rules.

``validate_response`` is pure: the same response and expectations always give the
same report, and nothing here touches the network.
"""

from __future__ import annotations

from typing import Any

from .models import (
    RULE_BODY_CONTAINS,
    RULE_BODY_NOT_CONTAINS,
    RULE_HEADERS,
    RULE_RESPONSE_OK,
    RULE_RESPONSE_TIME,
    RULE_RESPONSE_TYPE,
    RULE_STATUS_CODE,
    CheckOutcome,
    ResponseSnapshot,
    ValidationReport,
    ValidationSpec,
)


def infer_response_type(media_type: str | None) -> str:
    ct = (media_type or "").lower()
    if "json" in ct:
        return "json"
    if "html" in ct:
        return "html"
    if "xml" in ct:
        return "xml"
    return "text"


def validate_response(response: ResponseSnapshot, spec: ValidationSpec) -> ValidationReport:
    validations: dict[str, Any] = {}
    outcomes: list[CheckOutcome] = []

    def record(slot: str, outcome: CheckOutcome) -> None:
        outcomes.append(outcome)
        validations[slot] = outcome

    def record_many(slot: str, items: list[CheckOutcome]) -> None:
        outcomes.extend(items)
        validations[slot] = items

    status = response.status_code

    if spec.status_code is not None:
        record(
            RULE_STATUS_CODE,
            CheckOutcome(RULE_STATUS_CODE, status == spec.status_code, expected=spec.status_code, actual=status),
        )

    # Both rules are counted; the range outcome takes over the statusCode slot.
    if spec.status_code_range is not None:
        lo, hi = spec.status_code_range
        record(
            RULE_STATUS_CODE,
            CheckOutcome(RULE_STATUS_CODE, lo <= status <= hi, expected=f"{lo}-{hi}", actual=status),
        )

    if spec.max_response_time_ms is not None:
        elapsed = response.response_time_ms
        record(
            RULE_RESPONSE_TIME,
            CheckOutcome(
                RULE_RESPONSE_TIME,
                elapsed <= spec.max_response_time_ms,
                expected=spec.max_response_time_ms,
                actual=elapsed,
            ),
        )

    body = response.body
    if spec.body_contains is not None and body:
        record_many(
            RULE_BODY_CONTAINS,
            [CheckOutcome(RULE_BODY_CONTAINS, token in body, subject=token) for token in spec.body_contains],
        )

    if spec.body_not_contains is not None and body:
        record_many(
            RULE_BODY_NOT_CONTAINS,
            [CheckOutcome(RULE_BODY_NOT_CONTAINS, token not in body, subject=token) for token in spec.body_not_contains],
        )

    if spec.required_headers is not None:
        present = {name.lower() for name in response.headers}
        record_many(
            RULE_HEADERS,
            [CheckOutcome(RULE_HEADERS, name.lower() in present, subject=name) for name in spec.required_headers],
        )

    if spec.response_type is not None:
        actual_type = infer_response_type(response.media_type)
        record(
            RULE_RESPONSE_TYPE,
            CheckOutcome(
                RULE_RESPONSE_TYPE,
                actual_type == spec.response_type,
                expected=spec.response_type,
                actual=actual_type,
            ),
        )

    if not outcomes:
        record(RULE_RESPONSE_OK, CheckOutcome(RULE_RESPONSE_OK, response.ok, expected="200-299", actual=status))

    return ValidationReport(
        validations=validations,
        total_checks=len(outcomes),
        passed_checks=sum(1 for o in outcomes if o.passed),
    )
