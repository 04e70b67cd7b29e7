"""Configurable HTTP API tests with multi-rule response validation."""

from .executor import HTTPTestExecutor, cache_key
from .models import ResponseSnapshot, TestRequest, TestResult, ValidationSpec
from .validation import infer_response_type, validate_response

__all__ = [
    "HTTPTestExecutor",
    "ResponseSnapshot",
    "TestRequest",
    "TestResult",
    "ValidationSpec",
    "cache_key",
    "infer_response_type",
    "validate_response",
]
