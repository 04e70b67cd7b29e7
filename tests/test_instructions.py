import pytest

from servicepulse.agents.instructions import find_url, parse_test_instruction
from servicepulse.errors import InstructionError


def _parse(text):
    return parse_test_instruction(text, default_cache_ttl_ms=300_000, default_timeout_ms=10_000)


def test_key_value_block():
    request = _parse(
        "Test this API endpoint:\n"
        "URL: https://api.example.com/users\n"
        "Method: POST\n"
        'Headers: {"Authorization": "Bearer t"}\n'
        'Body: {"name": "x"}\n'
        'Validate: {"statusCode": 201, "maxResponseTime": 500}\n'
        "Cache TTL: 1000\n"
        "Timeout: 2500ms\n"
    )
    assert request.url == "https://api.example.com/users"
    assert request.method == "POST"
    assert request.headers == {"Authorization": "Bearer t"}
    assert request.body == '{"name": "x"}'
    assert request.expectations.status_code == 201
    assert request.expectations.max_response_time_ms == 500
    assert request.cache_ttl_ms == 1000
    assert request.timeout_ms == 2500


def test_json_instruction():
    request = _parse('{"url": "https://api.example.com/ping", "method": "delete", "validate": {"statusCode": 204}}')
    assert request.method == "DELETE"
    assert request.expectations.status_code == 204
    assert request.cache_ttl_ms == 300_000
    assert request.timeout_ms == 10_000


def test_free_text_picks_method_before_url():
    request = _parse("Please send a PUT to https://api.example.com/items/1. Thanks!")
    assert request.url == "https://api.example.com/items/1"
    assert request.method == "PUT"


def test_free_text_defaults_to_get():
    request = _parse("is https://example.com/health fine?")
    assert request.method == "GET"
    assert request.expectations.is_empty


def test_missing_url_raises():
    with pytest.raises(InstructionError):
        _parse("check the users service please")


def test_bad_json_field_raises():
    with pytest.raises(InstructionError):
        _parse("URL: https://api.example.com\nValidate: {statusCode: 200}")


def test_bad_expectation_values_raise():
    with pytest.raises(InstructionError):
        _parse('URL: https://api.example.com\nValidate: {"responseType": "yaml"}')


def test_find_url_strips_trailing_punctuation():
    assert find_url("see (https://example.com/a).") == "https://example.com/a"
    assert find_url("no link here") is None
