import json
import sys

import pytest
import structlog

from servicepulse import cli


@pytest.fixture(autouse=True)
def _quiet_logging(monkeypatch):
    monkeypatch.setattr(cli, "configure_logging", lambda *args, **kwargs: None)
    monkeypatch.setenv("SERVICEPULSE_CONFIG", "/nonexistent/servicepulse.yaml")
    structlog.configure(logger_factory=structlog.PrintLoggerFactory(file=sys.stderr))
    yield
    structlog.reset_defaults()


def test_test_command_passes(local_server, capsys):
    code = cli.main(["test", f"{local_server}/ok", "--expect", '{"statusCode": 200}'])
    out = capsys.readouterr().out
    assert code == 0
    assert "Test Result: PASSED" in out
    assert "1/1 passed" in out


def test_test_command_json_output_and_failure(local_server, capsys):
    code = cli.main(["test", f"{local_server}/error", "--json"])
    payload = json.loads(capsys.readouterr().out)
    assert code == 1
    assert payload["testStatus"] == "FAIL"
    assert payload["response"]["statusCode"] == 500


def test_test_command_sends_headers_and_body(local_server, server_state):
    code = cli.main(
        ["test", f"{local_server}/echo", "-X", "post", "-H", "X-Trace: abc", "--body", "payload"]
    )
    assert code == 0
    assert server_state.last_request["method"] == "POST"
    assert server_state.last_request["body"] == "payload"
    assert server_state.last_request["headers"]["x-trace"] == "abc"


def test_bad_header_is_usage_error(local_server, capsys):
    code = cli.main(["test", f"{local_server}/ok", "-H", "no-colon"])
    assert code == 2
    assert "Invalid header" in capsys.readouterr().err


def test_check_command(local_server, unreachable_url, capsys):
    assert cli.main(["check", f"{local_server}/ok"]) == 0
    assert "is UP" in capsys.readouterr().out
    assert cli.main(["check", unreachable_url, "--timeout", "2000"]) == 1
    assert "is DOWN" in capsys.readouterr().out
