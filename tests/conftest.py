from __future__ import annotations

import json
import threading
import time
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Iterator

import pytest


class _Handler(BaseHTTPRequestHandler):
    hits: dict[str, int] = {}
    last_request: dict[str, object] = {}
    flip_status = 200
    lock = threading.Lock()

    def log_message(self, format: str, *args) -> None:  # noqa: A002
        return

    def _send(self, status: int, headers: dict[str, str], body: bytes) -> None:
        self.send_response(status)
        for k, v in headers.items():
            self.send_header(k, v)
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _send_json(self, status: int, obj: object, headers: dict[str, str] | None = None) -> None:
        body = json.dumps(obj).encode("utf-8")
        self._send(status, {"Content-Type": "application/json", **(headers or {})}, body)

    def _handle(self) -> None:
        path = self.path.split("?", 1)[0]
        n = int(self.headers.get("Content-Length") or "0")
        raw = self.rfile.read(n) if n > 0 else b""
        with self.lock:
            type(self).hits[path] = type(self).hits.get(path, 0) + 1
            type(self).last_request = {
                "method": self.command,
                "path": path,
                "body": raw.decode("utf-8"),
                "headers": {k.lower(): v for k, v in self.headers.items()},
            }

        if path == "/ok":
            self._send_json(200, {"status": "ok", "service": "demo"}, {"X-Request-Id": "req-1"})
            return
        if path == "/created":
            self._send_json(201, {"id": "abc123"})
            return
        if path == "/html":
            html = b"<!doctype html><html><head><title>Demo</title></head><body>Hello</body></html>"
            self._send(200, {"Content-Type": "text/html; charset=utf-8"}, html)
            return
        if path == "/xml":
            self._send(200, {"Content-Type": "application/xml"}, b"<ok>true</ok>")
            return
        if path == "/empty":
            self._send(204, {}, b"")
            return
        if path == "/error":
            self._send_json(500, {"error": "boom"})
            return
        if path == "/badjson":
            self._send(200, {"Content-Type": "application/json"}, b"not json {")
            return
        if path == "/slow":
            time.sleep(0.3)
            self._send_json(200, {"slow": True})
            return
        if path == "/dribble":
            # headers at once, then one body byte every 250ms
            self.send_response(200)
            self.send_header("Content-Type", "text/plain")
            self.send_header("Content-Length", "6")
            self.end_headers()
            try:
                for ch in b"abcdef":
                    self.wfile.write(bytes([ch]))
                    self.wfile.flush()
                    time.sleep(0.25)
            except (BrokenPipeError, ConnectionResetError):
                pass
            return
        if path == "/flip":
            status = type(self).flip_status
            self._send(status, {"Content-Type": "text/plain"}, f"status {status}".encode("utf-8"))
            return
        if path == "/echo":
            self._send_json(200, {"method": self.command, "body": raw.decode("utf-8")})
            return

        self._send(404, {"Content-Type": "text/plain; charset=utf-8"}, b"not found")

    do_GET = _handle
    do_POST = _handle
    do_PUT = _handle
    do_PATCH = _handle
    do_DELETE = _handle


@pytest.fixture(scope="session")
def _local_server() -> Iterator[str]:
    httpd = ThreadingHTTPServer(("127.0.0.1", 0), _Handler)
    httpd.daemon_threads = True
    host, port = httpd.server_address
    thread = threading.Thread(target=httpd.serve_forever, daemon=True)
    thread.start()
    try:
        yield f"http://{host}:{port}"
    finally:
        httpd.shutdown()
        thread.join(timeout=5)
        httpd.server_close()


@pytest.fixture()
def local_server(_local_server: str) -> str:
    _Handler.hits = {}
    _Handler.last_request = {}
    _Handler.flip_status = 200
    return _local_server


@pytest.fixture()
def server_state() -> type[_Handler]:
    return _Handler


@pytest.fixture()
def unreachable_url() -> str:
    # nothing listens on port 1, connections are refused immediately
    return "http://127.0.0.1:1/unreachable"
