"""Tests for the HTTP transport."""

from __future__ import annotations

import base64
import json
import threading
from datetime import datetime, timedelta, timezone
from email.utils import format_datetime
from unittest.mock import patch

import httpx
import pytest

from schemacli.client.transport import (
    MAX_ATTEMPTS,
    Transport,
    apply_auth,
    retry_backoff,
    should_retry,
)
from schemacli.exceptions import ConnectionError_, RequestCancelledError
from schemacli.output import OutputManager, set_output


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


class Recorder:
    """MockTransport handler replaying canned statuses and recording requests."""

    def __init__(self, *statuses: int, headers: dict[str, str] | None = None) -> None:
        self.statuses = list(statuses)
        self.headers = headers or {}
        self.requests: list[httpx.Request] = []
        self.bodies: list[bytes] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.bodies.append(request.read())
        status = self.statuses.pop(0) if len(self.statuses) > 1 else self.statuses[0]
        return httpx.Response(status, headers=self.headers, json={"status": status})


class FixedRandom:
    def __init__(self, value: float) -> None:
        self.value = value

    def random(self) -> float:
        return self.value


@pytest.fixture(autouse=True)
def _clean_output():
    """Install a plain output manager so retry/debug lines are predictable."""
    set_output(OutputManager(no_color=True, verbose=True))
    yield


@pytest.fixture(autouse=True)
def _no_sleep():
    with patch("schemacli.client.transport.time.sleep") as sleep:
        yield sleep


def _transport(handler, **kwargs) -> Transport:
    return Transport(transport=httpx.MockTransport(handler), **kwargs)


# ---------------------------------------------------------------------------
# Auth
# ---------------------------------------------------------------------------


class TestApplyAuth:
    def test_basic(self) -> None:
        headers = httpx.Headers()
        apply_auth(headers, "clientsecret", "basic")
        expected = "Basic " + base64.b64encode(b"clientsecret:").decode()
        assert headers["Authorization"] == expected

    def test_bearer(self) -> None:
        headers = httpx.Headers()
        apply_auth(headers, "tok", "bearer")
        assert headers["Authorization"] == "Bearer tok"


# ---------------------------------------------------------------------------
# Retry policy
# ---------------------------------------------------------------------------


class TestShouldRetry:
    @pytest.mark.parametrize("method", ["GET", "HEAD", "PUT", "DELETE", "OPTIONS"])
    def test_idempotent_retried(self, method: str) -> None:
        assert should_retry(503, method, False) is True
        assert should_retry(429, method, False) is True

    @pytest.mark.parametrize("method", ["POST", "PATCH"])
    def test_non_idempotent_opt_in(self, method: str) -> None:
        assert should_retry(503, method, False) is False
        assert should_retry(503, method, True) is True

    @pytest.mark.parametrize("status", [200, 400, 404, 409])
    def test_other_statuses(self, status: int) -> None:
        assert should_retry(status, "GET", True) is False


class TestRetryBackoff:
    def test_retry_after_seconds(self) -> None:
        assert retry_backoff(httpx.Headers({"Retry-After": "3"}), 1) == 3.0

    def test_retry_after_zero(self) -> None:
        assert retry_backoff(httpx.Headers({"Retry-After": "0"}), 4) == 0.0

    def test_retry_after_date(self) -> None:
        when = datetime.now(timezone.utc) + timedelta(seconds=30)
        delay = retry_backoff(httpx.Headers({"Retry-After": format_datetime(when, usegmt=True)}), 1)
        assert 25 < delay <= 30

    def test_exponential_without_jitter(self) -> None:
        middle = FixedRandom(0.5)
        assert retry_backoff(httpx.Headers(), 1, rng=middle) == pytest.approx(0.2)
        assert retry_backoff(httpx.Headers(), 2, rng=middle) == pytest.approx(0.4)
        assert retry_backoff(httpx.Headers(), 3, rng=middle) == pytest.approx(0.8)

    def test_capped(self) -> None:
        assert retry_backoff(httpx.Headers(), 20, rng=FixedRandom(0.5)) == pytest.approx(5.0)

    def test_jitter_bounds(self) -> None:
        assert retry_backoff(httpx.Headers(), 1, rng=FixedRandom(0.0)) == pytest.approx(0.1)
        assert retry_backoff(httpx.Headers(), 1, rng=FixedRandom(1.0)) == pytest.approx(0.3)

    def test_garbage_retry_after_falls_back(self) -> None:
        delay = retry_backoff(httpx.Headers({"Retry-After": "soon"}), 1, rng=FixedRandom(0.5))
        assert delay == pytest.approx(0.2)


# ---------------------------------------------------------------------------
# Sending
# ---------------------------------------------------------------------------


class TestTransportSend:
    def test_default_headers(self) -> None:
        recorder = Recorder(200)
        with _transport(recorder, user_agent="schemacli/test") as transport:
            result = transport.send(httpx.Request("GET", "https://api.example.com/x"), None)

        assert result.status == 200
        sent = recorder.requests[0]
        assert sent.headers["User-Agent"] == "schemacli/test"
        assert sent.headers["Accept"] == "application/json"

    def test_keeps_caller_accept(self) -> None:
        recorder = Recorder(200)
        request = httpx.Request("GET", "https://api.example.com/x", headers={"Accept": "text/csv"})
        with _transport(recorder) as transport:
            transport.send(request, None)
        assert recorder.requests[0].headers["Accept"] == "text/csv"

    def test_get_503_retried_until_success(self, _no_sleep) -> None:
        recorder = Recorder(503, 503, 200)
        with _transport(recorder) as transport:
            result = transport.send(httpx.Request("GET", "https://api.example.com/x"), None)
        assert result.status == 200
        assert len(recorder.requests) == 3
        assert _no_sleep.call_count == 2

    def test_attempt_cap(self) -> None:
        recorder = Recorder(503)
        with _transport(recorder) as transport:
            result = transport.send(httpx.Request("GET", "https://api.example.com/x"), None)
        assert result.status == 503
        assert len(recorder.requests) == MAX_ATTEMPTS

    def test_post_503_not_retried(self) -> None:
        recorder = Recorder(503)
        with _transport(recorder) as transport:
            result = transport.send(httpx.Request("POST", "https://api.example.com/x"), b"{}")
        assert result.status == 503
        assert len(recorder.requests) == 1

    def test_post_503_retried_when_enabled(self) -> None:
        recorder = Recorder(503, 200)
        with _transport(recorder, retry_non_idempotent=True) as transport:
            result = transport.send(httpx.Request("POST", "https://api.example.com/x"), b"{}")
        assert result.status == 200
        assert len(recorder.requests) == 2

    def test_body_replayed_on_every_attempt(self) -> None:
        recorder = Recorder(429, 429, 200)
        body = b'{"name":"Ada"}'
        request = httpx.Request(
            "PUT", "https://api.example.com/x", headers={"Content-Type": "application/json"}
        )
        with _transport(recorder) as transport:
            transport.send(request, body)
        assert recorder.bodies == [body, body, body]
        assert all(r.headers["Content-Length"] == str(len(body)) for r in recorder.requests)

    def test_404_returned_not_raised(self) -> None:
        recorder = Recorder(404)
        with _transport(recorder) as transport:
            result = transport.send(httpx.Request("GET", "https://api.example.com/x"), None)
        assert result.status == 404
        assert b'"status": 404' in result.body or b'"status":404' in result.body

    def test_follows_redirects(self) -> None:
        seen: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request.url.path)
            if request.url.path == "/old":
                return httpx.Response(302, headers={"Location": "https://api.example.com/new"})
            return httpx.Response(200, json={"moved": True})

        with _transport(handler) as transport:
            result = transport.send(httpx.Request("GET", "https://api.example.com/old"), None)

        assert result.status == 200
        assert json.loads(result.body) == {"moved": True}
        assert seen == ["/old", "/new"]

    def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        with _transport(handler) as transport:
            with pytest.raises(ConnectionError_, match="connection refused"):
                transport.send(httpx.Request("GET", "https://api.example.com/x"), None)

    def test_network_error_not_retried(self) -> None:
        calls = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(request)
            raise httpx.ReadTimeout("timed out", request=request)

        with _transport(handler) as transport:
            with pytest.raises(ConnectionError_):
                transport.send(httpx.Request("GET", "https://api.example.com/x"), None)
        assert len(calls) == 1

    def test_cancelled_backoff(self) -> None:
        cancel = threading.Event()
        cancel.set()
        recorder = Recorder(503, 200)
        with _transport(recorder, cancel=cancel) as transport:
            with pytest.raises(RequestCancelledError):
                transport.send(httpx.Request("GET", "https://api.example.com/x"), None)
        assert len(recorder.requests) == 1


class TestTracing:
    def test_debug_lines(self, capsys) -> None:
        recorder = Recorder(200)
        request = httpx.Request(
            "GET", "https://api.example.com/x", headers={"Authorization": "Bearer secret"}
        )
        with _transport(recorder, debug=True) as transport:
            transport.send(request, None)

        err = capsys.readouterr().err
        assert "> GET https://api.example.com/x" in err
        assert "> authorization: <redacted>" in err
        assert "secret" not in err
        assert "< 200 OK" in err
        assert "< Content-Type: application/json" in err

    def test_trace_logs_bodies(self, capsys) -> None:
        recorder = Recorder(200)
        with _transport(recorder, trace=True) as transport:
            transport.send(httpx.Request("POST", "https://api.example.com/x"), b'{"in":1}')

        err = capsys.readouterr().err
        assert '{"in":1}' in err
        assert '"status": 200' in err or '"status":200' in err

    def test_silent_by_default(self, capsys) -> None:
        with _transport(Recorder(200)) as transport:
            transport.send(httpx.Request("GET", "https://api.example.com/x"), None)
        assert capsys.readouterr().err == ""
