"""Tests for the output formatting system."""

from __future__ import annotations

import json

import httpx
import pytest

from schemacli.output import (
    REDACTED,
    OutputManager,
    get_output,
    redact_headers,
    reset_output,
    set_output,
)


class TestPrintHttp:
    def test_body_to_stdout_only(self, capsys) -> None:
        out = OutputManager(pretty=False, no_color=True)
        out.print_http(200, httpx.Headers({"X-A": "1"}), b'{"a":1}')
        captured = capsys.readouterr()
        assert captured.out == '{"a":1}\n'
        assert captured.err == ""

    def test_status_and_headers_to_stderr(self, capsys) -> None:
        out = OutputManager(pretty=False, print_status=True, print_headers=True, no_color=True)
        headers = httpx.Headers({"X-Request-Id": "r1", "Set-Cookie": "s=1"})
        out.print_http(201, headers, b"{}")
        captured = capsys.readouterr()
        assert captured.out == "{}\n"
        assert "201\n" in captured.err
        assert "x-request-id: r1" in captured.err
        assert f"set-cookie: {REDACTED}" in captured.err

    def test_pretty(self, capsys) -> None:
        out = OutputManager(pretty=True, no_color=True)
        out.print_http(200, None, b'{"a":{"b":1}}')
        assert capsys.readouterr().out == json.dumps({"a": {"b": 1}}, indent=2) + "\n"

    def test_pretty_non_json_passthrough(self, capsys) -> None:
        out = OutputManager(pretty=True, no_color=True)
        out.print_http(200, None, b"plain text")
        assert capsys.readouterr().out == "plain text\n"

    def test_empty_body(self, capsys) -> None:
        OutputManager(pretty=False, no_color=True).print_http(204, None, b"")
        assert capsys.readouterr().out == ""


class TestPrintHttpError:
    def test_status_line_and_body_to_stderr(self, capsys) -> None:
        out = OutputManager(pretty=False, no_color=True)
        out.print_http_error(404, None, b'{"error":"not found"}')
        captured = capsys.readouterr()
        assert captured.out == ""
        assert captured.err.startswith("HTTP 404 Not Found\n")
        assert '{"error":"not found"}' in captured.err


class TestNdjson:
    def test_one_item_per_line(self, capsys) -> None:
        OutputManager(no_color=True).print_ndjson([{"id": 1}, {"id": 2}, "x"])
        assert capsys.readouterr().out == '{"id":1}\n{"id":2}\n"x"\n'


class TestDiagnostics:
    def test_error_plain(self, capsys) -> None:
        OutputManager(no_color=True).error("boom")
        assert capsys.readouterr().err == "Error: boom\n"

    def test_debug_only_when_verbose(self, capsys) -> None:
        OutputManager(no_color=True).debug("hidden")
        OutputManager(no_color=True, verbose=True).debug("shown")
        err = capsys.readouterr().err
        assert "hidden" not in err
        assert "[debug] shown" in err

    def test_no_color_env(self, monkeypatch: pytest.MonkeyPatch, capsys) -> None:
        monkeypatch.setenv("NO_COLOR", "1")
        OutputManager().warning("careful")
        assert capsys.readouterr().err == "Warning: careful\n"


class TestRedactHeaders:
    def test_credentials_redacted(self) -> None:
        headers = httpx.Headers({"Authorization": "Bearer x", "Accept": "application/json"})
        assert dict(redact_headers(headers)) == {
            "authorization": REDACTED,
            "accept": "application/json",
        }


class TestGlobalInstance:
    def test_set_and_reset(self) -> None:
        manager = OutputManager(no_color=True)
        set_output(manager)
        assert get_output() is manager
        reset_output()
        assert get_output() is not manager
