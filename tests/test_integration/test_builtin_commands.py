"""Tests for the built-in commands: version, spec and config."""

from __future__ import annotations

import json

import httpx

from schemacli import __version__
from schemacli.app import create_app
from schemacli.config import global_config_path, load_global_config


def _no_requests(request: httpx.Request) -> httpx.Response:
    raise AssertionError(f"unexpected request to {request.url}")


class TestVersion:
    def test_version_command(self, cli_runner) -> None:
        result = cli_runner.invoke(create_app(), ["version"])
        assert result.exit_code == 0
        assert result.stdout == f"schemacli {__version__}\n"

    def test_version_flag(self, cli_runner) -> None:
        result = cli_runner.invoke(create_app(), ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.stdout

    def test_builtins_ignore_bad_env(self, cli_runner) -> None:
        result = cli_runner.invoke(create_app(), ["--env", "staging", "version"])
        assert result.exit_code == 0


class TestSpecCommands:
    def test_list(self, cli_runner, make_app) -> None:
        result = cli_runner.invoke(make_app(_no_requests), ["spec", "list"])
        assert result.exit_code == 0, result.output
        lines = result.stdout.splitlines()
        assert len(lines) == 1
        fields = lines[0].split("\t")
        assert fields[1] == "ledger-openapi.json"
        assert fields[2:] == ["ops=11", "tags=5", "server=https://api.example.com/api/v1"]

    def test_verify_ok(self, cli_runner, make_app) -> None:
        result = cli_runner.invoke(make_app(_no_requests), ["spec", "verify"])
        assert result.exit_code == 0, result.output
        assert result.stdout == "ok\n"

    def test_verify_reports_bad_document(self, cli_runner, make_document) -> None:
        # Building the root app would fail too, so exercise the group directly.
        from schemacli.commands.spec import create_spec_app

        doc = make_document({"paths": {"/x": {"get": {"responses": {}}}}})
        result = cli_runner.invoke(create_spec_app([doc]), ["verify"])
        assert result.exit_code == 7
        assert "missing operationId" in result.stderr


class TestConfigCommands:
    def test_show_defaults(self, cli_runner) -> None:
        result = cli_runner.invoke(create_app(), ["config", "show"])
        assert result.exit_code == 0, result.output
        shown = json.loads(result.stdout)
        assert shown["env"] == "prod"
        assert shown["auth"] == "bearer"
        assert str(global_config_path()) in result.stderr

    def test_set_then_show(self, cli_runner) -> None:
        app = create_app()
        result = cli_runner.invoke(app, ["config", "set", "env", "sandbox"])
        assert result.exit_code == 0, result.output
        assert "Set env = sandbox" in result.stderr
        assert load_global_config().env == "sandbox"

        shown = json.loads(cli_runner.invoke(app, ["config", "show"]).stdout)
        assert shown["env"] == "sandbox"

    def test_set_unknown_key(self, cli_runner) -> None:
        result = cli_runner.invoke(create_app(), ["config", "set", "colour", "red"])
        assert result.exit_code == 2
        assert "Unknown config key" in result.stderr

    def test_set_invalid_value(self, cli_runner) -> None:
        result = cli_runner.invoke(create_app(), ["config", "set", "timeout", "soon"])
        assert result.exit_code == 2
        assert not global_config_path().exists()

    def test_reset_force(self, cli_runner) -> None:
        app = create_app()
        cli_runner.invoke(app, ["config", "set", "timeout", "5"])
        result = cli_runner.invoke(app, ["config", "reset", "--force"])
        assert result.exit_code == 0, result.output
        assert load_global_config().timeout == 30.0

    def test_reset_declined(self, cli_runner) -> None:
        app = create_app()
        cli_runner.invoke(app, ["config", "set", "timeout", "5"])
        result = cli_runner.invoke(app, ["config", "reset"], input="n\n")
        assert result.exit_code == 0
        assert load_global_config().timeout == 5

    def test_config_env_used_by_api_commands(self, cli_runner, make_app) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={})

        cli_runner.invoke(create_app(), ["config", "set", "env", "sandbox"])
        result = cli_runner.invoke(make_app(handler), ["misc", "ping"])
        assert result.exit_code == 0, result.output
        assert seen[0].url.host == "api-sandbox.example.com"
