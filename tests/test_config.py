"""Tests for schemacli.config: paths, persistence and precedence."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from schemacli.config import (
    ENV_SPECS_DIR,
    _atomic_write,
    get_config_dir,
    global_config_path,
    load_global_config,
    resolve_credential,
    resolve_runtime_config,
    resolve_specs_dir,
    save_global_config,
    set_config_value,
)
from schemacli.exceptions import ConfigError
from schemacli.models import GlobalConfig


class TestPaths:
    def test_config_dir_under_xdg(self, isolated_config: Path) -> None:
        assert get_config_dir() == isolated_config / "config" / "schemacli"
        assert get_config_dir().is_dir()

    def test_atomic_write(self, tmp_path: Path) -> None:
        target = tmp_path / "sub" / "file.json"
        _atomic_write(target, "hello")
        assert target.read_text() == "hello"
        assert [p.name for p in target.parent.iterdir()] == ["file.json"]


class TestGlobalConfigPersistence:
    def test_defaults_when_missing(self) -> None:
        config = load_global_config()
        assert config.env == "prod"
        assert set(config.environments) == {"prod", "sandbox"}

    def test_round_trip(self) -> None:
        save_global_config(GlobalConfig(env="sandbox", timeout=5))
        loaded = load_global_config()
        assert loaded.env == "sandbox"
        assert loaded.timeout == 5

    def test_invalid_file(self) -> None:
        global_config_path().write_text("{broken")
        with pytest.raises(ConfigError, match="Invalid global config"):
            load_global_config()


class TestSetConfigValue:
    def test_coerces_types(self) -> None:
        config = set_config_value(GlobalConfig(), "timeout", "12.5")
        config = set_config_value(config, "retry_non_idempotent", "true")
        assert config.timeout == 12.5
        assert config.retry_non_idempotent is True

    def test_environments_json(self) -> None:
        config = set_config_value(
            GlobalConfig(), "environments", json.dumps({"staging": {"api.example.com": "stg"}})
        )
        assert config.environments == {"staging": {"api.example.com": "stg"}}

    def test_empty_clears_optional(self) -> None:
        config = set_config_value(GlobalConfig(base_url="http://x"), "base_url", "")
        assert config.base_url is None

    def test_unknown_key(self) -> None:
        with pytest.raises(ConfigError, match="Unknown config key"):
            set_config_value(GlobalConfig(), "colour", "red")

    def test_invalid_value(self) -> None:
        with pytest.raises(ConfigError, match="Invalid value for 'timeout'"):
            set_config_value(GlobalConfig(), "timeout", "soon")


class TestResolveRuntimeConfig:
    def test_defaults(self) -> None:
        cfg = resolve_runtime_config(GlobalConfig(), {})
        assert cfg.env == "prod"
        assert cfg.auth == "bearer"
        assert cfg.token == ""
        assert cfg.base_url == ""
        assert cfg.timeout == 30.0
        assert cfg.host_rewrites == {}

    def test_flag_beats_env_beats_file(self) -> None:
        file_cfg = GlobalConfig(auth="basic", base_url="http://file")
        environ = {"SCHEMACLI_BASE_URL": "http://env", "SCHEMACLI_AUTH": "bearer"}

        from_env = resolve_runtime_config(file_cfg, environ)
        assert from_env.base_url == "http://env"
        assert from_env.auth == "bearer"

        from_flag = resolve_runtime_config(file_cfg, environ, base_url="http://flag", auth="BASIC")
        assert from_flag.base_url == "http://flag"
        assert from_flag.auth == "basic"

        from_file = resolve_runtime_config(file_cfg, {})
        assert from_file.base_url == "http://file"

    def test_sandbox_host_rewrites(self) -> None:
        cfg = resolve_runtime_config(GlobalConfig(), {"SCHEMACLI_ENV": "sandbox"})
        assert cfg.host_rewrites["api.example.com"] == "api-sandbox.example.com"

    def test_unknown_env(self) -> None:
        with pytest.raises(ConfigError, match="Unknown environment 'staging'"):
            resolve_runtime_config(GlobalConfig(), {}, env="staging")

    def test_unknown_auth(self) -> None:
        with pytest.raises(ConfigError, match="Unknown auth scheme"):
            resolve_runtime_config(GlobalConfig(), {}, auth="digest")

    def test_token_precedence(self) -> None:
        environ = {"SCHEMACLI_TOKEN": "env-token", "MY_TOKEN": "source-token"}
        file_cfg = GlobalConfig(token_source="env:MY_TOKEN")
        assert resolve_runtime_config(file_cfg, environ, token="flag").token == "flag"
        assert resolve_runtime_config(file_cfg, environ).token == "env-token"
        assert resolve_runtime_config(file_cfg, {"MY_TOKEN": " source-token\n"}).token == "source-token"

    def test_timeout_and_retry(self) -> None:
        cfg = resolve_runtime_config(GlobalConfig(retry_non_idempotent=True), {}, timeout=2.5)
        assert cfg.timeout == 2.5
        assert cfg.retry_non_idempotent is True


class TestResolveSpecsDir:
    def test_env_wins(self) -> None:
        environ = {ENV_SPECS_DIR: "/env/specs"}
        assert resolve_specs_dir(GlobalConfig(specs_dir="/cfg"), environ) == "/env/specs"

    def test_config_then_none(self) -> None:
        assert resolve_specs_dir(GlobalConfig(specs_dir="/cfg"), {}) == "/cfg"
        assert resolve_specs_dir(GlobalConfig(), {}) is None


class TestResolveCredential:
    def test_env(self) -> None:
        assert resolve_credential("env:TOK", {"TOK": "abc"}) == "abc"

    def test_env_missing(self) -> None:
        with pytest.raises(ConfigError, match="'TOK' is not set"):
            resolve_credential("env:TOK", {})

    def test_file(self, tmp_path: Path) -> None:
        path = tmp_path / "token"
        path.write_text("  file-token\n")
        assert resolve_credential(f"file:{path}") == "file-token"

    def test_file_missing(self, tmp_path: Path) -> None:
        with pytest.raises(ConfigError, match="not found"):
            resolve_credential(f"file:{tmp_path / 'nope'}")

    def test_unknown_format(self) -> None:
        with pytest.raises(ConfigError, match="Unknown credential source"):
            resolve_credential("keyring:x")
