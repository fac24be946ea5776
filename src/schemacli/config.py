"""Persistent settings for schemacli and the per-invocation runtime config.

This module handles all persistent configuration for schemacli:

* **Directory layout** -- XDG Base Directory compliant on Linux/BSD,
  ``~/.schemacli/`` on macOS and Windows. See :func:`get_config_dir` and
  :func:`get_data_dir`.
* **Global config** -- A single :class:`~schemacli.models.GlobalConfig`
  JSON file storing defaults (environment, auth scheme, timeout, token
  source, environment host maps).
* **Precedence resolution** -- :func:`resolve_runtime_config` merges CLI
  flags, environment variables and the global config into the
  :class:`~schemacli.models.RuntimeConfig` used for one invocation.
* **Credential resolution** -- :func:`resolve_credential` reads the token
  from an env var or a file.

Writes go to a temporary file that is then renamed over the target
(:func:`_atomic_write`), so a crash never leaves a half-written config.
"""

from __future__ import annotations

import json
import os
import platform
import tempfile
from pathlib import Path
from typing import Any, Mapping, Optional

from schemacli.exceptions import ConfigError
from schemacli.models import GlobalConfig, RuntimeConfig

_APP_NAME = "schemacli"
_CONFIG_FILENAME = "config.json"

ENV_TOKEN = "SCHEMACLI_TOKEN"
ENV_ENV = "SCHEMACLI_ENV"
ENV_AUTH = "SCHEMACLI_AUTH"
ENV_BASE_URL = "SCHEMACLI_BASE_URL"
ENV_SPECS_DIR = "SCHEMACLI_SPECS_DIR"

AUTH_SCHEMES = ("bearer", "basic")


# --- XDG path resolution ---


def _is_xdg_platform() -> bool:
    """Return True if the platform supports XDG Base Directory spec (Linux/FreeBSD)."""
    return platform.system() == "Linux" or platform.system().endswith("BSD")


def _fallback_base_dir() -> Path:
    """Fallback base directory for non-XDG platforms (macOS, Windows)."""
    return Path.home() / f".{_APP_NAME}"


def _xdg_base(env_var: str, default_segments: tuple[str, ...]) -> Path:
    env_value = os.environ.get(env_var, "")
    if env_value:
        return Path(env_value)
    return Path.home().joinpath(*default_segments)


def get_config_dir() -> Path:
    """Return the configuration directory, creating it if necessary.

    On Linux/BSD: ``$XDG_CONFIG_HOME/schemacli/`` (default
    ``~/.config/schemacli/``). On macOS/Windows: ``~/.schemacli/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_CONFIG_HOME", (".config",)) / _APP_NAME
    else:
        path = _fallback_base_dir()
    path.mkdir(parents=True, exist_ok=True)
    return path


def get_data_dir() -> Path:
    """Return the data directory (crash logs), creating it if necessary.

    On Linux/BSD: ``$XDG_DATA_HOME/schemacli/`` (default
    ``~/.local/share/schemacli/``). On macOS/Windows: ``~/.schemacli/logs/``.
    """
    if _is_xdg_platform():
        path = _xdg_base("XDG_DATA_HOME", (".local", "share")) / _APP_NAME
    else:
        path = _fallback_base_dir() / "logs"
    path.mkdir(parents=True, exist_ok=True)
    return path


# --- Atomic file writes ---


def _atomic_write(path: Path, data: str) -> None:
    """Write data to file atomically using temp file + rename.

    The temporary file lives in the same directory as *path* so that
    ``os.replace`` is an atomic rename on POSIX systems. On any failure the
    temp file is removed.
    """
    path.parent.mkdir(parents=True, exist_ok=True)

    fd = None
    tmp_path: Optional[str] = None
    try:
        fd = tempfile.NamedTemporaryFile(
            mode="w",
            dir=path.parent,
            prefix=f".{path.name}.",
            suffix=".tmp",
            delete=False,
            encoding="utf-8",
        )
        tmp_path = fd.name
        fd.write(data)
        fd.flush()
        os.fsync(fd.fileno())
        fd.close()
        fd = None
        os.replace(tmp_path, path)
    except BaseException:
        if fd is not None:
            fd.close()
        if tmp_path is not None:
            try:
                os.unlink(tmp_path)
            except OSError:
                pass
        raise


# --- Global config ---


def global_config_path() -> Path:
    """Path to the global config file."""
    return get_config_dir() / _CONFIG_FILENAME


def load_global_config() -> GlobalConfig:
    """Load the global configuration from the config directory.

    Returns:
        The deserialised :class:`~schemacli.models.GlobalConfig`, or a
        default instance when the file does not exist.

    Raises:
        ConfigError: If the file exists but contains invalid JSON or fails
            Pydantic validation.
    """
    path = global_config_path()
    if not path.is_file():
        return GlobalConfig()
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
        return GlobalConfig.model_validate(data)
    except (json.JSONDecodeError, ValueError) as exc:
        raise ConfigError(f"Invalid global config at {path}: {exc}") from exc


def save_global_config(config: GlobalConfig) -> None:
    """Persist the global configuration atomically to disk."""
    data = config.model_dump(mode="json")
    _atomic_write(global_config_path(), json.dumps(data, indent=2) + "\n")


def set_config_value(config: GlobalConfig, key: str, value: str) -> GlobalConfig:
    """Return a copy of *config* with the top-level field *key* set from a string.

    The string is coerced by Pydantic to the field's type (``"true"`` for
    booleans, ``"12.5"`` for floats). ``environments`` takes a JSON object.

    Raises:
        ConfigError: For unknown keys or values that fail validation.
    """
    if key not in GlobalConfig.model_fields:
        valid = ", ".join(sorted(GlobalConfig.model_fields))
        raise ConfigError(f"Unknown config key '{key}'. Valid keys: {valid}")

    raw: Any = value
    if key == "environments":
        try:
            raw = json.loads(value)
        except json.JSONDecodeError as exc:
            raise ConfigError(f"environments must be a JSON object: {exc}") from exc
    elif value == "" and GlobalConfig.model_fields[key].default is None:
        raw = None

    data = config.model_dump()
    data[key] = raw
    try:
        return GlobalConfig.model_validate(data)
    except ValueError as exc:
        raise ConfigError(f"Invalid value for '{key}': {exc}") from exc


# --- Precedence resolution ---


def resolve_runtime_config(
    global_config: Optional[GlobalConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
    *,
    token: Optional[str] = None,
    env: Optional[str] = None,
    auth: Optional[str] = None,
    base_url: Optional[str] = None,
    timeout: Optional[float] = None,
    retry_non_idempotent: bool = False,
    pretty: Optional[bool] = None,
    ndjson: bool = False,
    debug: bool = False,
    trace: bool = False,
    print_status: bool = False,
    print_headers: bool = False,
    no_color: bool = False,
) -> RuntimeConfig:
    """Resolve the effective settings for one invocation.

    Precedence (high to low):
        1. CLI flags (the keyword arguments)
        2. Environment variables (``SCHEMACLI_TOKEN``, ``SCHEMACLI_ENV``,
           ``SCHEMACLI_AUTH``, ``SCHEMACLI_BASE_URL``)
        3. Global config (``~/.config/schemacli/config.json``), including
           its ``token_source``
        4. Defaults

    Args:
        global_config: Loaded global config; read from disk when ``None``.
        environ: Environment mapping; ``os.environ`` when ``None``.

    Returns:
        The resolved :class:`~schemacli.models.RuntimeConfig`.

    Raises:
        ConfigError: If the environment name is not configured, the auth
            scheme is unknown, or the token source cannot be read.
    """
    cfg = global_config if global_config is not None else load_global_config()
    environ = os.environ if environ is None else environ

    resolved_env = _first(env, environ.get(ENV_ENV), cfg.env) or "prod"
    if resolved_env not in cfg.environments:
        names = ", ".join(sorted(cfg.environments))
        raise ConfigError(f"Unknown environment '{resolved_env}'. Configured: {names}")

    resolved_auth = (_first(auth, environ.get(ENV_AUTH), cfg.auth) or "bearer").lower()
    if resolved_auth not in AUTH_SCHEMES:
        raise ConfigError(f"Unknown auth scheme '{resolved_auth}' (expected bearer or basic)")

    resolved_token = _first(token, environ.get(ENV_TOKEN))
    if not resolved_token and cfg.token_source:
        resolved_token = resolve_credential(cfg.token_source, environ)

    resolved_base_url = _first(base_url, environ.get(ENV_BASE_URL), cfg.base_url)

    return RuntimeConfig(
        env=resolved_env,
        auth=resolved_auth,
        token=(resolved_token or "").strip(),
        base_url=(resolved_base_url or "").strip(),
        timeout=timeout if timeout is not None else cfg.timeout,
        retry_non_idempotent=retry_non_idempotent or cfg.retry_non_idempotent,
        host_rewrites=dict(cfg.environments[resolved_env]),
        pretty=pretty,
        ndjson=ndjson,
        debug=debug,
        trace=trace,
        print_status=print_status,
        print_headers=print_headers,
        no_color=no_color,
    )


def resolve_specs_dir(
    global_config: Optional[GlobalConfig] = None,
    environ: Optional[Mapping[str, str]] = None,
) -> Optional[str]:
    """Return the schema document directory (env var, then config), or ``None``."""
    cfg = global_config if global_config is not None else load_global_config()
    environ = os.environ if environ is None else environ
    return _first(environ.get(ENV_SPECS_DIR), cfg.specs_dir)


def _first(*values: Optional[str]) -> Optional[str]:
    for value in values:
        if value:
            return value
    return None


# --- Credential source resolution ---


def resolve_credential(source: str, environ: Optional[Mapping[str, str]] = None) -> str:
    """Resolve a credential from its source descriptor.

    Supported formats:
        - ``"env:VAR_NAME"`` -- reads the environment variable
        - ``"file:/path/to/file"`` -- reads file content, stripped of whitespace

    Raises:
        ConfigError: If the source can't be resolved.
    """
    environ = os.environ if environ is None else environ

    if source.startswith("env:"):
        var_name = source[4:]
        value = environ.get(var_name)
        if value is None:
            raise ConfigError(
                f"Environment variable '{var_name}' is not set (source: {source})"
            )
        return value

    if source.startswith("file:"):
        path = Path(source[5:]).expanduser()
        if not path.is_file():
            raise ConfigError(f"Credential file not found: {path} (source: {source})")
        try:
            return path.read_text(encoding="utf-8").strip()
        except OSError as exc:
            raise ConfigError(f"Cannot read credential file {path}: {exc}") from exc

    raise ConfigError(f"Unknown credential source format: {source}")
