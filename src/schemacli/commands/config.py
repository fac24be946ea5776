"""Config commands -- view and modify global configuration.

Provides the ``schemacli config`` sub-command group for reading, updating,
and resetting the user's global configuration file
(:class:`~schemacli.models.GlobalConfig`). Settings are persisted in the
schemacli config directory and supply defaults for the environment, auth
scheme, timeout, token source and schema document directory.
"""

from __future__ import annotations

import json

import typer

from schemacli.exceptions import ConfigError
from schemacli.output import error, info


config_app = typer.Typer(
    help="Configuration management.",
    no_args_is_help=True,
)


@config_app.command("show")
def config_show() -> None:
    """Show current configuration.

    Prints the config file path to stderr and the full configuration as
    JSON to stdout.

    Example::

        schemacli config show
    """
    from schemacli.config import global_config_path, load_global_config

    try:
        config = load_global_config()
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None
    info(f"Config file: {global_config_path()}")
    typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))


@config_app.command("set")
def config_set(
    key: str = typer.Argument(help="Config key (e.g. 'env', 'timeout', 'environments')."),
    value: str = typer.Argument(help="Value to set. 'environments' takes a JSON object."),
) -> None:
    """Set a configuration value.

    The value is coerced to the field's type and the updated config is
    validated against :class:`~schemacli.models.GlobalConfig` before
    saving. An empty string clears optional fields.

    Raises:
        typer.Exit: With code 2 if the key is unknown or the value fails
            validation.

    Example::

        schemacli config set env sandbox
        schemacli config set token_source env:LEDGER_TOKEN
        schemacli config set timeout 10
    """
    from schemacli.config import load_global_config, save_global_config, set_config_value

    try:
        config = set_config_value(load_global_config(), key, value)
    except ConfigError as exc:
        error(str(exc))
        raise typer.Exit(code=2) from None

    save_global_config(config)
    info(f"Set {key} = {value}")


@config_app.command("reset")
def config_reset(
    force: bool = typer.Option(False, "--force", "-f", help="Skip confirmation."),
) -> None:
    """Reset configuration to defaults.

    Replaces the persisted global config with a fresh
    :class:`~schemacli.models.GlobalConfig`. Asks for confirmation unless
    ``--force`` is given.

    Example::

        schemacli config reset --force
    """
    from schemacli.config import save_global_config
    from schemacli.models import GlobalConfig

    if not force:
        confirmed = typer.confirm("Reset all config to defaults?")
        if not confirmed:
            info("Cancelled.")
            raise typer.Exit()

    save_global_config(GlobalConfig())
    info("Configuration reset to defaults.")
