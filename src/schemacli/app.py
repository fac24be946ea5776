"""Typer application factory and CLI entry point for schemacli.

This module wires together the top-level Typer application: the root
callback that resolves per-invocation settings, the built-in sub-commands
(``spec``, ``config``, ``version``), and the API command groups generated
from the loaded schema documents.

The :func:`main` function is the console-script entry point declared in
``pyproject.toml``. It installs signal handlers, loads the schema documents,
builds the application and invokes it. Unhandled exceptions are written to a
crash log under the data directory.

See Also:
    :mod:`schemacli.config`: Global configuration and precedence resolution.
    :mod:`schemacli.generator`: Command generation from schema documents.
"""

from __future__ import annotations

import signal
import sys
import threading
import traceback
from datetime import datetime
from typing import Any, Iterable, Optional

import click
import httpx
import typer

from schemacli import __version__
from schemacli.exit_codes import EXIT_CANCELLED, EXIT_GENERIC_FAILURE
from schemacli.models import SpecDocument

BUILTIN_COMMANDS = ("config", "spec", "version")

_cancel_event = threading.Event()


def _version_callback(value: bool) -> None:
    """Print version and exit when --version is passed."""
    if value:
        typer.echo(f"schemacli {__version__}")
        raise typer.Exit()


def create_app(
    documents: Optional[Iterable[SpecDocument]] = None,
    http_transport: Optional[httpx.BaseTransport] = None,
    cancel: Optional[threading.Event] = None,
) -> typer.Typer:
    """Build the root application for *documents*.

    Args:
        documents: Loaded schema documents; one command group is generated
            per tag. ``None`` builds only the built-in commands.
        http_transport: Optional :class:`httpx.BaseTransport` handed to the
            :class:`~schemacli.client.transport.Transport` (tests use
            :class:`httpx.MockTransport`).
        cancel: Event that aborts backoff and inter-page waits.

    Returns:
        The configured :class:`typer.Typer` application.

    Raises:
        GenerationError: If the documents cannot be turned into commands.
    """
    from schemacli.commands.config import config_app
    from schemacli.commands.spec import create_spec_app
    from schemacli.generator import build_command_tree

    docs = list(documents or [])

    app = typer.Typer(
        name="schemacli",
        help="Call OpenAPI-described HTTP APIs from the command line.",
        no_args_is_help=True,
        add_completion=False,
        rich_markup_mode="rich",
    )

    @app.callback()
    def main_callback(
        ctx: typer.Context,
        version: bool = typer.Option(
            False,
            "--version",
            callback=_version_callback,
            is_eager=True,
            help="Show version and exit.",
        ),
        token: Optional[str] = typer.Option(
            None, "--token", help="API token (or set SCHEMACLI_TOKEN)."
        ),
        env: Optional[str] = typer.Option(
            None, "--env", help="Environment: prod or sandbox (or set SCHEMACLI_ENV)."
        ),
        auth: Optional[str] = typer.Option(
            None, "--auth", help="Auth scheme: bearer or basic (or set SCHEMACLI_AUTH)."
        ),
        base_url: Optional[str] = typer.Option(
            None, "--base-url", help="Override the API base URL (or set SCHEMACLI_BASE_URL)."
        ),
        timeout: Optional[float] = typer.Option(
            None, "--timeout", help="HTTP timeout in seconds."
        ),
        pretty: bool = typer.Option(False, "--pretty", help="Pretty-print JSON output."),
        no_pretty: bool = typer.Option(
            False, "--no-pretty", help="Disable pretty-printing of JSON output."
        ),
        ndjson: bool = typer.Option(
            False, "--ndjson", help="With --all, print one item per line."
        ),
        debug: bool = typer.Option(
            False, "--debug", help="Log HTTP requests and responses to stderr."
        ),
        trace: bool = typer.Option(
            False, "--trace", help="Like --debug, and also log bodies."
        ),
        status: bool = typer.Option(
            False, "--status", help="Print the HTTP status code to stderr."
        ),
        headers: bool = typer.Option(
            False, "--headers", help="Print response headers to stderr."
        ),
        retry_non_idempotent: bool = typer.Option(
            False, "--retry-non-idempotent", help="Also retry POST/PATCH on 429/5xx."
        ),
        no_color: bool = typer.Option(False, "--no-color", help="Disable color output."),
    ) -> None:
        """Root callback executed before every sub-command.

        Installs the global :class:`~schemacli.output.OutputManager` and,
        for generated API commands, resolves the
        :class:`~schemacli.models.RuntimeConfig`, opens the
        :class:`~schemacli.client.transport.Transport` and stores both as a
        :class:`~schemacli.runtime.Runtime` on the context.
        """
        from schemacli.client.transport import Transport
        from schemacli.config import resolve_runtime_config
        from schemacli.exceptions import SchemacliError
        from schemacli.output import OutputManager, set_output
        from schemacli.runtime import RUNTIME_KEY, Runtime

        if pretty and no_pretty:
            raise click.UsageError("--pretty and --no-pretty are mutually exclusive", ctx=ctx)
        pretty_mode: Optional[bool] = None
        if pretty:
            pretty_mode = True
        elif no_pretty:
            pretty_mode = False

        output = OutputManager(
            pretty=pretty_mode,
            ndjson=ndjson,
            print_status=status,
            print_headers=headers,
            no_color=no_color,
            verbose=debug or trace,
        )
        set_output(output)
        ctx.ensure_object(dict)

        if ctx.invoked_subcommand in BUILTIN_COMMANDS:
            return

        try:
            config = resolve_runtime_config(
                token=token,
                env=env,
                auth=auth,
                base_url=base_url,
                timeout=timeout,
                retry_non_idempotent=retry_non_idempotent,
                pretty=pretty_mode,
                ndjson=ndjson,
                debug=debug,
                trace=trace,
                print_status=status,
                print_headers=headers,
                no_color=no_color,
            )
        except SchemacliError as exc:
            output.error(str(exc))
            raise typer.Exit(code=exc.exit_code) from None

        transport = Transport(
            timeout=config.timeout,
            retry_non_idempotent=config.retry_non_idempotent,
            user_agent=f"schemacli/{__version__}",
            debug=config.debug,
            trace=config.trace,
            transport=http_transport,
            cancel=cancel,
        )
        ctx.call_on_close(transport.close)
        ctx.obj[RUNTIME_KEY] = Runtime(config=config, transport=transport, output=output)

    @app.command("version")
    def version_command() -> None:
        """Print the version."""
        typer.echo(f"schemacli {__version__}")

    app.add_typer(config_app, name="config")
    app.add_typer(create_spec_app(docs), name="spec")

    build_command_tree(app, docs, reserved_names=BUILTIN_COMMANDS)
    return app


def _setup_signal_handlers() -> None:
    """Install a SIGINT handler so Ctrl-C aborts waits and exits cleanly."""

    def _handler(signum: int, frame: Any) -> None:  # noqa: ANN401
        _cancel_event.set()
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)

    signal.signal(signal.SIGINT, _handler)


def _write_crash_log(exc: Exception) -> str:
    """Write a crash traceback to disk and return the log file path."""
    from schemacli.config import get_data_dir

    timestamp = datetime.now().strftime("%Y%m%d-%H%M%S")
    log_path = get_data_dir() / f"crash-{timestamp}.log"
    log_path.write_text(traceback.format_exc())
    return str(log_path)


def _load_documents() -> list[SpecDocument]:
    """Load documents from the configured directory (bundled by default)."""
    from schemacli.config import resolve_specs_dir
    from schemacli.exceptions import ConfigError
    from schemacli.output import warning
    from schemacli.parser import load_spec_documents

    try:
        specs_dir = resolve_specs_dir()
    except ConfigError as exc:
        # A broken config file must not hide `config reset`.
        warning(str(exc))
        specs_dir = None
    return load_spec_documents(specs_dir)


def main() -> None:
    """CLI entry point invoked by the ``schemacli`` console script.

    Performs the following sequence:

    1. Install signal handlers for clean Ctrl-C behaviour.
    2. Load schema documents (``SCHEMACLI_SPECS_DIR``, the config file's
       ``specs_dir``, or the bundled documents).
    3. Build the application, generating one command per operation.
    4. Invoke the Typer application.

    :class:`~schemacli.exceptions.SchemacliError` instances raised during
    startup cause a clean exit with the error's ``exit_code``. All other
    exceptions produce a crash log and a generic failure exit.

    Raises:
        SystemExit: Always raised (either by Typer or explicitly).
    """
    _setup_signal_handlers()
    try:
        app = create_app(_load_documents(), cancel=_cancel_event)
        app()
    except SystemExit:
        raise
    except KeyboardInterrupt:
        sys.stderr.write("\nCancelled.\n")
        sys.exit(EXIT_CANCELLED)
    except Exception as exc:
        from schemacli.exceptions import SchemacliError
        from schemacli.output import error

        if isinstance(exc, SchemacliError):
            error(str(exc))
            sys.exit(exc.exit_code)
        else:
            log_path = _write_crash_log(exc)
            error(f"Unexpected error. Debug log: {log_path}")
            sys.exit(EXIT_GENERIC_FAILURE)
