"""Run a generated command: build the request, send it, print the result.

:func:`run_command` is what every generated Typer function calls. It turns
the parsed flag values into a concrete request (base URL, expanded path,
query pairs, headers, body, credentials), sends it through the runtime's
:class:`~schemacli.client.transport.Transport`, and prints the response.
With ``--all`` it drives :func:`~schemacli.generator.pagination.fetch_all`
and prints the merged result instead.
"""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any, Optional

import click
import httpx
import typer

from schemacli.client.transport import HTTPResult, apply_auth
from schemacli.exceptions import (
    AuthError,
    HTTPStatusError,
    InvalidUsageError,
    SchemacliError,
)
from schemacli.generator.body import EncodedBody
from schemacli.generator.pagination import fetch_all
from schemacli.generator.param_mapper import collect_pairs
from schemacli.generator.urls import apply_env_to_server_url, expand_path, join_base_and_path
from schemacli.models import PaginationMode, RuntimeConfig
from schemacli.output import get_output
from schemacli.runtime import Runtime, get_runtime

if TYPE_CHECKING:
    from schemacli.generator.command_tree import GeneratedCommand

logger = logging.getLogger(__name__)


def run_command(ctx: click.Context, command: GeneratedCommand, values: dict[str, Any]) -> None:
    """Entry point of every generated command.

    Library errors are printed as a single ``Error:`` line and converted to
    :class:`typer.Exit` with the error's exit code.
    """
    try:
        execute(ctx, command, values)
    except SchemacliError as exc:
        output = _output_for(ctx)
        output.error(str(exc))
        raise typer.Exit(code=exc.exit_code) from None


def execute(ctx: click.Context, command: GeneratedCommand, values: dict[str, Any]) -> None:
    """Build, send and print the request for *command*.

    Raises:
        click.UsageError: If a required flag is missing.
        AuthError: If the operation needs a token and none is configured.
        InvalidUsageError: For ``--all`` on a non-GET operation or a bad
            base URL.
        BindingError: If the request body cannot be built.
        HTTPStatusError: After a 4xx/5xx response has been printed.
    """
    runtime = get_runtime(ctx)
    cfg = runtime.config

    for binding in command.query_bindings + command.header_bindings:
        binding.check_required(ctx)

    all_pages = bool(values.get("all_pages")) and command.pagination is not None
    if all_pages and command.method != "GET":
        raise InvalidUsageError("--all is only supported for GET operations")

    if command.requires_auth and not cfg.token:
        raise AuthError(
            f"Missing token for {command.group}/{command.name} "
            f"{command.method} {command.path}. "
            "Set SCHEMACLI_TOKEN or pass --token."
        )

    base_url = resolve_base_url(command, cfg)
    args = [str(values[dest]) for dest in command.path_dests]
    endpoint = join_base_and_path(base_url, expand_path(command.path, command.path_params, args))

    query = collect_pairs(ctx, command.query_bindings, values)
    header_pairs = collect_pairs(ctx, command.header_bindings, values)

    body: Optional[EncodedBody] = None
    if command.body is not None:
        body = command.body.build(
            data=values.get("data"),
            form=values.get("form"),
            content_type=values.get("content_type"),
        )

    def fetch(query_pairs: list[tuple[str, str]]) -> HTTPResult:
        return _send(runtime, command, endpoint, query_pairs, header_pairs, body)

    if not all_pages:
        result = fetch(query)
        runtime.output.print_http(result.status, result.headers, result.body)
        return

    plan = command.pagination
    sleep_ms = int(values.get("sleep_ms") or 0)
    pages = fetch_all(
        plan,
        query,
        int(values.get("max_pages") or 0),
        sleep_ms / 1000.0,
        fetch,
        cancel=runtime.transport.cancel_event,
    )
    output = runtime.output
    output.print_http(pages.last_status, pages.last_headers, b"")
    if output.ndjson_enabled:
        output.print_ndjson(pages.items)
        return

    merged = dict(pages.last_object or {})
    merged[plan.item_field] = pages.items
    if plan.mode is PaginationMode.OFFSET and plan.total_field and pages.first_total is not None:
        merged[plan.total_field] = pages.first_total
    output.print_body(
        json.dumps(merged, ensure_ascii=False, separators=(",", ":")).encode("utf-8")
    )


def resolve_base_url(command: GeneratedCommand, cfg: RuntimeConfig) -> str:
    """Return the base URL for *command*.

    An explicit ``--base-url`` (or ``SCHEMACLI_BASE_URL``) wins and is used
    as given. Otherwise the operation's server URL (operation, then
    document) is used with the environment's host rewrites applied.
    """
    if cfg.base_url:
        return cfg.base_url
    server = command.spec.server_url_for_operation(command.operation).strip()
    if not server:
        raise SchemacliError(
            f"no server URL for {command.method} {command.path} ({command.filename}); "
            "pass --base-url"
        )
    return apply_env_to_server_url(server, cfg.host_rewrites)


def _send(
    runtime: Runtime,
    command: GeneratedCommand,
    endpoint: str,
    query: list[tuple[str, str]],
    header_pairs: list[tuple[str, str]],
    body: Optional[EncodedBody],
) -> HTTPResult:
    pairs = list(header_pairs)
    if body is not None:
        pairs.insert(0, ("Content-Type", body.content_type))
    headers = httpx.Headers(pairs)
    if runtime.config.token:
        apply_auth(headers, runtime.config.token, runtime.config.auth)

    request = httpx.Request(command.method, endpoint, params=query or None, headers=headers)
    logger.debug("%s %s %s", command.group, command.name, request.url)
    result = runtime.transport.send(request, body.content if body is not None else None)
    if result.status >= 400:
        runtime.output.print_http_error(result.status, result.headers, result.body)
        raise HTTPStatusError(result.status)
    return result


def _output_for(ctx: click.Context):
    try:
        return get_runtime(ctx).output
    except RuntimeError:
        return get_output()
