"""Build a Typer command tree from loaded schema documents.

This is the core algorithm of schemacli. It walks every operation of every
document and produces one command group per tag and one command per
operation.

**Algorithm summary**

1. Iterate documents, then paths (sorted), then methods (sorted). Every
   operation must have an ``operationId``.
2. The group is the kebab-cased first tag (``misc`` when untagged); the
   command name is the kebab-cased ``operationId``.
3. Bind positional path arguments, query/header flags, body flags and
   pagination flags for each operation (:func:`plan_commands`).
4. Sort by ``(group, command, method, path)`` and reject duplicate command
   names within a group.
5. Register groups lazily and attach each command as a dynamically
   generated function whose signature Typer can introspect
   (:func:`build_command_tree`).

Planning is pure: :func:`plan_commands` returns :class:`GeneratedCommand`
descriptors without touching Typer, so the same documents always yield the
same commands.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional

import click
import typer
from rich.markup import escape

from schemacli.exceptions import GenerationError
from schemacli.generator.body import CONTENT_TYPE_HELP, DATA_HELP, FORM_HELP, BodyNegotiator
from schemacli.generator.naming import kebab_case, sanitize_param_name
from schemacli.generator.pagination import DEFAULT_MAX_PAGES, detect_pagination_plan
from schemacli.generator.param_mapper import ParamBinding, ParamKind, bind_params, unique_identifier
from schemacli.generator.urls import extract_path_params
from schemacli.models import (
    OpenAPISpec,
    Operation,
    PaginationPlan,
    Parameter,
    PathItem,
    SpecDocument,
)

DEFAULT_GROUP = "misc"

# Python identifiers used by the fixed flags of every generated signature.
_RESERVED_DESTS = frozenset(
    {"ctx", "data", "form", "content_type", "all_pages", "max_pages", "sleep_ms"}
)

_BODY_FLAGS = ("data", "content-type", "form")
_PAGINATION_FLAGS = ("all", "max-pages", "sleep-ms")


@dataclass
class GeneratedCommand:
    """Everything needed to register and run the command for one operation.

    Attributes:
        document: Name of the document the operation comes from.
        filename: File the document was loaded from.
        spec: The document body (for server URLs and auth requirements).
        method: Upper-case HTTP method.
        path: Path template (``/account/{id}``).
        operation: The operation, with path-level parameters merged in.
        tag: The raw first tag (``misc`` when untagged).
        group: Canonical group name.
        name: Canonical command name.
        path_params: Placeholder names in template order.
        path_dests: Python identifiers of the positional arguments.
        query_bindings: Bound query flags.
        header_bindings: Bound header flags.
        body: Body negotiator, when the operation declares body content.
        pagination: Pagination plan, when one was detected.
        requires_auth: Whether the effective security requirement is
            non-empty.
    """

    document: str
    filename: str
    spec: OpenAPISpec
    method: str
    path: str
    operation: Operation
    tag: str
    group: str
    name: str
    path_params: list[str] = field(default_factory=list)
    path_dests: list[str] = field(default_factory=list)
    query_bindings: list[ParamBinding] = field(default_factory=list)
    header_bindings: list[ParamBinding] = field(default_factory=list)
    body: Optional[BodyNegotiator] = None
    pagination: Optional[PaginationPlan] = None
    requires_auth: bool = False

    @property
    def short_help(self) -> str:
        summary = (self.operation.summary or "").strip()
        return summary or f"{self.method} {self.path}"

    @property
    def long_help(self) -> str:
        description = (self.operation.description or "").strip()
        if description and description != self.short_help:
            return f"{self.short_help}\n\n{description}"
        return self.short_help

    def flag_names(self) -> list[str]:
        """Every flag spelling the command accepts, without dashes."""
        names: list[str] = []
        for binding in self.query_bindings + self.header_bindings:
            for flag in binding.flag_names():
                names.append(flag)
                if binding.kind is ParamKind.BOOLEAN:
                    names.append(f"no-{flag}")
        if self.body is not None:
            names.extend(_BODY_FLAGS)
        if self.pagination is not None:
            names.extend(_PAGINATION_FLAGS)
        return names


# ---------------------------------------------------------------------------
# Planning
# ---------------------------------------------------------------------------


def plan_commands(documents: Iterable[SpecDocument]) -> list[GeneratedCommand]:
    """Plan one :class:`GeneratedCommand` per operation of every document.

    Args:
        documents: The loaded schema documents.

    Returns:
        Commands sorted by ``(group, name, method, path)``.

    Raises:
        GenerationError: For a missing ``operationId``, an unsupported
            parameter or request body ``$ref``, conflicting flag names
            within a command, or two commands with the same name in one
            group.
    """
    commands: list[GeneratedCommand] = []
    for document in documents:
        spec = document.spec
        for path in sorted(spec.paths):
            item = spec.paths[path]
            operations = item.operations()
            for method in sorted(operations):
                operation = operations[method]
                if not operation.operation_id.strip():
                    raise GenerationError(
                        f"{document.filename} {method} {path} missing operationId"
                    )
                commands.append(_plan_command(document, path, item, method, operation))

    commands.sort(key=lambda c: (c.group, c.name, c.method, c.path))

    seen: dict[tuple[str, str], GeneratedCommand] = {}
    for command in commands:
        key = (command.group, command.name)
        previous = seen.get(key)
        if previous is not None:
            raise GenerationError(
                f'duplicate command name "{command.name}" in group "{command.group}" '
                f"({command.method} {command.path} conflicts with "
                f"{previous.method} {previous.path})"
            )
        seen[key] = command
    return commands


def merge_parameters(path_level: list[Parameter], op_level: list[Parameter]) -> list[Parameter]:
    """Merge path-item parameters into an operation's own list.

    Operation parameters override path-level ones with the same
    ``(name, in)``. Path-level parameters come first.
    """
    overridden = {(p.name, p.location.lower()) for p in op_level if not p.ref}
    merged = [p for p in path_level if p.ref or (p.name, p.location.lower()) not in overridden]
    merged.extend(op_level)
    return merged


def _plan_command(
    document: SpecDocument,
    path: str,
    item: PathItem,
    method: str,
    operation: Operation,
) -> GeneratedCommand:
    spec = document.spec
    tag = DEFAULT_GROUP
    if operation.tags and operation.tags[0].strip():
        tag = operation.tags[0]
    group = kebab_case(tag) or DEFAULT_GROUP
    name = kebab_case(operation.operation_id)
    if not name:
        raise GenerationError(
            f"{document.filename} {method} {path} operationId "
            f"{operation.operation_id!r} has no usable command name"
        )

    if item.parameters:
        operation = operation.model_copy(
            update={"parameters": merge_parameters(item.parameters, operation.parameters)}
        )

    used_dests: set[str] = set(_RESERVED_DESTS)
    path_params = extract_path_params(path)
    path_dests = [unique_identifier(sanitize_param_name(p), used_dests) for p in path_params]

    query_bindings = bind_params(spec, operation.parameters, "query", used_dests)
    header_bindings = bind_params(spec, operation.parameters, "header", used_dests)

    body: Optional[BodyNegotiator] = None
    if operation.request_body is not None:
        if operation.request_body.ref:
            raise GenerationError(
                f"unsupported requestBody $ref {operation.request_body.ref!r}"
            )
        if operation.request_body.content:
            body = BodyNegotiator(
                operation.request_body.required,
                sorted(operation.request_body.content),
            )

    command = GeneratedCommand(
        document=document.name,
        filename=document.filename,
        spec=spec,
        method=method,
        path=path,
        operation=operation,
        tag=tag,
        group=group,
        name=name,
        path_params=path_params,
        path_dests=path_dests,
        query_bindings=query_bindings,
        header_bindings=header_bindings,
        body=body,
        pagination=detect_pagination_plan(spec, operation),
        requires_auth=spec.operation_requires_auth(operation),
    )
    _check_flag_names(command)
    return command


def _check_flag_names(command: GeneratedCommand) -> None:
    seen: set[str] = {"help"}
    for flag in command.flag_names():
        if flag in seen:
            raise GenerationError(
                f'duplicate flag "--{flag}" in command "{command.group} {command.name}" '
                f"({command.method} {command.path})"
            )
        seen.add(flag)


# ---------------------------------------------------------------------------
# Registration
# ---------------------------------------------------------------------------


Runner = Callable[[click.Context, GeneratedCommand, dict[str, Any]], None]


def build_command_tree(
    app: typer.Typer,
    documents: Iterable[SpecDocument],
    runner: Optional[Runner] = None,
    reserved_names: Iterable[str] = (),
) -> list[GeneratedCommand]:
    """Register a command group per tag and a command per operation on *app*.

    Args:
        app: The root application to attach groups to.
        documents: The loaded schema documents.
        runner: Called with ``(ctx, command, values)`` when a generated
            command runs; defaults to
            :func:`~schemacli.generator.executor.run_command`.
        reserved_names: Top-level names already used by built-in commands.

    Returns:
        The planned commands, in registration order.

    Raises:
        GenerationError: See :func:`plan_commands`; also when a group name
            clashes with a reserved name.

    Example::

        app = typer.Typer()
        build_command_tree(app, load_spec_documents())
        app()
    """
    if runner is None:
        from schemacli.generator.executor import run_command

        runner = run_command

    commands = plan_commands(documents)
    reserved = set(reserved_names)
    groups: dict[str, typer.Typer] = {}

    for command in commands:
        group = groups.get(command.group)
        if group is None:
            if command.group in reserved:
                raise GenerationError(
                    f'command group "{command.group}" conflicts with a built-in command'
                )
            help_text = command.spec.tag_description(command.tag) or command.tag
            group = typer.Typer(
                name=command.group,
                help=escape(help_text),
                no_args_is_help=True,
            )
            app.add_typer(group)
            groups[command.group] = group

        group.command(
            name=command.name,
            help=escape(command.long_help),
            short_help=escape(command.short_help),
            deprecated=command.operation.deprecated,
        )(_build_command_function(command, runner))

    return commands


def _build_command_function(command: GeneratedCommand, runner: Runner) -> Callable[..., Any]:
    """Generate a Typer-compatible function for *command*.

    The function source is built as a string, compiled, and executed into a
    namespace so that :mod:`inspect` (which Typer relies on) sees a real
    signature: ``ctx`` first, then one positional argument per path
    parameter, then every flag. Annotations and ``typer.Argument`` /
    ``typer.Option`` defaults are injected through the namespace.
    """
    declared = {
        p.name: p for p in command.operation.parameters if p.location.lower() == "path"
    }

    params: list[tuple[str, Any, Any]] = []
    for name, dest in zip(command.path_params, command.path_dests):
        description = (declared[name].description or "").strip() if name in declared else ""
        params.append(
            (
                dest,
                str,
                typer.Argument(
                    ...,
                    metavar=name.upper(),
                    help=escape(description) or None,
                    show_default=False,
                ),
            )
        )

    for binding in command.query_bindings + command.header_bindings:
        params.extend(binding.options())

    if command.body is not None:
        params.append(
            ("data", Optional[str], typer.Option(None, "--data", help=DATA_HELP, show_default=False))
        )
        params.append(
            (
                "content_type",
                Optional[str],
                typer.Option(None, "--content-type", help=CONTENT_TYPE_HELP, show_default=False),
            )
        )
        params.append(
            ("form", Optional[List[str]], typer.Option(None, "--form", help=FORM_HELP, show_default=False))
        )

    if command.pagination is not None:
        params.append(
            (
                "all_pages",
                bool,
                typer.Option(False, "--all", help="Fetch all pages (for paginated list operations)"),
            )
        )
        params.append(
            ("max_pages", int, typer.Option(DEFAULT_MAX_PAGES, "--max-pages", help="Max pages to fetch with --all"))
        )
        params.append(
            ("sleep_ms", int, typer.Option(0, "--sleep-ms", help="Sleep between pages when using --all"))
        )

    namespace: dict[str, Any] = {"_Context": typer.Context}
    sig_parts = ["ctx: _Context"]
    for idx, (dest, annotation, default) in enumerate(params):
        namespace[f"_ann_{idx}"] = annotation
        namespace[f"_default_{idx}"] = default
        sig_parts.append(f"{dest}: _ann_{idx} = _default_{idx}")

    values = ", ".join(f"{dest!r}: {dest}" for dest, _, _ in params)
    func_name = "_cmd_" + sanitize_param_name(f"{command.group}_{command.name}")
    source = (
        f"def {func_name}({', '.join(sig_parts)}):\n"
        f"    return _run(ctx, _command, {{{values}}})\n"
    )

    namespace["_run"] = runner
    namespace["_command"] = command

    code = compile(source, f"<schemacli:{command.group}/{command.name}>", "exec")
    exec(code, namespace)  # noqa: S102 -- controlled code generation
    fn = namespace[func_name]
    fn.__doc__ = command.long_help
    return fn
