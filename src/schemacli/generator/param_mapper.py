"""Map query and header parameters to typed Typer ``--option`` flags.

Each declared parameter becomes a :class:`ParamBinding`: a canonical
``--kebab-case`` flag plus, when the declared name differs from its kebab
form, a hidden alias spelled exactly like the declared name (so both
``--start-after`` and ``--start_after`` work).

**Kind mapping** (from the flattened parameter schema):

* ``boolean`` -> :attr:`ParamKind.BOOLEAN` (``--flag/--no-flag``)
* ``integer`` -> :attr:`ParamKind.INTEGER`
* ``number`` -> :attr:`ParamKind.FLOAT`
* ``array`` -> :attr:`ParamKind.STRING_ARRAY` (repeatable)
* anything else, or no schema -> :attr:`ParamKind.STRING`

Every flag defaults to ``None`` and a binding contributes to the request
only when the caller set it on the command line, which is checked with
:meth:`click.Context.get_parameter_source`. Not giving ``--limit`` omits the
parameter; ``--limit 0`` sends ``limit=0``.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, List, Optional

import click
import typer
from click.core import ParameterSource
from rich.markup import escape

from schemacli.exceptions import GenerationError
from schemacli.generator.naming import kebab_case, sanitize_param_name
from schemacli.models import OpenAPISpec, Parameter
from schemacli.parser.resolver import flatten_schema

_EXPLICIT_SOURCES = (ParameterSource.COMMANDLINE, ParameterSource.ENVIRONMENT)


class ParamKind(str, enum.Enum):
    """Primitive flag kinds a parameter can bind to."""

    STRING = "string"
    INTEGER = "integer"
    BOOLEAN = "boolean"
    FLOAT = "float"
    STRING_ARRAY = "string-array"


_PYTHON_TYPES: dict[ParamKind, Any] = {
    ParamKind.STRING: Optional[str],
    ParamKind.INTEGER: Optional[int],
    ParamKind.BOOLEAN: Optional[bool],
    ParamKind.FLOAT: Optional[float],
    ParamKind.STRING_ARRAY: Optional[List[str]],
}


def was_set(ctx: click.Context, dest: str) -> bool:
    """Whether the parameter stored under *dest* was given by the caller."""
    return ctx.get_parameter_source(dest) in _EXPLICIT_SOURCES


def format_float(value: float) -> str:
    """Format *value* in the shortest form without an exponent.

    Example::

        >>> format_float(2.0)
        '2'
        >>> format_float(0.00001)
        '0.00001'
    """
    if value.is_integer():
        return str(int(value))
    text = repr(value)
    if "e" in text or "E" in text:
        text = format(Decimal(text), "f")
    return text


@dataclass
class ParamBinding:
    """One query or header parameter bound to a flag.

    Attributes:
        name: Declared parameter name, used on the wire.
        location: ``"query"`` or ``"header"``.
        kind: Primitive flag kind.
        flag: Canonical flag name without dashes (``start-after``).
        alias: Hidden raw-name alias, or ``None`` when identical to *flag*.
        dest: Python identifier of the canonical option in the generated
            function signature.
        alias_dest: Python identifier of the alias option.
        required: Whether the parameter must be supplied.
        help: Help text for ``--help``.
    """

    name: str
    location: str
    kind: ParamKind
    flag: str
    alias: Optional[str]
    dest: str
    alias_dest: Optional[str]
    required: bool
    help: str

    def flag_names(self) -> list[str]:
        names = [self.flag]
        if self.alias:
            names.append(self.alias)
        return names

    def options(self) -> list[tuple[str, Any, Any]]:
        """Return ``(dest, annotation, typer.Option)`` for each flag spelling."""
        annotation = _PYTHON_TYPES[self.kind]
        primary = typer.Option(
            None, self._decl(self.flag), help=self.help, show_default=False
        )
        out = [(self.dest, annotation, primary)]
        if self.alias and self.alias_dest:
            alias = typer.Option(
                None,
                self._decl(self.alias),
                help=f"Alias for --{self.flag}",
                hidden=True,
                show_default=False,
            )
            out.append((self.alias_dest, annotation, alias))
        return out

    def _decl(self, name: str) -> str:
        if self.kind is ParamKind.BOOLEAN:
            return f"--{name}/--no-{name}"
        return f"--{name}"

    def resolve(self, ctx: click.Context, values: dict[str, Any]) -> Optional[list[str]]:
        """Return the wire values for this parameter, or ``None`` if unset.

        Args:
            ctx: The running command's context.
            values: Generated-function arguments keyed by dest.

        Returns:
            One string per value (several for repeatable flags), or ``None``
            when neither spelling was given on the command line.
        """
        primary_set = was_set(ctx, self.dest)
        alias_set = bool(self.alias_dest) and was_set(ctx, self.alias_dest)
        if not primary_set and not alias_set:
            return None

        if self.kind is ParamKind.STRING_ARRAY:
            items: list[str] = []
            if primary_set:
                items.extend(values.get(self.dest) or [])
            if alias_set:
                items.extend(values.get(self.alias_dest) or [])
            return items

        value = values.get(self.dest) if primary_set else values.get(self.alias_dest)
        return [self._stringify(value)]

    def _stringify(self, value: Any) -> str:
        if self.kind is ParamKind.BOOLEAN:
            return "true" if value else "false"
        if self.kind is ParamKind.FLOAT:
            return format_float(float(value))
        return str(value)

    def check_required(self, ctx: click.Context) -> None:
        """Raise a usage error if a required flag was not given.

        Either spelling satisfies the requirement.
        """
        if not self.required:
            return
        if was_set(ctx, self.dest) or (self.alias_dest and was_set(ctx, self.alias_dest)):
            return
        raise click.UsageError(f"Missing option '--{self.flag}'.", ctx=ctx)


def detect_param_kind(spec: OpenAPISpec, param: Parameter) -> ParamKind:
    """Classify *param* by the type of its flattened schema."""
    schema = flatten_schema(spec, param.schema_)
    if schema is None or not schema.type:
        return ParamKind.STRING
    return {
        "boolean": ParamKind.BOOLEAN,
        "integer": ParamKind.INTEGER,
        "number": ParamKind.FLOAT,
        "array": ParamKind.STRING_ARRAY,
    }.get(schema.type.lower(), ParamKind.STRING)


def param_type_hint(spec: OpenAPISpec, param: Parameter) -> str:
    """Describe the parameter type for help text (``integer (int32)``, ``string[]``)."""
    schema = flatten_schema(spec, param.schema_)
    if schema is None:
        return ""

    type_name = (schema.type or "").strip()
    if type_name.lower() == "array" and schema.items is not None:
        item = flatten_schema(spec, schema.items)
        if item is not None and item.type:
            hint = item.type.strip() + "[]"
            if item.format:
                return f"{hint} ({item.format.strip()})"
            return hint

    if not type_name:
        return ""
    if schema.format:
        return f"{type_name} ({schema.format.strip()})"
    return type_name


def build_param_help(spec: OpenAPISpec, param: Parameter, location: str, kind: ParamKind) -> str:
    """Compose the ``--help`` text for a parameter flag.

    Uses the parameter's description, else the flattened schema's
    description, else a generic ``Query parameter (integer)`` line.
    Repeatable flags with a description get a ``(repeatable)`` suffix.
    """
    desc = (param.description or "").strip()
    if not desc and param.schema_ is not None:
        schema = flatten_schema(spec, param.schema_)
        if schema is not None and schema.description:
            desc = schema.description.strip()

    if not desc:
        text = f"{location.lower().capitalize()} parameter"
        hint = param_type_hint(spec, param)
        if hint:
            text += f" ({hint})"
        return escape(text)

    if kind is ParamKind.STRING_ARRAY:
        desc += " (repeatable)"
    return escape(desc)


def bind_params(
    spec: OpenAPISpec,
    parameters: list[Parameter],
    location: str,
    used_dests: set[str],
) -> list[ParamBinding]:
    """Bind every parameter declared *in* ``location`` to a flag.

    Args:
        spec: The document the parameters come from.
        parameters: The operation's (merged) parameter list.
        location: ``"query"`` or ``"header"``.
        used_dests: Python identifiers already taken in the generated
            signature; new dests are added to it.

    Returns:
        Bindings in declaration order.

    Raises:
        GenerationError: If a parameter is a ``$ref``.
    """
    bindings: list[ParamBinding] = []
    for param in parameters:
        if param.ref:
            raise GenerationError(f"unsupported parameter $ref {param.ref!r}")
        if param.location.lower() != location.lower():
            continue
        if not param.name:
            continue

        flag = kebab_case(param.name)
        if not flag:
            raise GenerationError(f"parameter {param.name!r} has no usable flag name")
        alias = param.name if param.name != flag else None
        kind = detect_param_kind(spec, param)

        dest = unique_identifier(sanitize_param_name(param.name), used_dests)
        alias_dest = None
        if alias is not None:
            alias_dest = unique_identifier(f"{dest}_alias", used_dests)

        bindings.append(
            ParamBinding(
                name=param.name,
                location=location.lower(),
                kind=kind,
                flag=flag,
                alias=alias,
                dest=dest,
                alias_dest=alias_dest,
                required=param.required,
                help=build_param_help(spec, param, location, kind),
            )
        )
    return bindings


def collect_pairs(
    ctx: click.Context,
    bindings: list[ParamBinding],
    values: dict[str, Any],
) -> list[tuple[str, str]]:
    """Return ``(name, value)`` pairs for every binding the caller set."""
    pairs: list[tuple[str, str]] = []
    for binding in bindings:
        resolved = binding.resolve(ctx, values)
        if resolved is None:
            continue
        pairs.extend((binding.name, value) for value in resolved)
    return pairs


def unique_identifier(base: str, used: set[str]) -> str:
    candidate = base
    n = 2
    while candidate in used:
        candidate = f"{base}_{n}"
        n += 1
    used.add(candidate)
    return candidate
