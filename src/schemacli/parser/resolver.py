"""Resolve ``$ref`` pointers and flatten ``allOf`` compositions in schemas.

Schema documents commonly use ``$ref`` pointers (e.g.,
``{"$ref": "#/components/schemas/Account"}``) and ``allOf`` lists to avoid
repetition. Command generation only ever needs to look one or two levels
into a schema (parameter types, the top-level properties of a list
response), so resolution here is lazy and shallow rather than a deep copy
of the whole document.

Only references of the form ``#/components/schemas/<Name>`` are resolved.
Anything else, and any name missing from the components map, leaves the
node unresolved rather than raising.

Circular references are detected via a ``seen`` set of reference strings
and left unresolved to prevent infinite recursion. A schema that references
itself (common in tree-like structures) therefore keeps its ``$ref`` at the
cycle point.

Public functions:

* :func:`resolve_schema_ref` -- look up one reference string.
* :func:`deref_schema` -- follow a chain of references to a concrete node.
* :func:`flatten_schema` -- dereference and merge an ``allOf`` wrapper into a
  single object shape.
"""

from __future__ import annotations

from typing import Optional

from schemacli.models import OpenAPISpec, Schema

_SCHEMA_REF_PREFIX = "#/components/schemas/"


def resolve_schema_ref(spec: OpenAPISpec, ref: str) -> Optional[Schema]:
    """Return a copy of the component schema *ref* points at, or ``None``.

    Args:
        spec: The document to resolve against.
        ref: A reference string such as ``"#/components/schemas/Account"``.

    Returns:
        A shallow copy of the referenced schema so callers can modify it
        safely, or ``None`` if the reference is external, malformed, or
        names a schema that does not exist.
    """
    if not ref.startswith(_SCHEMA_REF_PREFIX):
        return None
    name = ref[len(_SCHEMA_REF_PREFIX):]
    target = spec.components.schemas.get(name)
    if target is None:
        return None
    return target.model_copy()


def deref_schema(
    spec: OpenAPISpec,
    schema: Optional[Schema],
    seen: Optional[set[str]] = None,
) -> Optional[Schema]:
    """Follow ``$ref`` pointers until a concrete schema is reached.

    Args:
        spec: The document to resolve against.
        schema: The node to dereference (may be ``None``).
        seen: References already followed on this resolution path. Shared
            with the caller so that :func:`flatten_schema` can guard the
            whole traversal with a single set.

    Returns:
        The first node without a ``$ref``; or the node whose reference is
        unresolvable or closes a cycle, returned unresolved.
    """
    if seen is None:
        seen = set()
    while schema is not None and schema.ref:
        if schema.ref in seen:
            return schema
        seen.add(schema.ref)
        target = resolve_schema_ref(spec, schema.ref)
        if target is None:
            return schema
        schema = target
    return schema


def flatten_schema(spec: OpenAPISpec, schema: Optional[Schema]) -> Optional[Schema]:
    """Dereference *schema* and merge an ``allOf`` wrapper into one object shape.

    The result is deliberately conservative and only supports what command
    generation needs:

    * A pure ``allOf`` wrapper (no own ``type``, ``properties`` or ``items``)
      becomes an ``object`` whose properties are the union of every flattened
      member's properties (later members win on name clashes). If nothing
      could be merged the wrapper is returned unchanged.
    * An ``object`` with properties is copied with each immediate property
      dereferenced.
    * An ``array`` is copied with its ``items`` dereferenced.

    Args:
        spec: The document to resolve against.
        schema: The node to flatten (may be ``None``).

    Returns:
        The flattened schema, or ``None`` if *schema* was ``None``.

    Example::

        account = flatten_schema(spec, Schema(ref="#/components/schemas/Account"))
        account.properties["id"].type  # "string"
    """
    return _flatten(spec, schema, set())


def _flatten(
    spec: OpenAPISpec,
    schema: Optional[Schema],
    seen: set[str],
) -> Optional[Schema]:
    schema = deref_schema(spec, schema, seen)
    if schema is None:
        return None

    if schema.all_of and not schema.properties and not schema.type and schema.items is None:
        merged = Schema(type="object")
        for member in schema.all_of:
            flat = _flatten(spec, member, seen)
            if flat is None:
                continue
            if flat.type and merged.type is None:
                merged.type = flat.type
            merged.properties.update(flat.properties)
        if not merged.properties:
            return schema
        return merged

    if schema.type == "object" and schema.properties:
        properties: dict[str, Schema] = {}
        for name, prop in schema.properties.items():
            resolved = deref_schema(spec, prop, seen)
            properties[name] = resolved if resolved is not None else prop
        return schema.model_copy(update={"properties": properties})

    if schema.type == "array" and schema.items is not None:
        return schema.model_copy(update={"items": deref_schema(spec, schema.items, seen)})

    return schema
