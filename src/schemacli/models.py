"""Canonical Pydantic models shared across all schemacli modules.

This is the single source of truth for data shapes in the project. The
models fall into three groups:

**Schema document models** -- the minimal OpenAPI 3.x subset needed to
generate commands:
    :class:`Schema`, :class:`Parameter`, :class:`MediaType`,
    :class:`RequestBody`, :class:`Response`, :class:`Operation`,
    :class:`PathItem`, :class:`Server`, :class:`Info`, :class:`Tag`,
    :class:`Components`, :class:`OpenAPISpec` and :class:`SpecDocument`.

**Pagination models** -- :class:`PaginationMode` and :class:`PaginationPlan`,
built once per operation at generation time.

**Configuration models** -- :class:`GlobalConfig` (persisted as JSON in the
user's config directory) and :class:`RuntimeConfig` (resolved once per
invocation and threaded through every component).

Unknown keys in schema documents are ignored. Fields whose OpenAPI name is
not a valid Python identifier (``$ref``, ``in``, ``operationId``, ...) are
declared with aliases and ``populate_by_name`` so both spellings work.
"""

from __future__ import annotations

import enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator


# --- Schema document ---


class Schema(BaseModel):
    """A (possibly recursive) JSON Schema node.

    OpenAPI 3.1 allows ``type: ["string", "null"]``; such lists are
    collapsed to the first non-null type and mark the schema ``nullable``.
    """

    model_config = ConfigDict(populate_by_name=True)

    ref: Optional[str] = Field(default=None, alias="$ref")
    type: Optional[str] = None
    format: Optional[str] = None
    description: Optional[str] = None
    nullable: bool = False
    enum: Optional[list[Any]] = None
    items: Optional[Schema] = None
    properties: dict[str, Schema] = Field(default_factory=dict)
    required: list[str] = Field(default_factory=list)
    all_of: list[Schema] = Field(default_factory=list, alias="allOf")
    any_of: list[Schema] = Field(default_factory=list, alias="anyOf")
    one_of: list[Schema] = Field(default_factory=list, alias="oneOf")

    @model_validator(mode="before")
    @classmethod
    def _collapse_type_list(cls, data: Any) -> Any:
        if isinstance(data, dict) and isinstance(data.get("type"), list):
            types = data["type"]
            non_null = [t for t in types if t != "null"]
            data = dict(data)
            data["type"] = non_null[0] if non_null else None
            if "null" in types:
                data["nullable"] = True
        return data


class Parameter(BaseModel):
    """An OpenAPI *Parameter Object* (path, query, header or cookie)."""

    model_config = ConfigDict(populate_by_name=True)

    ref: Optional[str] = Field(default=None, alias="$ref")
    name: str = ""
    location: str = Field(default="", alias="in")
    description: Optional[str] = None
    required: bool = False
    schema_: Optional[Schema] = Field(default=None, alias="schema")
    style: Optional[str] = None
    explode: Optional[bool] = None


class MediaType(BaseModel):
    """One entry of a ``content`` map."""

    model_config = ConfigDict(populate_by_name=True)

    schema_: Optional[Schema] = Field(default=None, alias="schema")


class RequestBody(BaseModel):
    """An OpenAPI *Request Body Object*, keyed by content type."""

    model_config = ConfigDict(populate_by_name=True)

    ref: Optional[str] = Field(default=None, alias="$ref")
    description: Optional[str] = None
    required: bool = False
    content: dict[str, MediaType] = Field(default_factory=dict)


class Response(BaseModel):
    """An OpenAPI *Response Object*, keyed by content type."""

    model_config = ConfigDict(populate_by_name=True)

    ref: Optional[str] = Field(default=None, alias="$ref")
    description: Optional[str] = None
    content: dict[str, MediaType] = Field(default_factory=dict)


class Server(BaseModel):
    """An entry from a ``servers`` array. Only the first entry is ever used."""

    url: str
    description: Optional[str] = None


class Operation(BaseModel):
    """A single operation (one path + HTTP method pair).

    ``security`` distinguishes *absent* (``None``, inherit the document
    requirement) from *explicitly empty* (``[]``, no auth required).
    """

    model_config = ConfigDict(populate_by_name=True)

    operation_id: str = Field(default="", alias="operationId")
    tags: list[str] = Field(default_factory=list)
    summary: Optional[str] = None
    description: Optional[str] = None
    deprecated: bool = False
    parameters: list[Parameter] = Field(default_factory=list)
    request_body: Optional[RequestBody] = Field(default=None, alias="requestBody")
    responses: dict[str, Response] = Field(default_factory=dict)
    security: Optional[list[dict[str, list[str]]]] = None
    servers: list[Server] = Field(default_factory=list)


class PathItem(BaseModel):
    """An OpenAPI *Path Item Object* with its per-method operations."""

    model_config = ConfigDict(populate_by_name=True)

    parameters: list[Parameter] = Field(default_factory=list)
    get: Optional[Operation] = None
    post: Optional[Operation] = None
    put: Optional[Operation] = None
    delete: Optional[Operation] = None
    patch: Optional[Operation] = None
    head: Optional[Operation] = None
    options: Optional[Operation] = None

    def operations(self) -> dict[str, Operation]:
        """Return the declared operations keyed by upper-case HTTP method."""
        declared = {
            "GET": self.get,
            "POST": self.post,
            "PUT": self.put,
            "DELETE": self.delete,
            "PATCH": self.patch,
            "HEAD": self.head,
            "OPTIONS": self.options,
        }
        return {method: op for method, op in declared.items() if op is not None}


class Info(BaseModel):
    title: str = ""
    version: str = ""
    description: Optional[str] = None


class Tag(BaseModel):
    name: str = ""
    description: Optional[str] = None


class Components(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    schemas: dict[str, Schema] = Field(default_factory=dict)
    security_schemes: dict[str, Any] = Field(
        default_factory=dict, alias="securitySchemes"
    )


class OpenAPISpec(BaseModel):
    """The parsed body of one schema document."""

    model_config = ConfigDict(populate_by_name=True)

    openapi: str = ""
    info: Info = Field(default_factory=Info)
    servers: list[Server] = Field(default_factory=list)
    tags: list[Tag] = Field(default_factory=list)
    security: list[dict[str, list[str]]] = Field(default_factory=list)
    paths: dict[str, PathItem] = Field(default_factory=dict)
    components: Components = Field(default_factory=Components)

    def server_url_for_operation(self, operation: Optional[Operation]) -> str:
        """Return the operation's first server URL, else the document's, else ``""``."""
        if operation is not None and operation.servers and operation.servers[0].url:
            return operation.servers[0].url
        if self.servers:
            return self.servers[0].url
        return ""

    def operation_requires_auth(self, operation: Operation) -> bool:
        """Whether the effective security requirement of *operation* is non-empty.

        Operation-level ``security`` overrides the document-level list.
        """
        if operation.security is not None:
            return len(operation.security) > 0
        return len(self.security) > 0

    def tag_description(self, name: str) -> Optional[str]:
        for tag in self.tags:
            if tag.name == name and tag.description:
                return tag.description
        return None


class SpecDocument(BaseModel):
    """One loaded schema source.

    Attributes:
        name: Stable identifier derived from the filename (no extension).
        filename: Basename of the file the document was loaded from.
        spec: The validated document.
    """

    model_config = ConfigDict(frozen=True)

    name: str
    filename: str
    spec: OpenAPISpec


# --- Pagination ---


class PaginationMode(str, enum.Enum):
    """Pagination styles recognised by the planner."""

    NONE = "none"
    CURSOR = "cursor"
    PAGE_TOKEN = "page-token"
    OFFSET = "offset"


class PaginationPlan(BaseModel):
    """Statically detected strategy for fetching successive pages.

    Attributes:
        mode: The pagination style.
        query_param: Request query parameter the pager mutates.
        item_field: Array field in the JSON response accumulated across pages.
        next_token_field: Response field holding the next token; for cursor
            paging it is the dotted path ``page.nextPage``.
        total_field: Total-count field (offset paging only).
    """

    model_config = ConfigDict(frozen=True)

    mode: PaginationMode
    query_param: str
    item_field: str
    next_token_field: Optional[str] = None
    total_field: Optional[str] = None


# --- Configuration ---


def _default_environments() -> dict[str, dict[str, str]]:
    return {
        "prod": {},
        "sandbox": {
            "api.example.com": "api-sandbox.example.com",
            "auth.example.com": "auth-sandbox.example.com",
        },
    }


class GlobalConfig(BaseModel):
    """User-wide configuration persisted at ``~/.config/schemacli/config.json``.

    Loaded and saved by :func:`~schemacli.config.load_global_config` and
    :func:`~schemacli.config.save_global_config`. Fields here have the
    lowest precedence and can be overridden by environment variables or
    CLI flags. See :func:`~schemacli.config.resolve_runtime_config`.
    """

    env: str = Field(default="prod", description="Target environment name")
    auth: str = Field(default="bearer", description="Auth scheme: bearer or basic")
    base_url: Optional[str] = Field(
        default=None, description="Override the server URL of every operation"
    )
    timeout: float = Field(default=30.0, description="HTTP timeout in seconds")
    retry_non_idempotent: bool = Field(
        default=False, description="Retry POST/PATCH on 429/5xx"
    )
    token_source: Optional[str] = Field(
        default=None, description="Token source: env:VAR or file:/path"
    )
    specs_dir: Optional[str] = Field(
        default=None, description="Directory of schema documents to load"
    )
    environments: dict[str, dict[str, str]] = Field(
        default_factory=_default_environments,
        description="Environment name -> server host rewrite map",
    )


class RuntimeConfig(BaseModel):
    """Effective settings for one invocation.

    Built once by the root callback from flags, environment and the global
    config file, then passed to every component that needs it.
    """

    env: str = "prod"
    auth: str = "bearer"
    token: str = ""
    base_url: str = ""
    timeout: float = 30.0
    retry_non_idempotent: bool = False
    host_rewrites: dict[str, str] = Field(default_factory=dict)

    pretty: Optional[bool] = None
    ndjson: bool = False
    debug: bool = False
    trace: bool = False
    print_status: bool = False
    print_headers: bool = False
    no_color: bool = False


Schema.model_rebuild()
