"""Detect pagination styles and fetch every page of a list operation.

Detection is purely static: :func:`detect_pagination_plan` looks at an
operation's query parameters and the shape of its ``200`` JSON response and
classifies it as one of three styles (first match wins):

==============  ==================  ===================  ==================
Style           Query parameter     Items field          Stop signal
==============  ==================  ===================  ==================
page-token      ``page_token``      ``records``          ``next_page_token``
                                                         empty
offset          ``offset``          ``transactions``     offset >= ``total``
                                                         or an empty page
cursor          ``start_after``     first array          ``page.nextPage``
                                    property             empty
==============  ==================  ===================  ==================

:func:`fetch_all` then drives the page loop for ``--all``. It never emits
partial results: any failure (bad JSON, missing items field, page cap hit)
aborts with a :class:`~schemacli.exceptions.PaginationError`.
"""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field
from typing import Any, Callable, Optional

from schemacli.client.transport import HTTPResult, cancellable_sleep
from schemacli.exceptions import PaginationError, PaginationExceededError
from schemacli.models import (
    OpenAPISpec,
    Operation,
    PaginationMode,
    PaginationPlan,
    Schema,
)
from schemacli.parser.resolver import flatten_schema

DEFAULT_MAX_PAGES = 1000

QueryPairs = list[tuple[str, str]]
PageFetcher = Callable[[QueryPairs], HTTPResult]


@dataclass
class PaginationResult:
    """Everything collected by one ``--all`` run.

    Attributes:
        items: Items from every page, in page order.
        last_object: The final page's full JSON object.
        first_total: The first reported total (offset paging only).
        last_status: HTTP status of the final page.
        last_headers: Headers of the final page.
    """

    items: list[Any] = field(default_factory=list)
    last_object: dict[str, Any] = field(default_factory=dict)
    first_total: Any = None
    last_status: int = 0
    last_headers: Any = None


# ------------------------------------------------------------------ #
# Detection
# ------------------------------------------------------------------ #


def json_response_schema(
    operation: Operation, status_code: str = "200"
) -> Optional[Schema]:
    """Return the response schema for *status_code*, preferring JSON content."""
    response = operation.responses.get(status_code)
    if response is None:
        return None
    for content_type, media in response.content.items():
        if content_type.startswith("application/json"):
            return media.schema_
    for media in response.content.values():
        return media.schema_
    return None


def _is_array(spec: OpenAPISpec, schema: Optional[Schema]) -> bool:
    flat = flatten_schema(spec, schema)
    return flat is not None and (flat.type or "").lower() == "array"


def _has_array_prop(spec: OpenAPISpec, schema: Schema, name: str) -> bool:
    return name in schema.properties and _is_array(spec, schema.properties[name])


def _first_array_property(spec: OpenAPISpec, schema: Schema, skip: str) -> str:
    for name in sorted(schema.properties):
        if name == skip:
            continue
        if _is_array(spec, schema.properties[name]):
            return name
    return ""


def detect_pagination_plan(
    spec: OpenAPISpec, operation: Operation
) -> Optional[PaginationPlan]:
    """Classify *operation*'s pagination style.

    Args:
        spec: The document containing the operation.
        operation: The operation to inspect. Its ``parameters`` should
            already include path-level parameters.

    Returns:
        A :class:`~schemacli.models.PaginationPlan`, or ``None`` when the
        operation does not match any supported style.
    """
    query_names = {
        p.name for p in operation.parameters if p.location.lower() == "query"
    }

    schema = flatten_schema(spec, json_response_schema(operation))
    if schema is None or (schema.type or "").lower() != "object":
        return None

    if "page_token" in query_names:
        if _has_array_prop(spec, schema, "records") and "next_page_token" in schema.properties:
            return PaginationPlan(
                mode=PaginationMode.PAGE_TOKEN,
                query_param="page_token",
                item_field="records",
                next_token_field="next_page_token",
            )

    if "offset" in query_names:
        if _has_array_prop(spec, schema, "transactions") and "total" in schema.properties:
            return PaginationPlan(
                mode=PaginationMode.OFFSET,
                query_param="offset",
                item_field="transactions",
                total_field="total",
            )

    if "start_after" in query_names and "page" in schema.properties:
        page = flatten_schema(spec, schema.properties["page"])
        if (
            page is not None
            and (page.type or "").lower() == "object"
            and "nextPage" in page.properties
        ):
            item_field = _first_array_property(spec, schema, "page")
            if item_field:
                return PaginationPlan(
                    mode=PaginationMode.CURSOR,
                    query_param="start_after",
                    item_field=item_field,
                    next_token_field="page.nextPage",
                )

    return None


# ------------------------------------------------------------------ #
# Execution
# ------------------------------------------------------------------ #


def fetch_all(
    plan: PaginationPlan,
    initial_query: QueryPairs,
    max_pages: int,
    sleep: float,
    fetch: PageFetcher,
    cancel: Optional[threading.Event] = None,
) -> PaginationResult:
    """Fetch pages until the plan's stop condition is met.

    Args:
        plan: Pagination plan for the operation.
        initial_query: Query pairs from the caller's flags. In offset mode a
            caller-supplied offset is the starting point.
        max_pages: Page cap; values ``<= 0`` mean :data:`DEFAULT_MAX_PAGES`.
        sleep: Seconds to wait between successful pages.
        fetch: Callback issuing one request with the given query pairs.
        cancel: Optional event that aborts the inter-page wait.

    Returns:
        The accumulated :class:`PaginationResult`.

    Raises:
        PaginationError: If a page is not a JSON object or lacks the items
            array.
        PaginationExceededError: If *max_pages* pages were fetched without
            reaching a stop condition.
    """
    if plan.mode is PaginationMode.NONE:
        raise PaginationError("missing pagination plan")
    if max_pages <= 0:
        max_pages = DEFAULT_MAX_PAGES

    query = list(initial_query)
    result = PaginationResult()

    offset = 0
    if plan.mode is PaginationMode.OFFSET:
        start = _get_query(query, plan.query_param)
        if start:
            try:
                offset = max(int(start), 0)
            except ValueError:
                offset = 0

    for page in range(1, max_pages + 1):
        if plan.mode is PaginationMode.OFFSET:
            query = _set_query(query, plan.query_param, str(offset))

        response = fetch(query)
        result.last_status = response.status
        result.last_headers = response.headers

        obj = _decode_page(response.body)
        if plan.item_field not in obj:
            raise PaginationError(f"response missing {plan.item_field!r} field")
        items = obj[plan.item_field]
        if not isinstance(items, list):
            raise PaginationError(
                f"response field {plan.item_field!r} is {type(items).__name__}, expected array"
            )

        result.items.extend(items)
        result.last_object = obj

        if plan.mode is PaginationMode.CURSOR:
            page_obj = obj.get("page")
            token = _string_field(page_obj, "nextPage") if isinstance(page_obj, dict) else ""
            if not token:
                return result
            query = _set_query(query, plan.query_param, token)
        elif plan.mode is PaginationMode.PAGE_TOKEN:
            token = _string_field(obj, plan.next_token_field or "")
            if not token:
                return result
            query = _set_query(query, plan.query_param, token)
        else:
            total_field = plan.total_field or ""
            if result.first_total is None:
                result.first_total = obj.get(total_field)
            offset += len(items)
            total = _int_from_any(obj.get(total_field))
            if total > 0 and offset >= total:
                return result
            if not items:
                return result

        if sleep > 0 and page < max_pages:
            cancellable_sleep(sleep, cancel)

    raise PaginationExceededError(max_pages)


def _decode_page(body: bytes) -> dict[str, Any]:
    try:
        value = json.loads(body)
    except ValueError as exc:
        raise PaginationError(f"parse JSON response: {exc}") from exc
    if not isinstance(value, dict):
        raise PaginationError(f"unexpected JSON response type {type(value).__name__}")
    return value


def _get_query(query: QueryPairs, name: str) -> str:
    for key, value in query:
        if key == name:
            return value
    return ""


def _set_query(query: QueryPairs, name: str, value: str) -> QueryPairs:
    """Return *query* with every *name* pair replaced by a single one."""
    updated = [(k, v) for k, v in query if k != name]
    updated.append((name, value))
    return updated


def _string_field(obj: dict[str, Any], name: str) -> str:
    value = obj.get(name)
    if value is None:
        return ""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def _int_from_any(value: Any) -> int:
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return 0
    return 0
