"""Synchronous HTTP transport with tracing and method-aware retry.

This module provides :class:`Transport`, the only component that talks to
the network. It wraps :class:`httpx.Client` and layers on:

- **Default headers** -- ``User-Agent`` and ``Accept: application/json``
  unless the request already carries them.
- **Tracing** -- with ``--debug`` each attempt is logged to stderr
  (``> METHOD URL``, request headers with credentials redacted, ``< status``,
  content type and length); ``--trace`` also logs both bodies.
- **Retry with backoff** -- up to :data:`MAX_ATTEMPTS` attempts on 429/5xx
  responses for idempotent methods (or any method when the caller opts in).
  ``Retry-After`` is honoured exactly; otherwise the delay grows
  exponentially from 200 ms, capped at 5 s, with +/-50% jitter.

Network failures (no response at all) are never retried. The backoff wait
observes an optional :class:`threading.Event` so a caller can abort it.
"""

from __future__ import annotations

import base64
import email.utils
import random
import threading
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional

import httpx

from schemacli.exceptions import ConnectionError_, RequestCancelledError
from schemacli.output import get_output, redact_headers

MAX_ATTEMPTS = 5

BASE_BACKOFF = 0.2
MAX_BACKOFF = 5.0

IDEMPOTENT_METHODS = frozenset({"GET", "HEAD", "PUT", "DELETE", "OPTIONS"})


@dataclass
class HTTPResult:
    """A completed HTTP exchange.

    Attributes:
        status: HTTP status code.
        headers: Response headers.
        body: Fully read response body.
    """

    status: int
    headers: httpx.Headers
    body: bytes


def apply_auth(headers: httpx.Headers, token: str, scheme: str) -> None:
    """Set the ``Authorization`` header for *token*.

    ``basic`` sends the token as the username with an empty password
    (``Basic base64(token + ":")``); anything else sends ``Bearer <token>``.
    """
    if scheme == "basic":
        encoded = base64.b64encode(f"{token}:".encode("utf-8")).decode("ascii")
        headers["Authorization"] = f"Basic {encoded}"
    else:
        headers["Authorization"] = f"Bearer {token}"


def should_retry(status: int, method: str, retry_non_idempotent: bool) -> bool:
    """Whether a response with *status* to *method* is retried.

    Only 429 and 5xx responses are retried; non-idempotent methods (POST,
    PATCH) only when *retry_non_idempotent* is set.
    """
    if status == 429 or status >= 500:
        if method.upper() in IDEMPOTENT_METHODS:
            return True
        return retry_non_idempotent
    return False


def retry_backoff(headers: httpx.Headers, attempt: int, rng: Any = random) -> float:
    """Return the number of seconds to wait before retry *attempt* + 1.

    Args:
        headers: Headers of the response being retried.
        attempt: 1-based number of the attempt that just failed.
        rng: Source of randomness for jitter (anything with ``random()``).

    Returns:
        ``Retry-After`` seconds (integer or HTTP-date form) when present and
        parseable, otherwise ``min(0.2 * 2**(attempt-1), 5)`` with up to
        +/-50% jitter.
    """
    retry_after = (headers.get("Retry-After") or "").strip()
    if retry_after:
        try:
            seconds = int(retry_after)
        except ValueError:
            seconds = -1
        if seconds >= 0:
            return float(seconds)
        try:
            when = email.utils.parsedate_to_datetime(retry_after)
        except (TypeError, ValueError):
            when = None
        if when is not None:
            if when.tzinfo is None:
                when = when.replace(tzinfo=timezone.utc)
            delay = (when - datetime.now(timezone.utc)).total_seconds()
            if delay > 0:
                return delay

    delay = min(BASE_BACKOFF * (2 ** (attempt - 1)), MAX_BACKOFF)
    jitter = rng.random() * delay - delay / 2
    return delay + jitter


def cancellable_sleep(seconds: float, cancel: Optional[threading.Event] = None) -> None:
    """Sleep for *seconds*, aborting early when *cancel* is set.

    Raises:
        RequestCancelledError: If *cancel* is (or becomes) set.
    """
    if cancel is None:
        time.sleep(seconds)
        return
    if cancel.is_set() or cancel.wait(seconds):
        raise RequestCancelledError("request cancelled")


class Transport:
    """Synchronous HTTP transport for generated commands.

    Must be used as a context manager (or closed with :meth:`close`) so that
    the underlying :class:`httpx.Client` is released.

    Args:
        timeout: Per-request timeout in seconds.
        retry_non_idempotent: Also retry POST/PATCH on 429/5xx.
        user_agent: Default ``User-Agent`` header value.
        debug: Log request/response lines to stderr.
        trace: Like *debug*, and also log bodies.
        transport: Optional :class:`httpx.BaseTransport` (e.g.
            :class:`httpx.MockTransport` in tests).
        cancel: Optional event that aborts a backoff wait.

    Example::

        with Transport(timeout=10.0) as transport:
            result = transport.send(httpx.Request("GET", url), None)
    """

    def __init__(
        self,
        timeout: float = 30.0,
        retry_non_idempotent: bool = False,
        user_agent: str = "",
        debug: bool = False,
        trace: bool = False,
        transport: Optional[httpx.BaseTransport] = None,
        cancel: Optional[threading.Event] = None,
    ) -> None:
        self._timeout = timeout if timeout > 0 else 30.0
        self._retry_non_idempotent = retry_non_idempotent
        self._user_agent = user_agent
        self._debug = debug
        self._trace = trace
        self._transport = transport
        self._cancel = cancel
        self._client: Optional[httpx.Client] = None

    # ------------------------------------------------------------------ #
    # Context manager
    # ------------------------------------------------------------------ #

    def __enter__(self) -> Transport:
        self._ensure_client()
        return self

    def __exit__(self, *args: object) -> None:
        self.close()

    @property
    def cancel_event(self) -> Optional[threading.Event]:
        """Event that aborts backoff and inter-page waits, if any."""
        return self._cancel

    def close(self) -> None:
        if self._client is not None:
            self._client.close()
            self._client = None

    def _ensure_client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self._timeout, transport=self._transport, follow_redirects=True
            )
        return self._client

    # ------------------------------------------------------------------ #
    # Sending
    # ------------------------------------------------------------------ #

    def send(self, request: httpx.Request, body: Optional[bytes]) -> HTTPResult:
        """Send *request*, retrying per the retry policy.

        Args:
            request: The request to send. Its headers may be updated with
                defaults.
            body: The exact request body bytes (``None`` for no body). Every
                attempt is rebuilt from these bytes.

        Returns:
            The final :class:`HTTPResult`, whatever its status.

        Raises:
            ConnectionError_: On a network-level failure.
            RequestCancelledError: If the backoff wait was cancelled.
        """
        client = self._ensure_client()
        headers = httpx.Headers(request.headers)
        # Framing headers are recomputed from *body* on every attempt.
        headers.pop("Content-Length", None)
        headers.pop("Transfer-Encoding", None)
        if self._user_agent and "User-Agent" not in headers:
            headers["User-Agent"] = self._user_agent
        if "Accept" not in headers:
            headers["Accept"] = "application/json"

        logging_on = self._debug or self._trace
        if logging_on:
            self._log_request(request.method, request.url, headers, body)

        attempt = 1
        while True:
            attempt_request = httpx.Request(
                request.method, request.url, headers=headers, content=body
            )
            try:
                response = client.send(attempt_request)
            except httpx.TransportError as exc:
                raise ConnectionError_(f"{request.method} {request.url}: {exc}") from exc

            if logging_on:
                self._log_response(response)

            if (
                should_retry(response.status_code, request.method, self._retry_non_idempotent)
                and attempt < MAX_ATTEMPTS
            ):
                delay = retry_backoff(response.headers, attempt)
                get_output().debug(
                    f"HTTP {response.status_code}, retrying in {delay:.2f}s "
                    f"(attempt {attempt + 1}/{MAX_ATTEMPTS})"
                )
                cancellable_sleep(delay, self._cancel)
                attempt += 1
                continue

            return HTTPResult(
                status=response.status_code,
                headers=response.headers,
                body=response.content,
            )

    # ------------------------------------------------------------------ #
    # Tracing
    # ------------------------------------------------------------------ #

    def _log_request(
        self,
        method: str,
        url: httpx.URL,
        headers: httpx.Headers,
        body: Optional[bytes],
    ) -> None:
        output = get_output()
        output.trace(f"> {method} {url}")
        for key, value in redact_headers(headers):
            output.trace(f"> {key}: {value}")
        if self._trace and body:
            output.trace(">")
            output.trace(body.decode("utf-8", errors="replace").rstrip("\n"))

    def _log_response(self, response: httpx.Response) -> None:
        output = get_output()
        output.trace(f"< {response.status_code} {response.reason_phrase}".rstrip())
        if self._debug:
            content_type = response.headers.get("Content-Type")
            if content_type:
                output.trace(f"< Content-Type: {content_type}")
            output.trace(f"< Content-Length: {len(response.content)}")
        if self._trace and response.content:
            output.trace("<")
            output.trace(response.content.decode("utf-8", errors="replace").rstrip("\n"))
