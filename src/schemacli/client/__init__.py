"""HTTP transport for schemacli.

:class:`~schemacli.client.transport.Transport` wraps :class:`httpx.Client`
with default headers, debug tracing and a bounded retry loop whose policy
depends on the idempotency of the HTTP method.

Example::

    from schemacli.client import Transport

    with Transport(timeout=30.0) as transport:
        result = transport.send(httpx.Request("GET", url), None)
"""

from schemacli.client.transport import HTTPResult, Transport

__all__ = ["Transport", "HTTPResult"]
