"""Path templates and server URLs.

Helpers that turn a path template plus positional arguments and a server
URL into the request URL:

* :func:`extract_path_params` -- ``{name}`` placeholders in template order.
* :func:`expand_path` -- substitute percent-escaped argument values.
* :func:`apply_env_to_server_url` -- rewrite the server host for the
  selected environment.
* :func:`join_base_and_path` -- append an expanded path to a base URL.
"""

from __future__ import annotations

from urllib.parse import quote

import httpx

from schemacli.exceptions import InvalidUsageError


def extract_path_params(path: str) -> list[str]:
    """Return the ``{name}`` placeholders of *path* in the order they appear.

    Empty placeholders (``{}``) and an unterminated ``{`` are ignored.

    Example::

        >>> extract_path_params("/account/{id}/statements/{statementId}")
        ['id', 'statementId']
    """
    names: list[str] = []
    i = 0
    while i < len(path):
        if path[i] != "{":
            i += 1
            continue
        end = path.find("}", i)
        if end <= i + 1:
            i += 1
            continue
        names.append(path[i + 1:end])
        i = end + 1
    return names


def expand_path(template: str, names: list[str], values: list[str]) -> str:
    """Replace each ``{name}`` in *template* with its escaped value.

    Values are escaped as a single path segment, so ``/`` inside a value is
    encoded as ``%2F``.
    """
    expanded = template
    for name, value in zip(names, values):
        expanded = expanded.replace("{" + name + "}", quote(value, safe=""))
    return expanded


def apply_env_to_server_url(server_url: str, host_rewrites: dict[str, str]) -> str:
    """Rewrite the host of *server_url* using the environment's host map.

    Hosts are compared case-insensitively; an unmapped host is returned
    unchanged.

    Args:
        server_url: The server URL from the schema document.
        host_rewrites: Lower-case source host -> replacement host.

    Raises:
        InvalidUsageError: If *server_url* is not a valid URL.
    """
    if not host_rewrites:
        return server_url
    try:
        url = httpx.URL(server_url)
    except httpx.InvalidURL as exc:
        raise InvalidUsageError(f"invalid server URL {server_url!r}: {exc}") from exc

    lookup = {host.lower(): target for host, target in host_rewrites.items()}
    target = lookup.get(url.host.lower())
    if target is None:
        return server_url
    return str(url.copy_with(host=target))


def join_base_and_path(base_url: str, path: str) -> str:
    """Append *path* to the path component of *base_url*.

    Trailing slashes on the base path are trimmed and *path* always starts
    with exactly the one ``/`` it declares (one is added if missing).

    Example::

        >>> join_base_and_path("https://api.example.com/api/v1/", "/accounts")
        'https://api.example.com/api/v1/accounts'

    Raises:
        InvalidUsageError: If *base_url* is empty or not a valid URL.
    """
    if not base_url:
        raise InvalidUsageError("empty base url")
    try:
        url = httpx.URL(base_url)
    except httpx.InvalidURL as exc:
        raise InvalidUsageError(f"invalid base url {base_url!r}: {exc}") from exc

    if not path.startswith("/"):
        path = "/" + path
    base_path, sep, base_query = url.raw_path.decode("ascii").partition("?")
    raw_path = base_path.rstrip("/") + path + sep + base_query
    return str(url.copy_with(raw_path=raw_path.encode("ascii")))
