"""Negotiate and encode request bodies.

Operations that declare a ``requestBody`` get three flags:

* ``--data`` -- raw body: an inline string, ``@file`` or ``-`` for stdin.
* ``--form`` -- repeatable ``key=value`` / ``key=@file`` form fields.
* ``--content-type`` -- override the content type (must be declared).

:class:`BodyNegotiator` turns those flag values into the bytes to send and
the matching ``Content-Type``. Selection order:

1. An explicit ``--content-type`` must be one of the declared types
   (``application/json`` also matches a declared
   ``application/json; charset=utf-8``).
2. Form fields default to ``multipart/form-data`` if declared, else
   ``application/x-www-form-urlencoded``.
3. Raw data defaults to the first declared ``application/json*`` type,
   else the first declared type.

The body is fully built (files read, multipart assembled) before any
request is sent, so an unreadable file never results in a partial request.
"""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass
from typing import BinaryIO, Optional
from urllib.parse import urlencode

import httpx

from schemacli.exceptions import BindingError

JSON_TYPE = "application/json"
FORM_URLENCODED_TYPE = "application/x-www-form-urlencoded"
MULTIPART_TYPE = "multipart/form-data"

DATA_HELP = "Request body data: '@file.json', '-' for stdin, or inline string"
CONTENT_TYPE_HELP = "Override request Content-Type"
FORM_HELP = "Form field: key=value or key=@file (repeatable)"


@dataclass(frozen=True)
class EncodedBody:
    """A serialised request body and the ``Content-Type`` to send with it."""

    content: bytes
    content_type: str


def read_data_arg(arg: str, stdin: Optional[BinaryIO] = None) -> bytes:
    """Resolve a ``--data`` value to bytes.

    Args:
        arg: ``-`` reads standard input, ``@path`` reads a file, anything
            else is sent as-is (UTF-8 encoded). Surrounding whitespace is
            ignored.
        stdin: Binary stream used for ``-``; defaults to ``sys.stdin.buffer``.

    Raises:
        BindingError: If the referenced file cannot be read.
    """
    arg = arg.strip()
    if arg == "-":
        stream = stdin if stdin is not None else sys.stdin.buffer
        return stream.read()
    if arg.startswith("@"):
        path = arg[1:]
        try:
            with open(path, "rb") as fh:
                return fh.read()
        except OSError as exc:
            raise BindingError(f"read --data file {path!r}: {exc}") from exc
    return arg.encode("utf-8")


def _split_form_entry(entry: str) -> tuple[str, str]:
    key, sep, value = entry.partition("=")
    if not sep or not key.strip():
        raise BindingError(f"invalid --form {entry!r} (expected key=value)")
    return key, value


def encode_urlencoded(entries: list[str]) -> bytes:
    """Encode ``key=value`` entries as ``application/x-www-form-urlencoded``.

    Keys are sorted (values of a repeated key keep their order) and spaces
    are encoded as ``+``.

    Raises:
        BindingError: For malformed entries or ``@file`` values.
    """
    pairs: list[tuple[str, str]] = []
    for entry in entries:
        key, value = _split_form_entry(entry)
        if value.startswith("@"):
            raise BindingError(
                f"file upload not supported for {FORM_URLENCODED_TYPE}: {entry!r}"
            )
        pairs.append((key, value))
    pairs.sort(key=lambda pair: pair[0])
    return urlencode(pairs).encode("ascii")


def encode_multipart(entries: list[str], boundary: Optional[str] = None) -> EncodedBody:
    """Encode ``key=value`` / ``key=@path`` entries as ``multipart/form-data``.

    Parts are written in the order given. ``@path`` values are attached as
    file parts named after the file's base name.

    Args:
        entries: Raw ``--form`` values.
        boundary: Boundary string; a random one is generated when omitted.

    Returns:
        The body together with its ``multipart/form-data; boundary=...``
        content type.

    Raises:
        BindingError: For malformed entries or unreadable files.
    """
    parts: list[tuple[str, tuple[Optional[str], bytes, Optional[str]]]] = []
    for entry in entries:
        key, value = _split_form_entry(entry)
        if value.startswith("@"):
            path = value[1:]
            try:
                with open(path, "rb") as fh:
                    payload = fh.read()
            except OSError as exc:
                raise BindingError(f"open --form file {path!r}: {exc}") from exc
            parts.append((key, (os.path.basename(path), payload, "application/octet-stream")))
        else:
            # A None filename makes httpx emit a plain field part.
            parts.append((key, (None, value.encode("utf-8"), None)))

    headers = {"Content-Type": f"{MULTIPART_TYPE}; boundary={boundary}"} if boundary else None
    request = httpx.Request("POST", "http://multipart.invalid", files=parts, headers=headers)
    return EncodedBody(request.read(), request.headers["Content-Type"])


class BodyNegotiator:
    """Choose the wire encoding for an operation's request body.

    Args:
        required: Whether the operation declares the body as required.
        content_types: Declared content types, sorted.
    """

    def __init__(self, required: bool, content_types: list[str]) -> None:
        self.required = required
        self.content_types = list(content_types)

    def supports(self, content_type: str) -> bool:
        """Whether *content_type* is declared (with a loose JSON match)."""
        for declared in self.content_types:
            if declared == content_type:
                return True
            if (
                declared.startswith(content_type)
                and declared.startswith(JSON_TYPE)
                and content_type.startswith(JSON_TYPE)
            ):
                return True
        return False

    def default_data_type(self) -> str:
        for declared in self.content_types:
            if declared.startswith(JSON_TYPE):
                return declared
        return self.content_types[0] if self.content_types else ""

    def default_form_type(self) -> str:
        for prefix in (MULTIPART_TYPE, FORM_URLENCODED_TYPE):
            for declared in self.content_types:
                if declared.startswith(prefix):
                    return declared
        return ""

    def build(
        self,
        data: Optional[str] = None,
        form: Optional[list[str]] = None,
        content_type: Optional[str] = None,
        stdin: Optional[BinaryIO] = None,
    ) -> Optional[EncodedBody]:
        """Build the body from the caller's flags.

        Args:
            data: ``--data`` value, or ``None`` if not given.
            form: ``--form`` values, or ``None`` if not given.
            content_type: ``--content-type`` value, or ``None`` if not given.
            stdin: Stream for ``--data -``.

        Returns:
            The encoded body, or ``None`` when no body was supplied and none
            is required.

        Raises:
            BindingError: If the flags cannot produce a valid body.
        """
        selected = ""
        if content_type is not None:
            selected = content_type.strip()
            if not selected:
                raise BindingError("--content-type set but empty")
            if not self.supports(selected):
                raise BindingError(
                    f"unsupported --content-type {selected!r} for this operation"
                )

        has_form = bool(form)
        has_data = data is not None and data.strip() != ""

        if not has_form and not has_data:
            if self.required:
                raise BindingError("request body required; provide --data or --form")
            return None

        if has_form and not selected:
            selected = self.default_form_type()
            if not selected:
                raise BindingError("this operation does not support form bodies; use --data")
        if has_data and not selected:
            selected = self.default_data_type()
            if not selected:
                raise BindingError("unable to pick a request content-type for this operation")

        if selected.startswith(JSON_TYPE):
            if not has_data:
                raise BindingError("JSON request body requires --data")
            return EncodedBody(read_data_arg(data, stdin=stdin), selected)

        if selected.startswith(FORM_URLENCODED_TYPE):
            if not has_form:
                raise BindingError("form-encoded body requires --form")
            return EncodedBody(encode_urlencoded(form), FORM_URLENCODED_TYPE)

        if selected.startswith(MULTIPART_TYPE):
            if not has_form:
                raise BindingError("multipart body requires --form")
            return encode_multipart(form)

        raise BindingError(f"unsupported content-type {selected!r}")
