"""Response and diagnostic printing for schemacli.

Follows `clig.dev <https://clig.dev/>`_ conventions:

* **stdout** -- response bodies only. This is what downstream tools pipe
  and parse.
* **stderr** -- all diagnostics (status lines, headers, warnings, errors,
  debug traces). Never contaminates the data stream.
* **TTY detection** -- JSON bodies are pretty-printed (and syntax
  highlighted with Rich) when stdout is an interactive terminal, compact
  when piped. ``--pretty`` / ``--no-pretty`` override the detection.
* **Colour control** -- respects ``NO_COLOR``, ``TERM=dumb``, and the
  ``--no-color`` CLI flag.

The module exposes two layers:

1. :class:`OutputManager` -- a stateful object holding format preferences
   and Rich consoles. Created once in :func:`~schemacli.app.main_callback`
   and installed via :func:`set_output`.
2. Module-level convenience functions (:func:`info`, :func:`error`,
   :func:`debug`, etc.) that delegate to the global ``OutputManager``
   instance so callers do not need to pass the manager around.
"""

from __future__ import annotations

import json
import os
import sys
from typing import Any, Iterable, Optional

import httpx
from rich.console import Console
from rich.markup import escape
from rich.syntax import Syntax

REDACTED = "<redacted>"

_REDACTED_HEADERS = frozenset({"authorization", "proxy-authorization", "set-cookie"})


class OutputManager:
    """Prints response bodies to stdout and everything else to stderr.

    Args:
        pretty: ``True`` forces indented JSON, ``False`` forces bodies to be
            written as received, ``None`` picks pretty output when stdout
            is a TTY.
        ndjson: Emit paginated items one JSON document per line.
        print_status: Print the HTTP status code to stderr.
        print_headers: Print response headers to stderr.
        no_color: Disable all colour and Rich markup.
        verbose: Enable debug-level messages on stderr.
    """

    def __init__(
        self,
        pretty: Optional[bool] = None,
        ndjson: bool = False,
        print_status: bool = False,
        print_headers: bool = False,
        no_color: bool = False,
        verbose: bool = False,
    ) -> None:
        self._no_color = no_color or _should_disable_color()
        self._pretty = _is_tty() if pretty is None else pretty
        self._ndjson = ndjson
        self._print_status = print_status
        self._print_headers = print_headers
        self._verbose = verbose

        # Console for stdout (highlighted JSON on terminals)
        self._stdout = Console(file=sys.stdout, no_color=self._no_color)

        # Console for stderr (diagnostics)
        self._stderr = Console(file=sys.stderr, no_color=self._no_color, stderr=True)

    @property
    def ndjson_enabled(self) -> bool:
        """Whether ``--ndjson`` output is active."""
        return self._ndjson

    # ------------------------------------------------------------------ #
    # Data output (stdout)
    # ------------------------------------------------------------------ #

    def print_http(self, status: int, headers: Optional[httpx.Headers], body: bytes) -> None:
        """Print a successful response.

        The status line and headers go to stderr (when enabled), the body to
        stdout.

        Args:
            status: HTTP status code.
            headers: Response headers.
            body: Raw response body; nothing is printed when empty.
        """
        if self._print_status:
            self._write_err(f"{status}")
        if self._print_headers and headers is not None:
            self._write_headers(headers)
        self.print_body(body)

    def print_body(self, body: bytes) -> None:
        """Print a response body to stdout."""
        self._write_body(body, err=False)

    def print_http_error(
        self, status: int, headers: Optional[httpx.Headers], body: bytes
    ) -> None:
        """Print a 4xx/5xx response to stderr.

        A ``HTTP <code> <reason>`` line is always printed, followed by the
        headers (when enabled) and the error body.
        """
        reason = httpx.codes.get_reason_phrase(status)
        self._write_err(f"HTTP {status} {reason}" if reason else f"HTTP {status}")
        if self._print_headers and headers is not None:
            self._write_headers(headers)
        self._write_body(body, err=True)

    def print_ndjson(self, items: Iterable[Any]) -> None:
        """Print one compact JSON document per line to stdout."""
        for item in items:
            line = json.dumps(item, ensure_ascii=False, separators=(",", ":"))
            sys.stdout.write(line + "\n")
        sys.stdout.flush()

    # ------------------------------------------------------------------ #
    # Diagnostics (stderr)
    # ------------------------------------------------------------------ #

    def info(self, message: str) -> None:
        """Print an informational message to stderr.

        Args:
            message: The message text.
        """
        if self._no_color:
            print(message, file=sys.stderr, flush=True)
        else:
            self._stderr.print(escape(message))

    def warning(self, message: str) -> None:
        """Print a yellow warning to stderr.

        Args:
            message: The warning text.
        """
        if self._no_color:
            print(f"Warning: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[yellow]Warning:[/yellow] {escape(message)}")

    def error(self, message: str) -> None:
        """Print a bold-red error to stderr. Never suppressed.

        Args:
            message: The error text.
        """
        if self._no_color:
            print(f"Error: {message}", file=sys.stderr, flush=True)
        else:
            self._stderr.print(f"[bold red]Error:[/bold red] {escape(message)}")

    def debug(self, message: str) -> None:
        """Print a debug message to stderr. Only shown when verbose.

        Args:
            message: The debug text (prefixed with ``[debug]`` on output).
        """
        if self._verbose:
            if self._no_color:
                print(f"[debug] {message}", file=sys.stderr, flush=True)
            else:
                self._stderr.print(f"[dim]\\[debug] {escape(message)}[/dim]")

    def trace(self, line: str) -> None:
        """Print one raw request/response trace line to stderr."""
        self._write_err(line)

    # ------------------------------------------------------------------ #
    # Private helpers
    # ------------------------------------------------------------------ #

    def _write_err(self, text: str) -> None:
        print(text, file=sys.stderr, flush=True)

    def _write_headers(self, headers: httpx.Headers) -> None:
        for key, value in headers.items():
            if key.lower() in _REDACTED_HEADERS:
                value = REDACTED
            self._write_err(f"{key}: {value}")

    def _write_body(self, body: bytes, err: bool) -> None:
        if not body:
            return
        stream = sys.stderr if err else sys.stdout
        text = body.decode("utf-8", errors="replace")

        if self._pretty:
            try:
                parsed = json.loads(text)
            except ValueError:
                parsed = None
            else:
                text = json.dumps(parsed, indent=2, ensure_ascii=False)
                if not err and _is_tty() and not self._no_color:
                    self._stdout.print(Syntax(text, "json", theme="monokai", word_wrap=True))
                    return

        stream.write(text)
        if not text.endswith("\n"):
            stream.write("\n")
        stream.flush()


# ------------------------------------------------------------------ #
# Module-level helpers
# ------------------------------------------------------------------ #


def redact_headers(headers: httpx.Headers) -> list[tuple[str, str]]:
    """Return header items with credentials replaced by ``<redacted>``."""
    out: list[tuple[str, str]] = []
    for key, value in headers.items():
        if key.lower() in ("authorization", "proxy-authorization"):
            value = REDACTED
        out.append((key, value))
    return out


def _is_tty() -> bool:
    """Check if stdout is a TTY."""
    return hasattr(sys.stdout, "isatty") and sys.stdout.isatty()


def _should_disable_color() -> bool:
    """Check if color should be disabled per clig.dev.

    Returns True when NO_COLOR env var is set (any value) or TERM=dumb.
    """
    if os.environ.get("NO_COLOR") is not None:
        return True
    if os.environ.get("TERM") == "dumb":
        return True
    return False


# ------------------------------------------------------------------ #
# Global output instance (set during app startup)
# ------------------------------------------------------------------ #

_output: Optional[OutputManager] = None


def get_output() -> OutputManager:
    """Return the global :class:`OutputManager` instance.

    If no instance has been installed via :func:`set_output`, a default
    ``OutputManager`` is created lazily.
    """
    global _output
    if _output is None:
        _output = OutputManager()
    return _output


def set_output(output: OutputManager) -> None:
    """Install *output* as the global :class:`OutputManager` instance.

    Called once during CLI startup from :func:`~schemacli.app.main_callback`.
    """
    global _output
    _output = output


def reset_output() -> None:
    """Reset the global :class:`OutputManager` to ``None``.

    Primarily useful in test suites to ensure a clean state between tests.
    """
    global _output
    _output = None


# ------------------------------------------------------------------ #
# Convenience functions that use the global instance
# ------------------------------------------------------------------ #


def info(message: str) -> None:
    """Print info message to stderr via the global OutputManager."""
    get_output().info(message)


def error(message: str) -> None:
    """Print error to stderr via the global OutputManager."""
    get_output().error(message)


def warning(message: str) -> None:
    """Print warning to stderr via the global OutputManager."""
    get_output().warning(message)


def debug(message: str) -> None:
    """Print debug message to stderr via the global OutputManager."""
    get_output().debug(message)
