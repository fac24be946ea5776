"""Exception hierarchy for schemacli.

All exceptions inherit from :class:`SchemacliError`, which carries an
``exit_code`` attribute mapped to a constant from :mod:`schemacli.exit_codes`.
Generated commands and :func:`schemacli.app.main` catch ``SchemacliError``,
print a single ``Error:`` line to stderr and exit with the error's code.

Subclass hierarchy::

    SchemacliError (exit 1)
    +-- InvalidUsageError        (exit 2)
    |   +-- BindingError         (exit 2)
    +-- AuthError                (exit 3)
    +-- ConnectionError_         (exit 6)
    |   +-- RequestCancelledError
    +-- SpecParseError           (exit 7)
    +-- GenerationError          (exit 7)
    +-- HTTPStatusError          (exit 1)
    +-- PaginationError          (exit 1)
    |   +-- PaginationExceededError
    +-- ConfigError              (exit 1)
"""

from schemacli.exit_codes import (
    EXIT_AUTH_FAILURE,
    EXIT_CONNECTION_ERROR,
    EXIT_GENERIC_FAILURE,
    EXIT_INVALID_USAGE,
    EXIT_SPEC_PARSE_ERROR,
)


class SchemacliError(Exception):
    """Base exception for all schemacli errors.

    Args:
        message: Human-readable error description printed to stderr.
        exit_code: Optional override for the class-level exit code.
    """

    exit_code: int = EXIT_GENERIC_FAILURE

    def __init__(self, message: str, exit_code: int | None = None):
        super().__init__(message)
        if exit_code is not None:
            self.exit_code = exit_code


class InvalidUsageError(SchemacliError):
    """Raised for invalid CLI arguments or flag combinations."""

    exit_code = EXIT_INVALID_USAGE


class BindingError(InvalidUsageError):
    """Raised when a request body cannot be built from the supplied flags.

    Covers bad ``--form`` syntax, unreadable upload files, a missing
    required body, and content-type/encoding combinations the operation
    does not support. No request is sent when this is raised.
    """


class AuthError(SchemacliError):
    """Raised when an operation requires a token and none is configured."""

    exit_code = EXIT_AUTH_FAILURE


class ConnectionError_(SchemacliError):
    """Raised on network-level failures (timeout, DNS resolution, connection refused).

    Named with a trailing underscore to avoid shadowing the built-in
    ``ConnectionError``.
    """

    exit_code = EXIT_CONNECTION_ERROR


class RequestCancelledError(ConnectionError_):
    """Raised when a backoff or inter-page wait is cancelled by the caller."""


class SpecParseError(SchemacliError):
    """Raised when a schema document cannot be read or validated."""

    exit_code = EXIT_SPEC_PARSE_ERROR


class GenerationError(SchemacliError):
    """Raised when the command tree cannot be generated.

    Missing operation ids, duplicate command names within a group,
    unsupported parameter or request body ``$ref`` and conflicting flag
    names are all fatal at startup.
    """

    exit_code = EXIT_SPEC_PARSE_ERROR


class HTTPStatusError(SchemacliError):
    """Raised after a 4xx/5xx response has been printed to stderr.

    Args:
        status_code: The HTTP status code of the failed response.
    """

    def __init__(self, status_code: int):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class PaginationError(SchemacliError):
    """Raised when a page cannot be parsed or lacks the expected item array."""


class PaginationExceededError(PaginationError):
    """Raised when ``--all`` hits ``--max-pages`` before reaching the last page."""

    def __init__(self, max_pages: int):
        super().__init__(f"pagination exceeded --max-pages={max_pages}")
        self.max_pages = max_pages


class ConfigError(SchemacliError):
    """Raised for configuration problems (invalid config file, bad --env/--auth, credential sources)."""

    exit_code = EXIT_GENERIC_FAILURE
