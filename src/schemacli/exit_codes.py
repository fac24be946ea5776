"""Numeric process exit codes following `clig.dev <https://clig.dev/>`_ conventions.

Each constant maps to a specific error category and is referenced by the
corresponding :class:`~schemacli.exceptions.SchemacliError` subclass.
External tooling (CI scripts, shell wrappers) can inspect the exit code to
determine the failure class without parsing stderr.

Example::

    $ schemacli accounts get-account
    $ echo $?
    2   # EXIT_INVALID_USAGE -- missing positional argument
"""

EXIT_SUCCESS = 0
"""The command completed successfully."""

EXIT_GENERIC_FAILURE = 1
"""An unclassified error occurred, including HTTP 4xx/5xx responses."""

EXIT_INVALID_USAGE = 2
"""The command was invoked with invalid arguments or an unusable request body."""

EXIT_AUTH_FAILURE = 3
"""A token is required but none was configured."""

EXIT_CONNECTION_ERROR = 6
"""A network-level error occurred (timeout, DNS failure, connection refused)."""

EXIT_SPEC_PARSE_ERROR = 7
"""A schema document could not be parsed or could not be turned into commands."""

EXIT_CANCELLED = 130
"""The invocation was interrupted (Ctrl-C)."""
