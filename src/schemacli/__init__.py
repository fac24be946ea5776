"""schemacli -- Turn OpenAPI 3.x documents into a runnable command line.

Every operation in the loaded schema documents becomes a subcommand: one
command group per API tag, one command per operation, with positional
arguments for path parameters and typed ``--flags`` for query and header
parameters and request bodies. List operations whose response shape matches
a known pagination style also get ``--all``.

Typical usage::

    schemacli accounts get-accounts --limit 10
    schemacli accounts get-account acc_123 --pretty
    schemacli transactions list-transactions --all --ndjson

Modules:
    app: Typer application factory and CLI entry point.
    models: Pydantic models shared across the entire package.
    config: XDG-aware global configuration and runtime resolution.
    runtime: Per-invocation bundle of config, transport and output.
    exceptions: Exception hierarchy with exit-code mapping.
    exit_codes: Numeric exit codes following clig.dev conventions.
    output: stdout/stderr formatting system with Rich support.
"""

__version__ = "0.3.0"
