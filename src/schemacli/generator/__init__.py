"""CLI generator -- build a Typer command tree from loaded schema documents.

Typical usage::

    from schemacli.generator import build_command_tree

    app = typer.Typer()
    build_command_tree(app, documents)
    app()

Sub-modules:

* :mod:`~schemacli.generator.naming` -- Canonical kebab-case names for
  commands and flags.
* :mod:`~schemacli.generator.param_mapper` -- Map query/header parameters to
  typed ``--option`` flags with hidden raw-name aliases.
* :mod:`~schemacli.generator.body` -- Negotiate and encode request bodies
  (JSON, form-urlencoded, multipart).
* :mod:`~schemacli.generator.pagination` -- Detect pagination styles from
  response shapes and drive ``--all`` fetches.
* :mod:`~schemacli.generator.urls` -- Path templates and server URLs.
* :mod:`~schemacli.generator.command_tree` -- Group operations by tag, detect
  duplicates, and attach commands with generated signatures.
* :mod:`~schemacli.generator.executor` -- Run one generated command.
"""

from schemacli.generator.command_tree import build_command_tree, plan_commands

__all__ = ["build_command_tree", "plan_commands"]
