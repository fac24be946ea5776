"""Spec commands -- inspect the schema documents commands are generated from.

Provides the ``schemacli spec`` sub-command group:

* ``spec list`` prints one tab-separated line per loaded document.
* ``spec verify`` re-runs command generation into a scratch tree and
  prints ``ok`` when every document yields a valid, conflict-free tree.
"""

from __future__ import annotations

from typing import Sequence

import typer

from schemacli.exceptions import SchemacliError
from schemacli.models import SpecDocument
from schemacli.output import error


def create_spec_app(documents: Sequence[SpecDocument]) -> typer.Typer:
    """Return the ``spec`` command group bound to *documents*."""
    spec_app = typer.Typer(
        help="Schema document utilities (for maintainers).",
        no_args_is_help=True,
    )

    @spec_app.command("list")
    def spec_list() -> None:
        """List loaded schema documents.

        Each line holds the document name, file name, operation count,
        distinct tag count and first server URL, separated by tabs.

        Example::

            schemacli spec list
        """
        for line in describe_documents(documents):
            typer.echo(line)

    @spec_app.command("verify")
    def spec_verify() -> None:
        """Verify documents parse and generate unique commands."""
        from schemacli.generator import build_command_tree

        scratch = typer.Typer(name="verify-root")
        try:
            build_command_tree(scratch, documents)
        except SchemacliError as exc:
            error(str(exc))
            raise typer.Exit(code=exc.exit_code) from None
        typer.echo("ok")

    return spec_app


def describe_documents(documents: Sequence[SpecDocument]) -> list[str]:
    """Return the ``spec list`` line for every document."""
    lines = []
    for doc in documents:
        ops = 0
        tags: set[str] = set()
        for item in doc.spec.paths.values():
            for operation in item.operations().values():
                ops += 1
                tags.update(operation.tags)
        server = doc.spec.server_url_for_operation(None)
        lines.append(
            f"{doc.name}\t{doc.filename}\tops={ops}\ttags={len(tags)}\tserver={server}"
        )
    return lines
