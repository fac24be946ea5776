"""Built-in CLI sub-commands for schemacli.

* :mod:`~schemacli.commands.spec` -- list and verify the loaded schema
  documents.
* :mod:`~schemacli.commands.config` -- view and modify global settings.

Each module exports a :class:`typer.Typer` sub-application that the root app
mounts next to the generated API command groups.
"""
