"""Per-invocation runtime shared by every generated command.

The root callback resolves a :class:`~schemacli.models.RuntimeConfig`,
opens a :class:`~schemacli.client.transport.Transport` and installs an
:class:`~schemacli.output.OutputManager`, then stores all three on the Typer
context as a :class:`Runtime`. Commands fetch it with :func:`get_runtime`
instead of reading globals or the process environment.
"""

from __future__ import annotations

from dataclasses import dataclass

import click

from schemacli.client.transport import Transport
from schemacli.models import RuntimeConfig
from schemacli.output import OutputManager

RUNTIME_KEY = "runtime"


@dataclass
class Runtime:
    config: RuntimeConfig
    transport: Transport
    output: OutputManager


def get_runtime(ctx: click.Context) -> Runtime:
    """Return the :class:`Runtime` stored by the root callback.

    Raises:
        RuntimeError: If the root callback did not run (an internal error).
    """
    obj = ctx.find_root().obj
    runtime = obj.get(RUNTIME_KEY) if isinstance(obj, dict) else None
    if not isinstance(runtime, Runtime):
        raise RuntimeError("internal error: runtime missing from context")
    return runtime
