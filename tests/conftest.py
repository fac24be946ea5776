"""Shared test fixtures for schemacli.

Provides reusable fixtures for loading the bundled schema documents, building
documents from inline dicts, isolating configuration, managing output state,
and running the CLI against an :class:`httpx.MockTransport`. These fixtures
are automatically discovered by pytest and available to all test modules
without explicit imports.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Callable, Optional

import httpx
import pytest

from schemacli.models import OpenAPISpec, SpecDocument
from schemacli.output import reset_output


# ---------------------------------------------------------------------------
# Auto-reset global output state between tests
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def _reset_output_between_tests() -> None:
    """Reset the global OutputManager after every test.

    The OutputManager caches references to sys.stdout/sys.stderr at
    creation time. When Typer's CliRunner redirects those streams during
    a test and the test finishes, the cached references become stale
    ("I/O operation on closed file"). Resetting forces a fresh manager
    to be created on next use.
    """
    yield
    reset_output()


# ---------------------------------------------------------------------------
# Config isolation fixture
# ---------------------------------------------------------------------------


@pytest.fixture(autouse=True)
def isolated_config(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Isolate configuration to a temporary directory.

    Sets XDG_CONFIG_HOME and XDG_DATA_HOME to subdirectories of tmp_path so
    that tests never touch real user config, clears all SCHEMACLI_*
    environment variables, and disables colour so diagnostics are plain
    single lines.

    Returns:
        The tmp_path root directory for additional file creation.
    """
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "config"))
    monkeypatch.setenv("XDG_DATA_HOME", str(tmp_path / "data"))
    monkeypatch.setenv("NO_COLOR", "1")

    for var in [
        "SCHEMACLI_TOKEN",
        "SCHEMACLI_ENV",
        "SCHEMACLI_AUTH",
        "SCHEMACLI_BASE_URL",
        "SCHEMACLI_SPECS_DIR",
    ]:
        monkeypatch.delenv(var, raising=False)

    monkeypatch.chdir(tmp_path)
    return tmp_path


# ---------------------------------------------------------------------------
# Schema document fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def ledger_documents() -> list[SpecDocument]:
    """The bundled documents (the Ledger example API)."""
    from schemacli.parser import load_spec_documents

    return load_spec_documents()


@pytest.fixture
def ledger_spec(ledger_documents: list[SpecDocument]) -> OpenAPISpec:
    """Parsed body of the bundled Ledger document."""
    return ledger_documents[0].spec


def _document_from_dict(raw: dict[str, Any], name: str = "test") -> SpecDocument:
    data = {"openapi": "3.0.3", "info": {"title": "Test", "version": "1"}}
    data.update(raw)
    return SpecDocument(
        name=name,
        filename=f"{name}.json",
        spec=OpenAPISpec.model_validate(data),
    )


@pytest.fixture
def make_document() -> Callable[..., SpecDocument]:
    """Factory building a :class:`SpecDocument` from an inline OpenAPI dict.

    ``openapi`` and ``info`` are filled in; pass ``paths`` and friends.
    """
    return _document_from_dict


# ---------------------------------------------------------------------------
# CLI fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def cli_runner():
    """Typer CLI test runner.

    Returns a CliRunner instance that captures stdout and stderr separately
    so tests can check the data stream and the diagnostics stream
    independently.
    """
    from typer.testing import CliRunner

    return CliRunner()


@pytest.fixture
def make_app(ledger_documents: list[SpecDocument]) -> Callable[..., Any]:
    """Factory building the root app with requests served by *handler*.

    Usage::

        app = make_app(lambda request: httpx.Response(200, json={}))
    """
    from schemacli.app import create_app

    def _factory(
        handler: Callable[[httpx.Request], httpx.Response],
        documents: Optional[list[SpecDocument]] = None,
    ):
        return create_app(
            ledger_documents if documents is None else documents,
            http_transport=httpx.MockTransport(handler),
        )

    return _factory
