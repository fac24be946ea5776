"""Load schema documents from a directory of JSON or YAML files.

The set of documents is closed at startup: every ``*.json``, ``*.yaml`` and
``*.yml`` file in the directory is read in filename order, parsed, checked
for a supported OpenAPI version (3.x) and validated into a
:class:`~schemacli.models.SpecDocument`. Any failure aborts loading with a
:class:`~schemacli.exceptions.SpecParseError`; no partial document set is
ever returned.

Public functions:

* :func:`load_spec_documents` -- Load every document in a directory.
* :func:`load_spec_document` -- Load a single file.
* :func:`validate_openapi_version` -- Check and return the ``openapi``
  version string, rejecting Swagger 2.x and non-3.x versions.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any, Optional, Union

import yaml
from pydantic import ValidationError

from schemacli.exceptions import SpecParseError
from schemacli.models import OpenAPISpec, SpecDocument

logger = logging.getLogger(__name__)

BUNDLED_SPECS_DIR = Path(__file__).resolve().parent.parent / "specs"
"""Directory holding the schema documents shipped with the package."""

_SUFFIXES = (".json", ".yaml", ".yml")


def load_spec_documents(
    directory: Optional[Union[str, Path]] = None,
) -> list[SpecDocument]:
    """Load every schema document in *directory*, sorted by filename.

    Args:
        directory: Directory to scan. ``None`` means the bundled documents.

    Returns:
        The loaded documents in filename order.

    Raises:
        SpecParseError: If the directory does not exist or any document
            cannot be read, parsed or validated.
    """
    root = Path(directory) if directory is not None else BUNDLED_SPECS_DIR
    if not root.is_dir():
        raise SpecParseError(f"Spec directory not found: {root}")

    files = sorted(
        (p for p in root.iterdir() if p.is_file() and p.suffix.lower() in _SUFFIXES),
        key=lambda p: p.name,
    )
    documents = [load_spec_document(path) for path in files]
    logger.debug("loaded %d schema document(s) from %s", len(documents), root)
    return documents


def load_spec_document(path: Union[str, Path]) -> SpecDocument:
    """Load and validate a single schema document.

    The document name is the file stem (``ledger-openapi.json`` ->
    ``ledger-openapi``).

    Raises:
        SpecParseError: If the file cannot be read, parsed or validated.
    """
    file_path = Path(path)
    try:
        content = file_path.read_text(encoding="utf-8")
    except OSError as exc:
        raise SpecParseError(f"Failed to read spec file {file_path}: {exc}") from exc

    if not content.strip():
        raise SpecParseError(f"Spec file is empty: {file_path}")

    hint = "json" if file_path.suffix.lower() == ".json" else "yaml"
    raw = _parse_content(content, hint=hint, source=file_path.name)
    validate_openapi_version(raw, source=file_path.name)

    try:
        spec = OpenAPISpec.model_validate(raw)
    except ValidationError as exc:
        raise SpecParseError(f"Invalid schema document {file_path.name}: {exc}") from exc

    logger.debug(
        "parsed %s: openapi=%s paths=%d", file_path.name, spec.openapi, len(spec.paths)
    )
    return SpecDocument(name=file_path.stem, filename=file_path.name, spec=spec)


def _parse_content(content: str, hint: str, source: str) -> dict[str, Any]:
    """Parse *content* as JSON or YAML depending on *hint*.

    Raises:
        SpecParseError: If the content does not parse or is not a mapping.
    """
    if hint == "json":
        try:
            result = json.loads(content)
        except json.JSONDecodeError as exc:
            raise SpecParseError(f"Invalid JSON in {source}: {exc}") from exc
    else:
        try:
            result = yaml.safe_load(content)
        except yaml.YAMLError as exc:
            raise SpecParseError(f"Invalid YAML in {source}: {exc}") from exc

    if not isinstance(result, dict):
        kind = type(result).__name__ if result is not None else "empty document"
        raise SpecParseError(f"Spec {source} must be a JSON/YAML object (got {kind})")
    return result


def validate_openapi_version(spec: dict[str, Any], source: str = "spec") -> str:
    """Validate and return the OpenAPI version string.

    Args:
        spec: The parsed document.
        source: Name used in error messages.

    Returns:
        The version string (e.g., ``'3.0.3'``, ``'3.1.0'``).

    Raises:
        SpecParseError: For Swagger 2.x, a missing ``openapi`` field, or any
            version outside 3.x.
    """
    if "swagger" in spec:
        raise SpecParseError(
            f"{source}: Swagger {spec['swagger']} is not supported. "
            "Only OpenAPI 3.x documents are supported."
        )

    version = spec.get("openapi")
    if version is None:
        raise SpecParseError(
            f"{source}: missing 'openapi' field. Is this an OpenAPI 3.x document?"
        )

    version_str = str(version)
    if not version_str.startswith("3."):
        raise SpecParseError(f"{source}: unsupported OpenAPI version {version_str}")
    return version_str
