"""Tests for schemacli.parser.loader."""

from __future__ import annotations

import json
from pathlib import Path

import pytest

from schemacli.exceptions import SpecParseError
from schemacli.parser.loader import (
    BUNDLED_SPECS_DIR,
    load_spec_document,
    load_spec_documents,
    validate_openapi_version,
)

MINIMAL = {
    "openapi": "3.0.3",
    "info": {"title": "Mini", "version": "1.0"},
    "paths": {
        "/ping": {"get": {"operationId": "ping", "responses": {"200": {"description": "ok"}}}}
    },
}


class TestLoadSpecDocuments:
    def test_bundled_documents(self) -> None:
        docs = load_spec_documents()
        assert [d.filename for d in docs] == ["ledger-openapi.json"]
        assert docs[0].name == "ledger-openapi"
        assert docs[0].spec.info.title == "Ledger API"

    def test_bundled_dir_exists(self) -> None:
        assert BUNDLED_SPECS_DIR.is_dir()

    def test_sorted_by_filename(self, tmp_path: Path) -> None:
        (tmp_path / "b.json").write_text(json.dumps(MINIMAL))
        (tmp_path / "a.yaml").write_text("openapi: 3.1.0\ninfo:\n  title: A\n  version: '1'\npaths: {}\n")
        (tmp_path / "notes.txt").write_text("ignored")
        docs = load_spec_documents(tmp_path)
        assert [d.name for d in docs] == ["a", "b"]
        assert docs[0].spec.openapi == "3.1.0"

    def test_missing_directory(self, tmp_path: Path) -> None:
        with pytest.raises(SpecParseError, match="not found"):
            load_spec_documents(tmp_path / "nope")


class TestLoadSpecDocument:
    def test_json(self, tmp_path: Path) -> None:
        path = tmp_path / "mini.json"
        path.write_text(json.dumps(MINIMAL))
        doc = load_spec_document(path)
        assert doc.name == "mini"
        assert "GET" in doc.spec.paths["/ping"].operations()

    def test_empty_file(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.json"
        path.write_text("  \n")
        with pytest.raises(SpecParseError, match="empty"):
            load_spec_document(path)

    def test_invalid_json(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.json"
        path.write_text("{not json")
        with pytest.raises(SpecParseError, match="Invalid JSON"):
            load_spec_document(path)

    def test_invalid_yaml(self, tmp_path: Path) -> None:
        path = tmp_path / "bad.yaml"
        path.write_text("openapi: [unclosed\n")
        with pytest.raises(SpecParseError, match="Invalid YAML"):
            load_spec_document(path)

    def test_non_mapping(self, tmp_path: Path) -> None:
        path = tmp_path / "list.json"
        path.write_text("[1, 2]")
        with pytest.raises(SpecParseError, match="must be a JSON/YAML object"):
            load_spec_document(path)


class TestValidateOpenapiVersion:
    def test_accepts_3x(self) -> None:
        assert validate_openapi_version({"openapi": "3.0.3"}) == "3.0.3"
        assert validate_openapi_version({"openapi": "3.1.0"}) == "3.1.0"

    def test_rejects_swagger(self) -> None:
        with pytest.raises(SpecParseError, match="Swagger"):
            validate_openapi_version({"swagger": "2.0"})

    def test_rejects_missing(self) -> None:
        with pytest.raises(SpecParseError, match="missing 'openapi'"):
            validate_openapi_version({})

    def test_rejects_other_major(self) -> None:
        with pytest.raises(SpecParseError, match="unsupported"):
            validate_openapi_version({"openapi": "4.0.0"})
