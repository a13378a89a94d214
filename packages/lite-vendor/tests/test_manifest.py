# SPDX-License-Identifier: MIT
"""Tests for the manifest reader."""

import json
from pathlib import Path

import pytest

from lite_vendor.errors import DependencyNotDeclaredError, InvalidManifestError, ManifestMissingError
from lite_vendor.manifest import read_dependency_version, read_manifest


def _write_manifest(directory: Path, data) -> Path:
    path = directory / "package.json"
    path.write_text(json.dumps(data), encoding="utf-8")
    return path


class TestReadManifest:
    """Tests for read_manifest."""

    def test_reads_fields(self, tmp_path: Path):
        """Name, version, main and dependencies should be read."""
        _write_manifest(
            tmp_path,
            {"name": "restify", "version": "2.6.0", "main": "./lib/index", "dependencies": {"once": "1.1.1"}},
        )

        manifest = read_manifest(tmp_path / "package.json")

        assert manifest.name == "restify"
        assert manifest.version == "2.6.0"
        assert manifest.main == "./lib/index"
        assert manifest.dependencies == {"once": "1.1.1"}

    def test_accepts_package_directory(self, tmp_path: Path):
        """A package directory should resolve to its package.json."""
        _write_manifest(tmp_path, {"name": "once", "version": "1.1.1"})
        assert read_manifest(tmp_path).name == "once"

    def test_missing_dependencies_is_empty(self, tmp_path: Path):
        """A manifest without dependencies should have none."""
        _write_manifest(tmp_path, {"name": "clone", "version": "0.1.5"})
        assert read_manifest(tmp_path).dependencies == {}

    def test_missing_file_raises(self, tmp_path: Path):
        """A missing manifest should raise ManifestMissingError."""
        with pytest.raises(ManifestMissingError, match="Manifest not found"):
            read_manifest(tmp_path / "package.json")

    def test_invalid_json_raises(self, tmp_path: Path):
        """Invalid JSON should raise InvalidManifestError."""
        (tmp_path / "package.json").write_text("{not json", encoding="utf-8")
        with pytest.raises(InvalidManifestError, match="Invalid JSON"):
            read_manifest(tmp_path)

    def test_invalid_utf8_raises(self, tmp_path: Path):
        """Undecodable bytes are reported as an invalid manifest."""
        (tmp_path / "package.json").write_bytes(b'{"name": "\xff"}')
        with pytest.raises(InvalidManifestError, match="not valid UTF-8") as exc_info:
            read_manifest(tmp_path)
        assert exc_info.value.path == tmp_path / "package.json"

    def test_non_object_raises(self, tmp_path: Path):
        """A JSON array is not a manifest."""
        _write_manifest(tmp_path, ["restify"])
        with pytest.raises(InvalidManifestError, match="JSON object"):
            read_manifest(tmp_path)

    def test_non_string_dependency_raises(self, tmp_path: Path):
        """Dependency constraints must be strings."""
        _write_manifest(tmp_path, {"name": "x", "version": "1.0.0", "dependencies": {"once": 1}})
        with pytest.raises(InvalidManifestError, match="dependencies"):
            read_manifest(tmp_path)


class TestReadDependencyVersion:
    """Tests for read_dependency_version."""

    def test_returns_constraint(self, tmp_path: Path):
        """The declared constraint should be returned verbatim."""
        path = _write_manifest(tmp_path, {"name": "x", "version": "1.0.0", "dependencies": {"verror": "1.3.3"}})
        assert read_dependency_version(path, "verror") == "1.3.3"

    def test_undeclared_raises(self, tmp_path: Path):
        """An undeclared dependency should raise DependencyNotDeclaredError."""
        path = _write_manifest(tmp_path, {"name": "x", "version": "1.0.0", "dependencies": {}})

        with pytest.raises(DependencyNotDeclaredError) as exc_info:
            read_dependency_version(path, "verror")

        assert exc_info.value.dependency == "verror"
        assert exc_info.value.step == "manifest"

    def test_missing_manifest_raises(self, tmp_path: Path):
        """A missing manifest should raise ManifestMissingError."""
        with pytest.raises(ManifestMissingError):
            read_dependency_version(tmp_path / "package.json", "verror")


class TestEntryFile:
    """Tests for Manifest.entry_file."""

    def test_default_is_index(self, tmp_path: Path):
        """No main should mean index.js."""
        _write_manifest(tmp_path, {"name": "once", "version": "1.1.1"})
        assert read_manifest(tmp_path).entry_file() == "index.js"

    def test_main_without_extension(self, tmp_path: Path):
        """main without .js should resolve to the .js file."""
        _write_manifest(tmp_path, {"name": "restify", "version": "2.6.0", "main": "./lib/index"})
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "index.js").write_text("", encoding="utf-8")
        assert read_manifest(tmp_path).entry_file() == "lib/index.js"

    def test_main_directory(self, tmp_path: Path):
        """main naming a directory should resolve to its index.js."""
        _write_manifest(tmp_path, {"name": "mime", "version": "1.2.11", "main": "lib"})
        (tmp_path / "lib").mkdir()
        (tmp_path / "lib" / "index.js").write_text("", encoding="utf-8")
        assert read_manifest(tmp_path).entry_file() == "lib/index.js"

    def test_main_exact_file(self, tmp_path: Path):
        """main naming an existing file should be used as is."""
        _write_manifest(tmp_path, {"name": "uuid", "version": "1.4.0", "main": "./uuid.js"})
        (tmp_path / "uuid.js").write_text("", encoding="utf-8")
        assert read_manifest(tmp_path).entry_file() == "uuid.js"
