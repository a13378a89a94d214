# SPDX-License-Identifier: MIT
"""Reading package manifests (package.json).

A manifest declares a package's name, version, entry point and its direct
runtime dependencies. Nothing in this module writes to disk.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

from .errors import DependencyNotDeclaredError, InvalidManifestError, ManifestMissingError

MANIFEST_FILENAME = "package.json"

DEFAULT_ENTRY = "index.js"


@dataclass(frozen=True)
class Manifest:
    """Parsed contents of a package manifest.

    Attributes:
        path: Location of the manifest file
        name: Declared package name
        version: Declared package version
        main: Declared entry point, if any
        dependencies: Mapping of runtime dependency name to version constraint
    """

    path: Path
    name: str
    version: str
    main: Optional[str] = None
    dependencies: dict[str, str] = field(default_factory=dict)

    def dependency_version(self, name: str) -> str:
        """Get the declared constraint for a dependency.

        Raises:
            DependencyNotDeclaredError: If the dependency is not declared
        """
        try:
            return self.dependencies[name]
        except KeyError:
            raise DependencyNotDeclaredError(name, self.path, package=self.name or None) from None

    def entry_file(self) -> str:
        """Resolve the entry file relative to the package root.

        Follows Node's lookup for ``main``: the path itself, the path with a
        ``.js`` suffix, then ``index.js`` inside it. Falls back to the
        declared value (normalized) when none of those exist on disk.
        """
        root = self.path.parent
        if not self.main:
            return DEFAULT_ENTRY

        main = self.main.replace("\\", "/")
        while main.startswith("./"):
            main = main[2:]
        main = main.rstrip("/")
        if not main or main == ".":
            return DEFAULT_ENTRY

        for candidate in (main, f"{main}.js", f"{main}/index.js"):
            if (root / candidate).is_file():
                return candidate
        return main


def read_manifest(manifest_path: str | Path) -> Manifest:
    """Load a manifest file.

    Args:
        manifest_path: Path to a package.json file, or to the package
            directory containing it

    Returns:
        Parsed Manifest

    Raises:
        ManifestMissingError: If the manifest does not exist
        InvalidManifestError: If the manifest is not valid
    """
    path = Path(manifest_path)
    if path.is_dir():
        path = path / MANIFEST_FILENAME
    if not path.is_file():
        raise ManifestMissingError(path)

    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise InvalidManifestError(f"Invalid JSON in {path}: {e}", path=path) from e
    except UnicodeDecodeError as e:
        raise InvalidManifestError(f"Manifest is not valid UTF-8: {path}: {e}", path=path) from e

    if not isinstance(data, dict):
        raise InvalidManifestError(f"Manifest must be a JSON object: {path}", path=path)

    dependencies = data.get("dependencies") or {}
    if not isinstance(dependencies, dict) or not all(
        isinstance(k, str) and isinstance(v, str) for k, v in dependencies.items()
    ):
        raise InvalidManifestError(
            f"'dependencies' must map names to version strings in {path}", path=path
        )

    main = data.get("main")
    return Manifest(
        path=path,
        name=str(data.get("name", "")),
        version=str(data.get("version", "")),
        main=main if isinstance(main, str) else None,
        dependencies=dict(dependencies),
    )


def read_dependency_version(manifest_path: str | Path, dependency_name: str) -> str:
    """Read the version constraint a manifest declares for one dependency.

    Raises:
        ManifestMissingError: If the manifest does not exist
        DependencyNotDeclaredError: If the dependency has no entry
    """
    return read_manifest(manifest_path).dependency_version(dependency_name)
