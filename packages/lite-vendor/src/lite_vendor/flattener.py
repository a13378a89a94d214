# SPDX-License-Identifier: MIT
"""Placing packages as direct children of the vendor root.

Every dependency ends up at ``<vendor_root>/<name>`` (scoped packages at
``<vendor_root>/@scope/name``), never inside another package's own
``node_modules``.
"""

from __future__ import annotations

import shutil
from pathlib import Path

from .errors import FlattenError, NameCollisionError
from .fetcher import InstalledPackage
from .manifest import MANIFEST_FILENAME, read_manifest

NESTED_DEPENDENCY_DIR = "node_modules"


def flat_path(vendor_root: Path, name: str) -> Path:
    """Location of a package directly under the vendor root.

    Raises:
        FlattenError: If the name would escape the vendor root
    """
    parts = name.split("/")
    scoped = len(parts) == 2 and parts[0].startswith("@")
    if not name or (len(parts) > 1 and not scoped) or any(p in ("", ".", "..") for p in parts):
        raise FlattenError(f"Invalid package name for vendor root: {name!r}", package=name)
    return vendor_root.joinpath(*parts)


def flatten(pkg: InstalledPackage, vendor_root: str | Path) -> InstalledPackage:
    """Move a package to ``vendor_root/<name>``.

    A package already at that location with the same version is replaced;
    one with a different version is a name collision.

    Args:
        pkg: Installed (and normally already pruned) package
        vendor_root: Directory holding every vendored package

    Returns:
        The package at its flattened location

    Raises:
        NameCollisionError: If another version of the package is already there
        FlattenError: If the package still contains nested dependencies
    """
    root = Path(vendor_root)
    target = flat_path(root, pkg.name)

    nested = pkg.root_path / NESTED_DEPENDENCY_DIR
    if nested.exists():
        raise FlattenError(
            f"'{pkg.name}' still contains a nested {NESTED_DEPENDENCY_DIR} directory",
            package=pkg.name,
            path=nested,
        )

    if target.resolve() == pkg.root_path.resolve():
        return pkg

    if target.exists():
        existing_manifest = target / MANIFEST_FILENAME
        existing_version = read_manifest(existing_manifest).version if existing_manifest.is_file() else ""
        if existing_version != pkg.version:
            raise NameCollisionError(
                f"'{pkg.name}' {pkg.version} collides with {existing_version or 'an unversioned copy'} "
                f"already at {target}",
                package=pkg.name,
                path=target,
            )
        shutil.rmtree(target)

    target.parent.mkdir(parents=True, exist_ok=True)
    shutil.move(str(pkg.root_path), str(target))
    return pkg.relocated(target)
