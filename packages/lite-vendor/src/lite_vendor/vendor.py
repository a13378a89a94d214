# SPDX-License-Identifier: MIT
"""Building a vendor tree for a library.

This module drives a whole run:

1. Fetch the primary library at the pinned ref and drop non-selected modules.
2. Compute the dependency closure (each package fetched and pruned in
   scratch space).
3. Flatten every package into the vendor directory.
4. Write stub modules and apply the patch set.
5. Remove scratch space.

Any failure aborts the run; the partial output must be discarded.
"""

from __future__ import annotations

import json
import shutil
import tempfile
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Optional, Union

from .errors import DestinationNotEmptyError, FlattenError
from .fetcher import SourceFetcher
from .flattener import flatten
from .patcher import Patch, apply_patches, create_stubs
from .resolver import DependencyClosure, DependencyResolver
from .selection import ModuleSelection, apply_selection
from .specs import SourceKind

if TYPE_CHECKING:
    from .config import VendorConfig


@dataclass
class VendoredPackage:
    """A dependency placed in the vendor directory.

    Attributes:
        name: Package name
        version: Resolved version
        source: Constraint the package was fetched from
        source_kind: "registry" or "vcs"
        path: Flattened location
        requires: Vendored packages this one requires
    """

    name: str
    version: str
    source: str
    source_kind: str
    path: Path
    requires: list[str] = field(default_factory=list)


@dataclass
class VendorResult:
    """Result of a vendoring run.

    Attributes:
        dest_dir: Output directory
        library: Primary library name
        ref: Ref the library was checked out at
        library_version: Version declared by the library's manifest
        selected_modules: API modules kept in the library
        packages: Vendored dependencies
        stubs: Stub modules written to the vendor directory
        patches_applied: Patches applied to the output
        closure: The dependency closure the packages came from
    """

    dest_dir: Path
    library: str
    ref: str
    library_version: str = ""
    selected_modules: list[str] = field(default_factory=list)
    packages: list[VendoredPackage] = field(default_factory=list)
    stubs: list[Path] = field(default_factory=list)
    patches_applied: list[Patch] = field(default_factory=list)
    closure: Optional[DependencyClosure] = None

    def get_package(self, name: str) -> Optional[VendoredPackage]:
        for pkg in self.packages:
            if pkg.name == name:
                return pkg
        return None

    def get_vendored_names(self) -> set[str]:
        return {pkg.name for pkg in self.packages}


def prepare_destination(dest_dir: Path, clean: bool = True) -> None:
    """Make sure the destination exists and is empty.

    Raises:
        DestinationNotEmptyError: If the destination holds files and
            ``clean`` is false, is not a directory, or contains the
            current working directory
    """
    if dest_dir.exists():
        if not dest_dir.is_dir():
            raise DestinationNotEmptyError(f"Destination is not a directory: {dest_dir}", path=dest_dir)

        cwd = Path.cwd().resolve()
        resolved = dest_dir.resolve()
        if resolved == cwd or resolved in cwd.parents:
            raise DestinationNotEmptyError(
                f"Refusing to use {dest_dir} as destination: it contains the working directory",
                path=dest_dir,
            )

        if any(dest_dir.iterdir()):
            if not clean:
                raise DestinationNotEmptyError(f"Destination is not empty: {dest_dir}", path=dest_dir)
            shutil.rmtree(dest_dir)

    dest_dir.mkdir(parents=True, exist_ok=True)


def vendor_library(
    config: VendorConfig,
    ref: Optional[str] = None,
    dest_dir: Optional[Union[str, Path]] = None,
    modules: Optional[Union[ModuleSelection, Iterable[str]]] = None,
    *,
    fetcher: Optional[SourceFetcher] = None,
    clean: bool = True,
    report: Optional[Callable[[str], None]] = None,
) -> VendorResult:
    """Vendor the configured library and its runtime dependencies.

    Args:
        config: Vendoring configuration
        ref: Library ref to check out (default: ``library.default_ref``)
        dest_dir: Output directory (default: ``default_dest``)
        modules: Module allow-list; ``None`` or empty keeps every API module
        fetcher: Fetcher to use (default: registry and git providers)
        clean: Remove an existing destination before starting
        report: Optional progress callback

    Returns:
        VendorResult describing the output tree

    Raises:
        VendorError: Any failure; the output tree is then incomplete
    """
    report = report or (lambda message: None)
    dest = Path(dest_dir or config.default_dest)
    selection = modules if isinstance(modules, ModuleSelection) else ModuleSelection.from_names(modules)
    fetcher = fetcher or SourceFetcher(registry=config.registry, timeout=config.fetch_timeout)
    spec = config.library.spec(ref)

    prepare_destination(dest, clean=clean)

    report(f"Fetching {config.library.name} at {spec.ref}")
    library = fetcher.fetch(spec, dest, payload=[config.library.modules_dir, *config.library.payload])

    selected = apply_selection(dest, config.library, selection)
    report(f"Selected modules: {', '.join(selected.kept) or '(none)'}")

    result = VendorResult(
        dest_dir=dest,
        library=config.library.name,
        ref=spec.ref,
        library_version=library.version,
        selected_modules=selected.kept,
    )

    vendor_root = dest / config.vendor_dir
    with tempfile.TemporaryDirectory(prefix="lite-vendor-") as staging:
        resolver = DependencyResolver(config, fetcher, Path(staging), report=report)
        closure = resolver.resolve(library)
        result.closure = closure

        for name, entry in closure.packages.items():
            if entry.installed is None:
                raise FlattenError(f"'{name}' was resolved but never fetched", package=name)
            placed = flatten(entry.installed, vendor_root)
            # vcs packages report the version their manifest declares
            version = entry.version if entry.spec.source_kind is SourceKind.REGISTRY else placed.version
            result.packages.append(
                VendoredPackage(
                    name=name,
                    version=version,
                    source=entry.spec.version_constraint,
                    source_kind=entry.spec.source_kind.value,
                    path=placed.root_path,
                    requires=list(entry.requires),
                )
            )
            report(f"Vendored {name}@{version}")

    if config.stubs:
        result.stubs = create_stubs(config.stubs, vendor_root)

    result.patches_applied = apply_patches(config.patches, dest)
    if result.patches_applied:
        report(f"Applied {len(result.patches_applied)} patch(es)")

    return result


def write_vendor_record(result: VendorResult, output_path: str | Path) -> None:
    """Write a JSON record of what a run vendored.

    Useful for auditing which versions ended up in a tree. The record lists
    the library ref, selected modules, every vendored package with its
    version, source and direct requirements, stubs and applied patches.
    """
    packages: dict[str, dict] = {}
    for pkg in result.packages:
        packages[pkg.name] = {
            "version": pkg.version,
            "source": pkg.source,
            "source_kind": pkg.source_kind,
            "path": pkg.path.relative_to(result.dest_dir).as_posix(),
            "requires": pkg.requires,
        }

    record: dict = {
        "library": {
            "name": result.library,
            "ref": result.ref,
            "version": result.library_version,
            "modules": result.selected_modules,
        },
        "packages": packages,
        "root_dependencies": list(result.closure.root_dependencies) if result.closure else [],
        "stubs": [stub.relative_to(result.dest_dir).as_posix() for stub in result.stubs],
        "patches": [patch.target for patch in result.patches_applied],
    }

    output = Path(output_path)
    output.parent.mkdir(parents=True, exist_ok=True)
    output.write_text(json.dumps(record, indent=2), encoding="utf-8")
