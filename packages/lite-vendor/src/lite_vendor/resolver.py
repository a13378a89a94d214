# SPDX-License-Identifier: MIT
"""Dependency closure computation.

Starting from the modules left in the primary library, the resolver finds
every package name the surviving code ``require()``s, reads the pinned
version for it from the requiring package's manifest, and repeats for each
newly discovered package until no new names appear. Each name resolves to
exactly one version per run; a second, different version is a conflict.

Discovered packages are fetched into scratch space and pruned as they are
dequeued, since their own requires can only be read from their files. A
conflicting version is therefore caught before it is fetched, but the
version already in the closure may have been fetched before the conflict
was found.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Callable, Iterable, Optional

from .errors import VersionConflictError
from .fetcher import InstalledPackage, SourceFetcher
from .pruner import prune
from .specs import PackageSpec

if TYPE_CHECKING:
    from .config import VendorConfig

# Node core modules; requiring these never pulls in a package
NODE_BUILTINS = frozenset(
    {
        "assert",
        "async_hooks",
        "buffer",
        "child_process",
        "cluster",
        "console",
        "constants",
        "crypto",
        "dgram",
        "diagnostics_channel",
        "dns",
        "domain",
        "events",
        "fs",
        "http",
        "http2",
        "https",
        "inspector",
        "module",
        "net",
        "os",
        "path",
        "perf_hooks",
        "process",
        "punycode",
        "querystring",
        "readline",
        "repl",
        "stream",
        "string_decoder",
        "sys",
        "timers",
        "tls",
        "trace_events",
        "tty",
        "url",
        "util",
        "v8",
        "vm",
        "wasi",
        "worker_threads",
        "zlib",
    }
)

REQUIRE_PATTERN = re.compile(r"""\brequire\s*\(\s*(['"])([^'"\n]+)\1\s*\)""")

SCANNED_SUFFIXES = (".js", ".cjs")


def package_name_from_specifier(specifier: str) -> Optional[str]:
    """Get the package a ``require()`` specifier refers to.

    Returns ``None`` for relative and absolute paths and for Node builtins.

    Examples:
        >>> package_name_from_specifier("restify/lib/index")
        'restify'
        >>> package_name_from_specifier("@scope/pkg/sub")
        '@scope/pkg'
        >>> package_name_from_specifier("./helper") is None
        True
    """
    if not specifier or specifier.startswith(("node:", ".", "/")):
        return None

    parts = specifier.split("/")
    if specifier.startswith("@"):
        if len(parts) < 2 or not parts[1]:
            return None
        name = "/".join(parts[:2])
    else:
        name = parts[0]

    if name in NODE_BUILTINS:
        return None
    return name


def scan_requires(source: str) -> set[str]:
    """Find the package names required by a piece of JavaScript source."""
    names: set[str] = set()
    for match in REQUIRE_PATTERN.finditer(source):
        name = package_name_from_specifier(match.group(2))
        if name:
            names.add(name)
    return names


def scan_package_requires(root: Path, files: Iterable[str]) -> set[str]:
    """Collect the package names required by a package's script files."""
    names: set[str] = set()
    for rel_path in files:
        if rel_path.endswith(SCANNED_SUFFIXES):
            source = (root / rel_path).read_text(encoding="utf-8", errors="replace")
            names.update(scan_requires(source))
    return names


@dataclass
class ResolvedPackage:
    """A package in the dependency closure.

    Attributes:
        name: Package name
        spec: Spec the package is fetched from
        version: The single version resolved for this name
        requested_by: Package whose code first required this one
        requires: Packages this one requires (filled in once it is scanned)
        installed: Fetched and pruned copy in scratch space
    """

    name: str
    spec: PackageSpec
    version: str
    requested_by: str
    requires: list[str] = field(default_factory=list)
    installed: Optional[InstalledPackage] = None


@dataclass
class DependencyClosure:
    """Every package reachable from the primary library, one version per name."""

    root: str
    packages: dict[str, ResolvedPackage] = field(default_factory=dict)
    root_dependencies: list[str] = field(default_factory=list)

    def add_package(self, package: ResolvedPackage) -> None:
        """Add a package to the closure."""
        self.packages[package.name] = package

    def has_package(self, name: str) -> bool:
        """Check if a package exists in the closure."""
        return name in self.packages

    def get_package(self, name: str) -> Optional[ResolvedPackage]:
        """Get a package by name."""
        return self.packages.get(name)

    def versions(self) -> dict[str, str]:
        """Map each package name to its resolved version."""
        return {name: pkg.version for name, pkg in self.packages.items()}

    def get_dependency_chain(self, target: str) -> list[str]:
        """Get the requirement chain from the primary library to a package.

        Args:
            target: Package name to find a chain to

        Returns:
            Names from the primary library down to ``target``
        """
        chain = [target]
        seen = {target}
        current = self.packages.get(target)
        while current is not None and current.requested_by != self.root:
            parent = current.requested_by
            if parent in seen:
                break
            chain.append(parent)
            seen.add(parent)
            current = self.packages.get(parent)
        chain.append(self.root)
        return list(reversed(chain))


class DependencyResolver:
    """Computes the dependency closure of a fetched primary library.

    Args:
        config: Vendoring configuration (exclusions, resolutions, keep rules)
        fetcher: Fetcher used for every discovered package
        staging_dir: Scratch directory for fetched packages
        report: Optional progress callback
    """

    def __init__(
        self,
        config: VendorConfig,
        fetcher: SourceFetcher,
        staging_dir: Path,
        report: Optional[Callable[[str], None]] = None,
    ) -> None:
        self.config = config
        self.fetcher = fetcher
        self.staging_dir = staging_dir
        self.report = report or (lambda message: None)

    def direct_dependencies(self, pkg: InstalledPackage) -> list[PackageSpec]:
        """Specs for the packages required by the files of ``pkg``.

        Raises:
            DependencyNotDeclaredError: If a required package is not in the
                manifest of ``pkg``
        """
        names = scan_package_requires(pkg.root_path, sorted(pkg.files))
        specs: list[PackageSpec] = []
        for name in sorted(names):
            if name == pkg.name or self.config.is_excluded(name):
                continue
            declared = pkg.manifest.dependency_version(name)
            constraint = self.config.resolutions.get(name, declared)
            specs.append(PackageSpec.parse(name, constraint))
        return specs

    def _enqueue(
        self,
        closure: DependencyClosure,
        queue: deque[str],
        requester: str,
        specs: list[PackageSpec],
    ) -> None:
        for spec in specs:
            if spec.name == closure.root:
                continue
            version = spec.resolve()
            existing = closure.get_package(spec.name)
            if existing is not None:
                if existing.version != version:
                    requester_chain = (
                        [closure.root] if requester == closure.root else closure.get_dependency_chain(requester)
                    )
                    raise VersionConflictError(
                        spec.name,
                        existing=existing.version,
                        requested=version,
                        existing_chain=closure.get_dependency_chain(spec.name),
                        requested_chain=requester_chain + [spec.name],
                    )
                continue
            closure.add_package(
                ResolvedPackage(name=spec.name, spec=spec, version=version, requested_by=requester)
            )
            queue.append(spec.name)

    def _staging_path(self, name: str) -> Path:
        return self.staging_dir / name.replace("/", "+")

    def resolve(self, library: InstalledPackage) -> DependencyClosure:
        """Fetch, prune and scan packages until the closure is complete.

        Args:
            library: The primary library, already reduced to its selected modules

        Returns:
            DependencyClosure whose packages are fetched and pruned in scratch space

        Raises:
            VersionConflictError: If a name is required at two different versions
            VersionUnresolvableError: If a constraint does not pin one version
            DependencyNotDeclaredError: If required code has no manifest entry
            FetchFailedError: If a package cannot be fetched
        """
        closure = DependencyClosure(root=library.name)
        queue: deque[str] = deque()

        root_specs = self.direct_dependencies(library)
        closure.root_dependencies = [spec.name for spec in root_specs]
        self._enqueue(closure, queue, closure.root, root_specs)

        while queue:
            name = queue.popleft()
            entry = closure.packages[name]

            self.report(f"Fetching {entry.spec}")
            installed = self.fetcher.fetch(entry.spec, self._staging_path(name))

            pruned = prune(installed, self.config.keep_rule(name))
            if pruned.changed:
                self.report(f"Pruned {name}: removed {len(pruned.removed)} path(s)")

            entry.installed = installed
            specs = self.direct_dependencies(installed)
            entry.requires = [spec.name for spec in specs]
            self._enqueue(closure, queue, name, specs)

        return closure
