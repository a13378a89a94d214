# SPDX-License-Identifier: MIT
"""Error types raised while building a vendor tree.

Every error is fatal to a vendoring run. Each carries the step that failed
and, where known, the package or file that triggered it, so the CLI can
report exactly where the run stopped.
"""

from __future__ import annotations

from pathlib import Path
from typing import Optional


class VendorError(Exception):
    """Base class for all vendoring failures.

    Attributes:
        step: Name of the pipeline step that failed
        package: Package name involved in the failure, if any
        path: File or directory involved in the failure, if any
    """

    step = "vendor"

    def __init__(
        self,
        message: str,
        *,
        package: Optional[str] = None,
        path: Optional[Path] = None,
    ) -> None:
        self.message = message
        self.package = package
        self.path = path
        super().__init__(message)


class VendorConfigError(VendorError):
    """Raised when the vendoring configuration is invalid."""

    step = "config"


class ManifestMissingError(VendorError):
    """Raised when a package directory has no manifest file."""

    step = "manifest"

    def __init__(self, path: Path, *, package: Optional[str] = None) -> None:
        super().__init__(f"Manifest not found: {path}", package=package, path=path)


class InvalidManifestError(VendorError):
    """Raised when a manifest file cannot be parsed."""

    step = "manifest"


class DependencyNotDeclaredError(VendorError):
    """Raised when a dependency has no entry in a manifest."""

    step = "manifest"

    def __init__(self, dependency: str, path: Path, *, package: Optional[str] = None) -> None:
        self.dependency = dependency
        super().__init__(
            f"Dependency '{dependency}' is not declared in {path}",
            package=package,
            path=path,
        )


class FetchFailedError(VendorError):
    """Raised when a package source cannot be obtained."""

    step = "fetch"


class VersionUnresolvableError(VendorError):
    """Raised when a version constraint does not name exactly one version."""

    step = "resolve"

    def __init__(self, constraint: str, *, package: Optional[str] = None, reason: str = "") -> None:
        self.constraint = constraint
        subject = f"'{package}@{constraint}'" if package else f"'{constraint}'"
        detail = f": {reason}" if reason else ""
        super().__init__(
            f"Cannot resolve {subject} to exactly one version{detail}",
            package=package,
        )


class DuplicateFetchError(VendorError):
    """Raised when the same package name is fetched twice in one run."""

    step = "fetch"

    def __init__(self, package: str) -> None:
        super().__init__(f"Package '{package}' was already fetched in this run", package=package)


class VersionConflictError(VendorError):
    """Raised when two different versions of one package are required.

    Attributes:
        existing: Version already in the closure
        requested: Conflicting version that was requested
        existing_chain: Requirement chain that introduced the existing version
        requested_chain: Requirement chain asking for the conflicting version
    """

    step = "resolve"

    def __init__(
        self,
        package: str,
        existing: str,
        requested: str,
        existing_chain: list[str],
        requested_chain: list[str],
    ) -> None:
        self.existing = existing
        self.requested = requested
        self.existing_chain = existing_chain
        self.requested_chain = requested_chain
        super().__init__(
            f"Version conflict for '{package}':\n"
            f"  {existing} required by: {' -> '.join(existing_chain)}\n"
            f"  {requested} required by: {' -> '.join(requested_chain)}",
            package=package,
        )


class NameCollisionError(VendorError):
    """Raised when two versions of one package target the same vendor root."""

    step = "flatten"


class FlattenError(VendorError):
    """Raised when a package cannot be placed in the vendor root."""

    step = "flatten"


class PatchMismatchError(VendorError):
    """Raised when a patch target does not match its recorded original."""

    step = "patch"


class ModuleSelectionError(VendorError):
    """Raised when a module allow-list names modules that cannot be kept."""

    step = "select"


class DestinationNotEmptyError(VendorError):
    """Raised when the destination exists and cleaning was not requested."""

    step = "prepare"
