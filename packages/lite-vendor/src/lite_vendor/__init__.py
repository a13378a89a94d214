# SPDX-License-Identifier: MIT
"""Selective vendoring of npm libraries and their runtime dependencies.

This package builds a "light" copy of a library: only the selected API
modules, only the dependencies those modules require, each flattened into
one vendor directory, pruned to its runtime files and patched.

Example:
    >>> from lite_vendor import VendorConfig, vendor_library
    >>>
    >>> config = VendorConfig.from_toml("lite-vendor.toml")
    >>> result = vendor_library(
    ...     config,
    ...     ref="master",
    ...     dest_dir="node_modules/sdc-clients",
    ...     modules=["imgapi.js", "amon.js"],
    ... )
    >>> sorted(result.get_vendored_names())
    ['assert-plus', 'restify', ...]
"""

__version__ = "0.1.0"

from .config import (
    DEFAULT_CONFIG_FILENAME,
    LibraryConfig,
    VendorConfig,
)
from .errors import (
    DependencyNotDeclaredError,
    DestinationNotEmptyError,
    DuplicateFetchError,
    FetchFailedError,
    FlattenError,
    InvalidManifestError,
    ManifestMissingError,
    ModuleSelectionError,
    NameCollisionError,
    PatchMismatchError,
    VendorConfigError,
    VendorError,
    VersionConflictError,
    VersionUnresolvableError,
)
from .fetcher import (
    GitSourceProvider,
    InstalledPackage,
    RegistrySourceProvider,
    SourceFetcher,
    SourceProvider,
)
from .flattener import flatten
from .manifest import Manifest, read_dependency_version, read_manifest
from .patcher import Patch, apply_patch, apply_patch_text, apply_patches, create_stubs
from .pruner import DEFAULT_KEEP_RULE, KeepRule, PruneResult, kept_files, prune
from .resolver import DependencyClosure, DependencyResolver, ResolvedPackage
from .selection import ModuleSelection, apply_selection
from .specs import PackageSpec, SourceKind
from .vendor import VendoredPackage, VendorResult, vendor_library, write_vendor_record

__all__ = [
    # Config
    "VendorConfig",
    "LibraryConfig",
    "DEFAULT_CONFIG_FILENAME",
    # Errors
    "VendorError",
    "VendorConfigError",
    "ManifestMissingError",
    "InvalidManifestError",
    "DependencyNotDeclaredError",
    "FetchFailedError",
    "VersionUnresolvableError",
    "DuplicateFetchError",
    "VersionConflictError",
    "NameCollisionError",
    "FlattenError",
    "PatchMismatchError",
    "ModuleSelectionError",
    "DestinationNotEmptyError",
    # Manifest
    "Manifest",
    "read_manifest",
    "read_dependency_version",
    # Fetcher
    "PackageSpec",
    "SourceKind",
    "InstalledPackage",
    "SourceProvider",
    "GitSourceProvider",
    "RegistrySourceProvider",
    "SourceFetcher",
    # Pruner
    "KeepRule",
    "DEFAULT_KEEP_RULE",
    "PruneResult",
    "kept_files",
    "prune",
    # Flattener
    "flatten",
    # Patcher
    "Patch",
    "apply_patch",
    "apply_patch_text",
    "apply_patches",
    "create_stubs",
    # Orchestration
    "ModuleSelection",
    "apply_selection",
    "DependencyClosure",
    "DependencyResolver",
    "ResolvedPackage",
    "VendoredPackage",
    "VendorResult",
    "vendor_library",
    "write_vendor_record",
]
