# SPDX-License-Identifier: MIT
"""Vendoring configuration.

Everything specific to one vendored library lives in a TOML file: where
the library comes from, which of its modules are API modules, which
dependencies are provided by the platform, how each dependency is pruned
and which patches are applied afterwards.
"""

from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .errors import VendorConfigError
from .fetcher import DEFAULT_FETCH_TIMEOUT, DEFAULT_REGISTRY
from .patcher import Patch
from .pruner import DEFAULT_KEEP_RULE, KeepRule
from .specs import PackageSpec
from .version import resolve_exact_version

DEFAULT_CONFIG_FILENAME = "lite-vendor.toml"


@dataclass
class LibraryConfig:
    """The primary library being vendored.

    Attributes:
        name: Library name
        repository: Git URL of the library
        default_ref: Ref used when none is given on the command line
        modules_dir: Directory holding the library's modules
        api_modules: Glob patterns naming the selectable API modules
        always_exclude: Modules removed regardless of the selection
        payload: Extra paths copied from the checkout besides the manifest
            and ``modules_dir``
    """

    name: str
    repository: str
    default_ref: str = "master"
    modules_dir: str = "lib"
    api_modules: list[str] = field(default_factory=lambda: ["*.js"])
    always_exclude: list[str] = field(default_factory=list)
    payload: list[str] = field(default_factory=list)

    def spec(self, ref: Optional[str] = None) -> PackageSpec:
        """Spec for the library at ``ref`` (default: ``default_ref``)."""
        return PackageSpec.vcs(self.name, self.repository, ref or self.default_ref)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "LibraryConfig":
        for key in ("name", "repository"):
            if not data.get(key):
                raise VendorConfigError(f"Missing required field: '{key}' in [library] section")
        return cls(
            name=data["name"],
            repository=data["repository"],
            default_ref=data.get("default_ref", "master"),
            modules_dir=data.get("modules_dir", "lib").strip("/"),
            api_modules=list(data.get("api_modules", ["*.js"])),
            always_exclude=list(data.get("always_exclude", [])),
            payload=list(data.get("payload", [])),
        )


@dataclass
class VendorConfig:
    """Configuration for a vendoring run.

    Attributes:
        library: The primary library
        default_dest: Output directory used when none is given
        vendor_dir: Dependency directory inside the output
        registry: Base URL of the package registry
        fetch_timeout: Seconds before a fetch is abandoned
        exclude: Dependency names never vendored (provided by the platform)
        stubs: Names replaced by empty modules in the vendor directory
        resolutions: Exact versions that override declared constraints
        keep_rules: Keep rules by package name
        patches: Patch set applied after all packages are in place
    """

    library: LibraryConfig
    default_dest: str = "node_modules/vendored"
    vendor_dir: str = "node_modules"
    registry: str = DEFAULT_REGISTRY
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    exclude: list[str] = field(default_factory=list)
    stubs: list[str] = field(default_factory=list)
    resolutions: dict[str, str] = field(default_factory=dict)
    keep_rules: dict[str, KeepRule] = field(default_factory=dict)
    patches: list[Patch] = field(default_factory=list)

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.fetch_timeout <= 0:
            raise VendorConfigError("fetch_timeout must be positive")
        if not self.vendor_dir or self.vendor_dir.startswith("/") or ".." in Path(self.vendor_dir).parts:
            raise VendorConfigError(f"Invalid vendor_dir: {self.vendor_dir!r}")
        for name, version in self.resolutions.items():
            # Resolutions must be exact; raises VersionUnresolvableError otherwise
            resolve_exact_version(version, package=name)

    def keep_rule(self, package: str) -> KeepRule:
        """Keep rule for a package, the minimal default if none is configured."""
        return self.keep_rules.get(package, DEFAULT_KEEP_RULE)

    def is_excluded(self, package: str) -> bool:
        """Check if a dependency is provided elsewhere and must not be vendored."""
        return package in self.exclude or package in self.stubs

    @classmethod
    def from_toml(cls, config_path: str | Path) -> "VendorConfig":
        """Load configuration from a TOML file.

        Raises:
            VendorConfigError: If the file is invalid or missing required fields
            FileNotFoundError: If the file does not exist
        """
        path = Path(config_path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        try:
            with open(path, "rb") as f:
                data = tomllib.load(f)
        except tomllib.TOMLDecodeError as e:
            raise VendorConfigError(f"Invalid TOML syntax in {path}: {e}") from e
        except UnicodeDecodeError as e:
            raise VendorConfigError(f"Configuration file is not valid UTF-8: {path}: {e}", path=path) from e

        return cls.from_dict(data)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "VendorConfig":
        """Create VendorConfig from a parsed TOML dictionary.

        Raises:
            VendorConfigError: If required fields are missing or malformed
        """
        library = data.get("library")
        if not isinstance(library, dict):
            raise VendorConfigError("Missing required [library] section")

        keep_rules: dict[str, KeepRule] = {}
        for name, rule in data.get("keep", {}).items():
            if not isinstance(rule, dict):
                raise VendorConfigError(f"[keep.{name}] must be a table")
            keep_rules[name] = KeepRule.from_dict(rule)

        patches: list[Patch] = []
        for index, entry in enumerate(data.get("patch", [])):
            try:
                patches.append(Patch.from_dict(entry))
            except (KeyError, TypeError) as e:
                raise VendorConfigError(f"[[patch]] entry {index} is missing field {e}") from e

        try:
            fetch_timeout = float(data.get("fetch_timeout", DEFAULT_FETCH_TIMEOUT))
        except (TypeError, ValueError) as e:
            raise VendorConfigError(f"fetch_timeout must be a number: {e}") from e

        return cls(
            library=LibraryConfig.from_dict(library),
            default_dest=data.get("default_dest", "node_modules/vendored"),
            vendor_dir=data.get("vendor_dir", "node_modules"),
            registry=data.get("registry", DEFAULT_REGISTRY),
            fetch_timeout=fetch_timeout,
            exclude=list(data.get("exclude", [])),
            stubs=list(data.get("stubs", [])),
            resolutions=dict(data.get("resolutions", {})),
            keep_rules=keep_rules,
            patches=patches,
        )
