# SPDX-License-Identifier: MIT
"""Choosing which API modules of the primary library survive."""

from __future__ import annotations

import fnmatch
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable, Optional

from .errors import ModuleSelectionError
from .pruner import remove_paths

if TYPE_CHECKING:
    from .config import LibraryConfig


def _module_filename(name: str) -> str:
    name = name.strip()
    return name if "." in name else f"{name}.js"


@dataclass(frozen=True)
class ModuleSelection:
    """Modules to retain from the primary library.

    ``modules`` of ``None`` selects every API module.
    """

    modules: Optional[frozenset[str]] = None

    @classmethod
    def from_names(cls, names: Optional[Iterable[str]]) -> "ModuleSelection":
        """Build a selection from user input; no names means all API modules."""
        chosen = frozenset(_module_filename(n) for n in (names or ()) if n.strip())
        return cls(modules=chosen or None)

    @property
    def is_all(self) -> bool:
        return self.modules is None


@dataclass
class SelectionResult:
    """Modules kept and removed by a selection."""

    kept: list[str] = field(default_factory=list)
    removed: list[str] = field(default_factory=list)


def list_api_modules(modules_dir: Path, patterns: Iterable[str], always_exclude: Iterable[str]) -> list[str]:
    """List the selectable API modules in a library's module directory."""
    excluded = set(always_exclude)
    pattern_list = list(patterns)
    return sorted(
        item.name
        for item in modules_dir.iterdir()
        if item.is_file()
        and item.name not in excluded
        and any(fnmatch.fnmatchcase(item.name, p) for p in pattern_list)
    )


def apply_selection(library_root: Path, library: LibraryConfig, selection: ModuleSelection) -> SelectionResult:
    """Remove always-excluded and non-selected modules from a fetched library.

    Args:
        library_root: Root of the fetched library
        library: Library configuration
        selection: Modules to keep

    Returns:
        SelectionResult with kept API modules and removed files

    Raises:
        ModuleSelectionError: If the selection names an always-excluded or
            unknown module, or the library has no module directory
    """
    modules_dir = library_root / library.modules_dir
    if not modules_dir.is_dir():
        raise ModuleSelectionError(
            f"Module directory '{library.modules_dir}' not found in {library.name}",
            package=library.name,
            path=modules_dir,
        )

    result = SelectionResult()

    if selection.modules is not None:
        forbidden = sorted(selection.modules & set(library.always_exclude))
        if forbidden:
            raise ModuleSelectionError(
                f"Cannot select always-excluded module(s): {', '.join(forbidden)}",
                package=library.name,
            )

    result.removed.extend(
        f"{library.modules_dir}/{name}"
        for name in remove_paths(modules_dir, library.always_exclude)
    )

    api_modules = list_api_modules(modules_dir, library.api_modules, library.always_exclude)

    if selection.modules is None:
        result.kept = api_modules
        return result

    unknown = sorted(selection.modules - set(api_modules))
    if unknown:
        raise ModuleSelectionError(
            f"Unknown module(s): {', '.join(unknown)}. Available: {', '.join(api_modules) or 'none'}",
            package=library.name,
        )

    dropped = [name for name in api_modules if name not in selection.modules]
    result.removed.extend(f"{library.modules_dir}/{name}" for name in remove_paths(modules_dir, dropped))
    result.kept = [name for name in api_modules if name in selection.modules]
    return result
