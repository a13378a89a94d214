# SPDX-License-Identifier: MIT
"""Stripping installed packages down to their runtime files.

Each package is pruned against a keep rule. The manifest and the entry
file always survive; a rule can add files, directories or glob patterns,
and can drop paths inside the directories it keeps. Everything else is
deleted, along with any directory left empty.
"""

from __future__ import annotations

import fnmatch
import shutil
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Iterable

from .manifest import MANIFEST_FILENAME

if TYPE_CHECKING:
    from .fetcher import InstalledPackage


@dataclass(frozen=True)
class KeepRule:
    """Which files of a package survive pruning.

    Attributes:
        keep: Files, directories or glob patterns kept in addition to the
            manifest and the entry file. A directory keeps everything below it.
        exclude: Paths or patterns removed even when ``keep`` matches them.
            Never applies to the manifest.
    """

    keep: tuple[str, ...] = ()
    exclude: tuple[str, ...] = ()

    @classmethod
    def from_dict(cls, data: dict) -> "KeepRule":
        return cls(
            keep=tuple(_clean(p) for p in data.get("keep", [])),
            exclude=tuple(_clean(p) for p in data.get("exclude", [])),
        )


# Manifest plus single entry file
DEFAULT_KEEP_RULE = KeepRule()


@dataclass
class PruneResult:
    """Outcome of pruning one package."""

    package: str
    removed: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.removed)


def _clean(pattern: str) -> str:
    pattern = pattern.replace("\\", "/").strip()
    while pattern.startswith("./"):
        pattern = pattern[2:]
    return pattern.strip("/")


def _matches(rel_path: str, patterns: Iterable[str]) -> bool:
    """Check a relative path against patterns, directories matching their contents."""
    parts = rel_path.split("/")
    prefixes = ["/".join(parts[: i + 1]) for i in range(len(parts))]
    for pattern in patterns:
        for prefix in prefixes:
            if prefix == pattern or fnmatch.fnmatchcase(prefix, pattern):
                return True
    return False


def is_kept(rel_path: str, rule: KeepRule, entry_file: str) -> bool:
    """Decide whether one relative path survives a keep rule."""
    if rel_path == MANIFEST_FILENAME:
        return True
    if _matches(rel_path, rule.exclude):
        return False
    if rel_path == entry_file:
        return True
    return _matches(rel_path, rule.keep)


def list_files(root: Path) -> set[str]:
    """List every file below a directory as relative POSIX paths."""
    return {p.relative_to(root).as_posix() for p in root.rglob("*") if p.is_file() or p.is_symlink()}


def kept_files(pkg: InstalledPackage, rule: KeepRule = DEFAULT_KEEP_RULE) -> set[str]:
    """Compute which of a package's files survive pruning, without deleting anything."""
    entry = pkg.manifest.entry_file()
    return {path for path in pkg.files if is_kept(path, rule, entry)}


def prune(pkg: InstalledPackage, rule: KeepRule = DEFAULT_KEEP_RULE) -> PruneResult:
    """Delete every file of an installed package not matched by its keep rule.

    Running it again on an already-pruned package removes nothing.

    Args:
        pkg: Installed package, pruned in place
        rule: Keep rule for this package

    Returns:
        PruneResult listing removed files and directories
    """
    result = PruneResult(package=pkg.name)
    root = pkg.root_path
    entry = pkg.manifest.entry_file()

    for rel_path in sorted(pkg.files):
        if is_kept(rel_path, rule, entry):
            continue
        target = root / rel_path
        target.unlink()
        result.removed.append(rel_path)

    # Deepest first so parents empty out before they are checked
    directories = sorted(
        (p for p in root.rglob("*") if p.is_dir() and not p.is_symlink()),
        key=lambda p: len(p.parts),
        reverse=True,
    )
    for directory in directories:
        if not any(directory.iterdir()):
            directory.rmdir()
            result.removed.append(directory.relative_to(root).as_posix() + "/")

    return result


def remove_paths(root: Path, rel_paths: Iterable[str]) -> list[str]:
    """Remove files or directory trees below ``root``, ignoring missing ones."""
    removed: list[str] = []
    for rel_path in rel_paths:
        target = root / _clean(rel_path)
        if target.is_dir() and not target.is_symlink():
            shutil.rmtree(target)
        elif target.exists() or target.is_symlink():
            target.unlink()
        else:
            continue
        removed.append(_clean(rel_path))
    return removed
