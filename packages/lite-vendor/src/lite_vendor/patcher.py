# SPDX-License-Identifier: MIT
"""Exact-match source patches for vendored files.

A patch replaces one snippet of a file with another. The snippet must
appear exactly once in the current content; if a ``sha256`` is recorded,
the whole file must also hash to it. There is no fuzzy or context-based
matching: when upstream drifts from the content a patch was written
against, applying it fails and nothing is written. Files are read and
written as raw UTF-8, so line endings are preserved byte for byte.

Example:
    >>> patch = Patch(
    ...     target="node_modules/restify/lib/dtrace.js",
    ...     original="require('dtrace-provider')",
    ...     replacement="require('/usr/node/node_modules/dtrace-provider')",
    ... )
    >>> apply_patches([patch], "build/sdc-clients")
"""

from __future__ import annotations

import hashlib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Optional

from .errors import PatchMismatchError

STUB_CONTENT = "// Intentionally empty: this dependency is not used on the vendored code path.\n"


@dataclass(frozen=True)
class Patch:
    """One text substitution.

    Attributes:
        target: File to patch, relative to the output root
        original: Snippet that must occur exactly once in the file
        replacement: Text written in place of ``original``
        sha256: Optional hash of the full original file content
        description: Human-readable reason for the patch
    """

    target: str
    original: str
    replacement: str
    sha256: Optional[str] = None
    description: str = ""

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "Patch":
        return cls(
            target=data["target"],
            original=data["original"],
            replacement=data["replacement"],
            sha256=data.get("sha256"),
            description=data.get("description", ""),
        )


def _compute_sha256(content: str) -> str:
    # content is decoded without newline translation, so this is the hash of the file bytes
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def apply_patch_text(content: str, patch: Patch) -> str:
    """Apply a patch to in-memory file content.

    Args:
        content: Current file content
        patch: Patch to apply

    Returns:
        Patched content

    Raises:
        PatchMismatchError: If the content does not match the recorded original
    """
    if patch.sha256 is not None:
        actual = _compute_sha256(content)
        if actual != patch.sha256.lower():
            raise PatchMismatchError(
                f"{patch.target} has drifted from the patched original "
                f"(sha256 {actual}, expected {patch.sha256.lower()})",
                path=Path(patch.target),
            )

    count = content.count(patch.original)
    if count == 0:
        raise PatchMismatchError(
            f"{patch.target} does not contain the original text of the patch",
            path=Path(patch.target),
        )
    if count > 1:
        raise PatchMismatchError(
            f"{patch.target} contains the original text {count} times; a patch must match exactly once",
            path=Path(patch.target),
        )

    return content.replace(patch.original, patch.replacement, 1)


def _read_target(root: Path, patch: Patch) -> str:
    path = root / patch.target
    if not path.is_file():
        raise PatchMismatchError(f"Patch target not found: {patch.target}", path=path)
    try:
        return path.read_bytes().decode("utf-8")
    except UnicodeDecodeError as e:
        raise PatchMismatchError(f"{patch.target} is not valid UTF-8 text: {e}", path=path) from e


def _write_target(root: Path, target: str, content: str) -> None:
    (root / target).write_bytes(content.encode("utf-8"))


def apply_patch(patch: Patch, root: str | Path) -> None:
    """Apply one patch to a file under ``root``.

    The file is left unmodified when the patch does not match.

    Raises:
        PatchMismatchError: If the target is missing or does not match
    """
    root_path = Path(root)
    patched = apply_patch_text(_read_target(root_path, patch), patch)
    _write_target(root_path, patch.target, patched)


def apply_patches(patches: Iterable[Patch], root: str | Path) -> list[Patch]:
    """Apply a patch set under ``root``.

    Every patch is checked against in-memory content first; files are only
    written once all of them match, so a mismatch leaves the tree untouched.
    Several patches may target the same file and are applied in order.

    Returns:
        The applied patches

    Raises:
        PatchMismatchError: If any patch does not match
    """
    root_path = Path(root)
    pending: dict[str, str] = {}
    applied: list[Patch] = []

    for patch in patches:
        current = pending[patch.target] if patch.target in pending else _read_target(root_path, patch)
        pending[patch.target] = apply_patch_text(current, patch)
        applied.append(patch)

    for target, content in pending.items():
        _write_target(root_path, target, content)

    return applied


def create_stubs(names: Iterable[str], vendor_root: str | Path) -> list[Path]:
    """Write empty ``<name>.js`` modules so requires of dropped packages resolve.

    Returns:
        Paths of the created stubs
    """
    root = Path(vendor_root)
    created: list[Path] = []
    for name in names:
        stub = root / f"{name}.js"
        stub.parent.mkdir(parents=True, exist_ok=True)
        stub.write_text(STUB_CONTENT, encoding="utf-8")
        created.append(stub)
    return created
