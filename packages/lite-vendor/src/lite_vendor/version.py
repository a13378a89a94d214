# SPDX-License-Identifier: MIT
"""Exact version handling for dependency constraints.

Only pinned versions are accepted: MAJOR.MINOR.PATCH with optional
pre-release and build metadata, optionally written as ``=1.2.3`` or
``v1.2.3``. Ranges, wildcards and dist-tags cannot be reduced to a single
version without a resolver and are rejected.
"""

from __future__ import annotations

import re
from typing import Optional

from .errors import VersionUnresolvableError

# https://semver.org/#is-there-a-suggested-regular-expression-regex-to-check-a-semver-string
SEMVER_PATTERN = re.compile(
    r"^(?P<major>0|[1-9]\d*)"
    r"\.(?P<minor>0|[1-9]\d*)"
    r"\.(?P<patch>0|[1-9]\d*)"
    r"(?:-(?P<prerelease>(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*)"
    r"(?:\.(?:0|[1-9]\d*|\d*[a-zA-Z-][0-9a-zA-Z-]*))*))?"
    r"(?:\+(?P<buildmetadata>[0-9a-zA-Z-]+(?:\.[0-9a-zA-Z-]+)*))?$"
)

RANGE_MARKERS = ("^", "~", ">", "<", "*", "||", " - ")


def is_semver(text: str) -> bool:
    """Check whether a string is a bare semantic version."""
    return SEMVER_PATTERN.match(text) is not None


def resolve_exact_version(constraint: str, package: Optional[str] = None) -> str:
    """Reduce a version constraint to the single version it pins.

    Args:
        constraint: Constraint as written in a manifest
        package: Package name, used in error messages

    Returns:
        The pinned version, without ``=``/``v`` prefix or surrounding space

    Raises:
        VersionUnresolvableError: If the constraint is a range, a tag, or
            otherwise does not name exactly one version

    Examples:
        >>> resolve_exact_version("=1.2.3")
        '1.2.3'
        >>> resolve_exact_version("v0.1.0-beta.1")
        '0.1.0-beta.1'
    """
    text = constraint.strip()
    if not text:
        raise VersionUnresolvableError(constraint, package=package, reason="empty constraint")

    if any(marker in text for marker in RANGE_MARKERS):
        raise VersionUnresolvableError(constraint, package=package, reason="version ranges are not supported")

    if text.startswith("="):
        text = text[1:].strip()
    if text[:1] in ("v", "V"):
        text = text[1:]

    if not is_semver(text):
        raise VersionUnresolvableError(constraint, package=package)
    return text


def is_exact_version(constraint: str) -> bool:
    """Check whether a constraint pins exactly one version."""
    try:
        resolve_exact_version(constraint)
    except VersionUnresolvableError:
        return False
    return True
