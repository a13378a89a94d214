# SPDX-License-Identifier: MIT
"""Package specs: what to fetch and from where.

A dependency is written in a manifest either as a registry version
(``"1.2.3"``) or as a version-control reference
(``"git://github.com/user/repo.git#<sha>"``). Both forms must pin exactly
one revision.
"""

from __future__ import annotations

import enum
import re
from dataclasses import dataclass
from urllib.parse import urlsplit

from .errors import VersionUnresolvableError
from .version import resolve_exact_version

VCS_PREFIXES = ("git://", "git+https://", "git+http://", "git+ssh://", "git+file://", "github:")

# user/repo#ref shorthand for GitHub
GITHUB_SHORTHAND = re.compile(r"^(?P<user>[A-Za-z0-9_.-]+)/(?P<repo>[A-Za-z0-9_.-]+)(?:#.*)?$")

# user@host:path form understood by git
SCP_LIKE_URL = re.compile(r"^(?:[^@/]+@)?(?P<host>[^:/]+):(?P<path>.+)$")


class SourceKind(enum.Enum):
    """Where a package's source comes from."""

    REGISTRY = "registry"
    VCS_REF = "vcs"


@dataclass(frozen=True)
class PackageSpec:
    """One dependency to materialize.

    Attributes:
        name: Package name
        version_constraint: Constraint as declared (exact version or vcs URL#ref)
        source_kind: Registry install or version-control checkout
    """

    name: str
    version_constraint: str
    source_kind: SourceKind = SourceKind.REGISTRY

    @classmethod
    def parse(cls, name: str, constraint: str) -> "PackageSpec":
        """Build a spec from a manifest dependency entry."""
        return cls(name=name, version_constraint=constraint.strip(), source_kind=detect_source_kind(constraint))

    @classmethod
    def vcs(cls, name: str, url: str, ref: str) -> "PackageSpec":
        """Build a version-control spec from a repository URL and a ref."""
        return cls(name=name, version_constraint=f"{url}#{ref}", source_kind=SourceKind.VCS_REF)

    @property
    def url(self) -> str:
        """Repository URL of a vcs spec, normalized for ``git clone``."""
        if self.source_kind is not SourceKind.VCS_REF:
            raise ValueError(f"'{self.name}' is not a version-control spec")
        return _normalize_vcs_url(self.version_constraint.split("#", 1)[0])

    @property
    def ref(self) -> str:
        """Checked-out reference of a vcs spec.

        Raises:
            VersionUnresolvableError: If the constraint has no ``#ref`` part
        """
        if self.source_kind is not SourceKind.VCS_REF:
            raise ValueError(f"'{self.name}' is not a version-control spec")
        _, _, ref = self.version_constraint.partition("#")
        ref = ref.strip()
        if not ref:
            raise VersionUnresolvableError(
                self.version_constraint, package=self.name, reason="no '#<ref>' given"
            )
        return ref

    def resolve(self) -> str:
        """Reduce the constraint to one concrete version.

        Registry specs resolve to a canonical version string; vcs specs
        resolve to ``<host>/<path>#<ref>``, so every spelling of the same
        repository and ref compares equal.

        Raises:
            VersionUnresolvableError: If the constraint is not exact
        """
        if self.source_kind is SourceKind.VCS_REF:
            return f"{repository_identity(self.url)}#{self.ref}"
        return resolve_exact_version(self.version_constraint, package=self.name)

    def __str__(self) -> str:
        return f"{self.name}@{self.version_constraint}"


def detect_source_kind(constraint: str) -> SourceKind:
    """Classify a manifest dependency constraint."""
    text = constraint.strip()
    if text.startswith(VCS_PREFIXES):
        return SourceKind.VCS_REF
    if text.endswith(".git") or ".git#" in text:
        return SourceKind.VCS_REF
    if GITHUB_SHORTHAND.match(text) and not text.startswith(("@", ".")):
        return SourceKind.VCS_REF
    return SourceKind.REGISTRY


def _normalize_vcs_url(url: str) -> str:
    """Turn npm's git URL forms into something ``git clone`` accepts."""
    url = url.strip()
    if url.startswith("github:"):
        return f"https://github.com/{url[len('github:'):]}.git"
    if url.startswith("git+"):
        return url[len("git+"):]
    if "://" not in url and GITHUB_SHORTHAND.match(url):
        return f"https://github.com/{url}.git"
    return url


def repository_identity(url: str) -> str:
    """Reduce a repository URL to ``<host>/<path>``, ignoring scheme, user and ``.git``.

    Examples:
        >>> repository_identity("git://github.com/joyent/node-verror.git")
        'github.com/joyent/node-verror'
        >>> repository_identity("git@github.com:joyent/node-verror.git")
        'github.com/joyent/node-verror'
    """
    url = _normalize_vcs_url(url)
    if "://" in url:
        parts = urlsplit(url)
        host, path = (parts.hostname or ""), parts.path
    else:
        match = SCP_LIKE_URL.match(url)
        host, path = (match.group("host"), match.group("path")) if match else ("", url)

    path = path.strip("/")
    if path.endswith(".git"):
        path = path[: -len(".git")]
    return f"{host.lower()}/{path}" if host else path
