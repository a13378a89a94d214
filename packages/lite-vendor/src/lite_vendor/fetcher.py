# SPDX-License-Identifier: MIT
"""Fetching package sources at an exact version.

Two source providers are available, selected by a package's source kind:

- ``GitSourceProvider`` clones a repository, checks out the pinned ref and
  copies the runtime payload out of the checkout, leaving ``.git`` behind.
- ``RegistrySourceProvider`` downloads the tarball of one exact version from
  an npm-compatible registry, verifies its checksum and extracts it.

``SourceFetcher`` dispatches to the right provider and refuses to fetch the
same package name twice in one run.
"""

from __future__ import annotations

import hashlib
import io
import os
import shutil
import subprocess
import tarfile
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path, PurePosixPath
from typing import Optional, Sequence
from urllib.parse import quote

import httpx

from .errors import DuplicateFetchError, FetchFailedError, ManifestMissingError
from .manifest import MANIFEST_FILENAME, Manifest, read_manifest
from .pruner import list_files
from .specs import PackageSpec, SourceKind
from .version import resolve_exact_version

DEFAULT_REGISTRY = "https://registry.npmjs.org"

DEFAULT_FETCH_TIMEOUT = 120.0

# Repository metadata never copied out of a checkout
VCS_METADATA = frozenset({".git", ".hg", ".svn", ".gitmodules"})


@dataclass
class InstalledPackage:
    """A package materialized on disk.

    Attributes:
        name: Package name
        root_path: Directory holding the package
        manifest: Manifest read from the package root
        spec: Spec the package was fetched from
    """

    name: str
    root_path: Path
    manifest: Manifest
    spec: Optional[PackageSpec] = None

    @property
    def version(self) -> str:
        return self.manifest.version

    @property
    def files(self) -> set[str]:
        """Relative POSIX paths of every file currently in the package."""
        if not self.root_path.exists():
            return set()
        return list_files(self.root_path)

    def relocated(self, root_path: Path) -> "InstalledPackage":
        """Return the same package after it was moved to ``root_path``."""
        return InstalledPackage(
            name=self.name,
            root_path=root_path,
            manifest=read_manifest(root_path),
            spec=self.spec,
        )


class SourceProvider(ABC):
    """Capability to place one package's source into a directory."""

    @abstractmethod
    def fetch(self, spec: PackageSpec, dest_dir: Path, payload: Optional[Sequence[str]] = None) -> None:
        """Materialize ``spec`` into ``dest_dir``.

        Args:
            spec: Package to fetch
            dest_dir: Empty directory to fill
            payload: Paths or glob patterns to copy, relative to the source
                root. ``None`` copies the whole package.

        Raises:
            FetchFailedError: If the source cannot be obtained
        """


def _copy_entry(source: Path, target: Path) -> None:
    target.parent.mkdir(parents=True, exist_ok=True)
    if source.is_dir():
        shutil.copytree(source, target, dirs_exist_ok=True, ignore=shutil.ignore_patterns(*VCS_METADATA))
    else:
        shutil.copy2(source, target)


def copy_payload(source_root: Path, dest_dir: Path, payload: Optional[Sequence[str]], package: str) -> None:
    """Copy the runtime payload of a source tree into ``dest_dir``.

    The manifest and the manifest's entry file are always copied. Literal
    payload paths must exist; glob patterns may match nothing.

    Raises:
        FetchFailedError: If a literal payload path is missing
    """
    dest_dir.mkdir(parents=True, exist_ok=True)

    if payload is None:
        for item in source_root.iterdir():
            if item.name not in VCS_METADATA:
                _copy_entry(item, dest_dir / item.name)
        return

    wanted: list[str] = [MANIFEST_FILENAME]
    manifest_path = source_root / MANIFEST_FILENAME
    if manifest_path.is_file():
        entry = read_manifest(manifest_path).entry_file()
        if (source_root / entry).exists():
            wanted.append(entry)
    wanted.extend(payload)

    for item in wanted:
        if any(ch in item for ch in "*?["):
            matches = sorted(source_root.glob(item))
        else:
            matches = [source_root / item]
            if not matches[0].exists():
                if item == MANIFEST_FILENAME:
                    continue
                raise FetchFailedError(f"Payload path '{item}' not found in source of '{package}'", package=package)
        for match in matches:
            rel = match.relative_to(source_root)
            if rel.parts and rel.parts[0] in VCS_METADATA:
                continue
            _copy_entry(match, dest_dir / rel)


class GitSourceProvider(SourceProvider):
    """Fetch packages by cloning a repository at a pinned ref."""

    def __init__(self, timeout: float = DEFAULT_FETCH_TIMEOUT, git: str = "git") -> None:
        self.timeout = timeout
        self.git = git

    def _run(self, args: list[str], spec: PackageSpec) -> None:
        # Never wait on a credential prompt
        env = dict(os.environ, GIT_TERMINAL_PROMPT="0")
        cmd = [self.git, *args]
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                check=False,
                timeout=self.timeout,
                env=env,
            )
        except FileNotFoundError:
            raise FetchFailedError(f"git executable not found: {self.git}", package=spec.name) from None
        except subprocess.TimeoutExpired:
            raise FetchFailedError(
                f"git {' '.join(args)} timed out after {self.timeout}s for '{spec.name}'", package=spec.name
            ) from None

        if result.returncode != 0:
            raise FetchFailedError(
                f"git {' '.join(args)} failed for '{spec.name}':\n{result.stderr.strip()}",
                package=spec.name,
            )

    def fetch(self, spec: PackageSpec, dest_dir: Path, payload: Optional[Sequence[str]] = None) -> None:
        url, ref = spec.url, spec.ref

        with tempfile.TemporaryDirectory(prefix="lite-vendor-git-") as temp_dir:
            checkout = Path(temp_dir) / "checkout"
            self._run(["clone", "--quiet", url, str(checkout)], spec)
            self._run(["-C", str(checkout), "checkout", "--quiet", ref], spec)
            copy_payload(checkout, dest_dir, payload, spec.name)


def _compute_sha1(content: bytes) -> str:
    return hashlib.sha1(content).hexdigest()


def extract_tarball(content: bytes, dest_dir: Path, package: str) -> None:
    """Extract a package tarball, dropping its top-level directory.

    Only regular files and directories are extracted.

    Raises:
        FetchFailedError: If the archive is unreadable or has unsafe paths
    """
    dest_dir.mkdir(parents=True, exist_ok=True)
    try:
        with tarfile.open(fileobj=io.BytesIO(content), mode="r:*") as tar:
            for member in tar.getmembers():
                parts = PurePosixPath(member.name).parts
                if member.name.startswith("/") or ".." in parts:
                    raise FetchFailedError(
                        f"Unsafe path in tarball of '{package}': {member.name}", package=package
                    )
                rel_parts = parts[1:]
                if not rel_parts:
                    continue
                target = dest_dir.joinpath(*rel_parts)
                if member.isdir():
                    target.mkdir(parents=True, exist_ok=True)
                elif member.isfile():
                    source = tar.extractfile(member)
                    if source is None:
                        continue
                    target.parent.mkdir(parents=True, exist_ok=True)
                    target.write_bytes(source.read())
    except tarfile.TarError as e:
        raise FetchFailedError(f"Invalid tarball for '{package}': {e}", package=package) from e


class RegistrySourceProvider(SourceProvider):
    """Fetch exact package versions from an npm-compatible registry."""

    def __init__(
        self,
        registry: str = DEFAULT_REGISTRY,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
        client: Optional[httpx.Client] = None,
    ) -> None:
        self.registry = registry.rstrip("/")
        self.timeout = timeout
        self.client = client

    def version_url(self, name: str, version: str) -> str:
        return f"{self.registry}/{quote(name, safe='@')}/{quote(version)}"

    def _get(self, client: httpx.Client, url: str, spec: PackageSpec) -> httpx.Response:
        try:
            response = client.get(url)
            response.raise_for_status()
        except httpx.HTTPStatusError as e:
            if e.response.status_code == 404:
                raise FetchFailedError(f"'{spec}' not found in registry ({url})", package=spec.name) from e
            raise FetchFailedError(
                f"Registry returned HTTP {e.response.status_code} for '{spec}' ({url})", package=spec.name
            ) from e
        except httpx.HTTPError as e:
            raise FetchFailedError(f"Failed to fetch '{spec}' from {url}: {e}", package=spec.name) from e
        return response

    def fetch(self, spec: PackageSpec, dest_dir: Path, payload: Optional[Sequence[str]] = None) -> None:
        version = resolve_exact_version(spec.version_constraint, package=spec.name)

        if self.client is not None:
            self._download(self.client, spec, version, dest_dir)
        else:
            with httpx.Client(follow_redirects=True, timeout=self.timeout) as client:
                self._download(client, spec, version, dest_dir)

    def _download(self, client: httpx.Client, spec: PackageSpec, version: str, dest_dir: Path) -> None:
        response = self._get(client, self.version_url(spec.name, version), spec)
        try:
            document = response.json()
            dist = document["dist"]
            tarball_url = dist["tarball"]
        except (ValueError, KeyError, TypeError) as e:
            raise FetchFailedError(f"Malformed registry metadata for '{spec}'", package=spec.name) from e

        content = self._get(client, tarball_url, spec).content

        expected = dist.get("shasum")
        if expected:
            actual = _compute_sha1(content)
            if actual != expected.lower():
                raise FetchFailedError(
                    f"Checksum verification failed for '{spec}':\n"
                    f"  Expected: {expected.lower()}\n"
                    f"  Got: {actual}",
                    package=spec.name,
                )

        extract_tarball(content, dest_dir, spec.name)


class SourceFetcher:
    """Fetches packages through the provider matching their source kind.

    Each package name may be fetched at most once per fetcher, which is
    one per vendoring run.
    """

    def __init__(
        self,
        providers: Optional[dict[SourceKind, SourceProvider]] = None,
        *,
        registry: str = DEFAULT_REGISTRY,
        timeout: float = DEFAULT_FETCH_TIMEOUT,
    ) -> None:
        if providers is None:
            providers = {
                SourceKind.REGISTRY: RegistrySourceProvider(registry=registry, timeout=timeout),
                SourceKind.VCS_REF: GitSourceProvider(timeout=timeout),
            }
        self.providers = providers
        self._fetched: dict[str, PackageSpec] = {}

    @property
    def fetched(self) -> dict[str, PackageSpec]:
        """Specs fetched so far, keyed by package name."""
        return dict(self._fetched)

    def fetch(
        self,
        spec: PackageSpec,
        dest_dir: str | Path,
        payload: Optional[Sequence[str]] = None,
    ) -> InstalledPackage:
        """Fetch one package into ``dest_dir``.

        Raises:
            DuplicateFetchError: If this package name was already fetched
            VersionUnresolvableError: If the constraint does not pin one version
            FetchFailedError: If the provider fails
            ManifestMissingError: If the fetched source has no manifest
        """
        if spec.name in self._fetched:
            raise DuplicateFetchError(spec.name)

        resolved = spec.resolve()
        provider = self.providers.get(spec.source_kind)
        if provider is None:
            raise FetchFailedError(
                f"No source provider for {spec.source_kind.value} spec '{spec}'", package=spec.name
            )

        dest = Path(dest_dir)
        if dest.exists() and any(dest.iterdir()):
            raise FetchFailedError(f"Fetch destination is not empty: {dest}", package=spec.name, path=dest)

        self._fetched[spec.name] = spec
        provider.fetch(spec, dest, payload)

        if not (dest / MANIFEST_FILENAME).is_file():
            raise ManifestMissingError(dest / MANIFEST_FILENAME, package=spec.name)
        manifest = read_manifest(dest)
        if spec.source_kind is SourceKind.REGISTRY and manifest.version and manifest.version != resolved:
            raise FetchFailedError(
                f"Fetched '{spec.name}' declares version {manifest.version}, expected {resolved}",
                package=spec.name,
            )

        return InstalledPackage(name=spec.name, root_path=dest, manifest=manifest, spec=spec)
