# SPDX-License-Identifier: MIT
"""Tests for fetching package sources."""

import hashlib
import io
import json
import shutil
import subprocess
import tarfile
from pathlib import Path

import httpx
import pytest

from vendor_fixtures import FakeRegistryProvider, package_files, write_tree

from lite_vendor.errors import (
    DuplicateFetchError,
    FetchFailedError,
    ManifestMissingError,
    VersionUnresolvableError,
)
from lite_vendor.fetcher import (
    GitSourceProvider,
    RegistrySourceProvider,
    SourceFetcher,
    copy_payload,
    extract_tarball,
)
from lite_vendor.pruner import list_files
from lite_vendor.specs import PackageSpec, SourceKind

REGISTRY = "https://registry.example.invalid"


def _tarball(files: dict[str, str], prefix: str = "package") -> bytes:
    buffer = io.BytesIO()
    with tarfile.open(fileobj=buffer, mode="w:gz") as tar:
        for rel_path, content in files.items():
            data = content.encode("utf-8")
            info = tarfile.TarInfo(f"{prefix}/{rel_path}" if prefix else rel_path)
            info.size = len(data)
            tar.addfile(info, io.BytesIO(data))
    return buffer.getvalue()


def _registry_client(tarballs: dict[tuple[str, str], bytes], shasum_override=None) -> httpx.Client:
    """A client whose transport serves version documents and tarballs from memory."""

    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        for (name, version), content in tarballs.items():
            tarball_path = f"/{name}/-/{name}-{version}.tgz"
            if path == f"/{name}/{version}":
                shasum = shasum_override or hashlib.sha1(content).hexdigest()
                document = {
                    "name": name,
                    "version": version,
                    "dist": {"tarball": f"{REGISTRY}{tarball_path}", "shasum": shasum},
                }
                return httpx.Response(200, json=document)
            if path == tarball_path:
                return httpx.Response(200, content=content)
        return httpx.Response(404, json={"error": "Not found"})

    return httpx.Client(transport=httpx.MockTransport(handler))


class TestExtractTarball:
    """Tests for extract_tarball."""

    def test_strips_top_level_directory(self, tmp_path: Path):
        content = _tarball({"package.json": "{}", "lib/index.js": ""})

        extract_tarball(content, tmp_path / "out", "once")

        assert list_files(tmp_path / "out") == {"package.json", "lib/index.js"}

    def test_rejects_parent_paths(self, tmp_path: Path):
        content = _tarball({"../../evil.js": ""})

        with pytest.raises(FetchFailedError, match="Unsafe path"):
            extract_tarball(content, tmp_path / "out", "once")

        assert not (tmp_path / "evil.js").exists()

    def test_rejects_garbage(self, tmp_path: Path):
        with pytest.raises(FetchFailedError, match="Invalid tarball"):
            extract_tarball(b"not a tarball", tmp_path / "out", "once")


class TestRegistrySourceProvider:
    """Tests for RegistrySourceProvider with a mocked transport."""

    def test_version_url_quotes_scoped_names(self):
        provider = RegistrySourceProvider(registry="https://registry.npmjs.org/")
        assert provider.version_url("@types/node", "1.0.0") == "https://registry.npmjs.org/@types%2Fnode/1.0.0"

    def test_fetches_and_verifies(self, tmp_path: Path):
        content = _tarball(package_files("once", "1.1.1"))
        provider = RegistrySourceProvider(registry=REGISTRY, client=_registry_client({("once", "1.1.1"): content}))

        provider.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "once")

        assert (tmp_path / "once" / "package.json").is_file()
        assert (tmp_path / "once" / "index.js").is_file()

    def test_checksum_mismatch(self, tmp_path: Path):
        content = _tarball(package_files("once", "1.1.1"))
        client = _registry_client({("once", "1.1.1"): content}, shasum_override="0" * 40)
        provider = RegistrySourceProvider(registry=REGISTRY, client=client)

        with pytest.raises(FetchFailedError, match="Checksum verification failed"):
            provider.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "once")

        assert not (tmp_path / "once").exists()

    def test_unknown_version(self, tmp_path: Path):
        provider = RegistrySourceProvider(registry=REGISTRY, client=_registry_client({}))

        with pytest.raises(FetchFailedError, match="not found in registry"):
            provider.fetch(PackageSpec.parse("once", "9.9.9"), tmp_path / "once")

    def test_server_error(self, tmp_path: Path):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(503)))
        provider = RegistrySourceProvider(registry=REGISTRY, client=client)

        with pytest.raises(FetchFailedError, match="HTTP 503"):
            provider.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "once")

    def test_malformed_metadata(self, tmp_path: Path):
        client = httpx.Client(transport=httpx.MockTransport(lambda request: httpx.Response(200, json={})))
        provider = RegistrySourceProvider(registry=REGISTRY, client=client)

        with pytest.raises(FetchFailedError, match="Malformed registry metadata"):
            provider.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "once")


class TestCopyPayload:
    """Tests for copy_payload."""

    @pytest.fixture
    def checkout(self, tmp_path: Path) -> Path:
        files = package_files("sample-lib", "7.0.0", main="./lib/index.js", extra={"lib/amon.js": "", "etc/x": ""})
        return write_tree(tmp_path / "checkout", {".git/HEAD": "ref", **files})

    def test_whole_tree_without_git(self, checkout: Path, tmp_path: Path):
        copy_payload(checkout, tmp_path / "out", None, "sample-lib")

        files = list_files(tmp_path / "out")
        assert "README.md" in files
        assert not any(f.startswith(".git/") for f in files)

    def test_payload_with_manifest_and_entry(self, checkout: Path, tmp_path: Path):
        copy_payload(checkout, tmp_path / "out", ["lib"], "sample-lib")

        assert list_files(tmp_path / "out") == {"package.json", "lib/index.js", "lib/amon.js"}

    def test_glob_may_match_nothing(self, checkout: Path, tmp_path: Path):
        copy_payload(checkout, tmp_path / "out", ["*.node"], "sample-lib")

        assert list_files(tmp_path / "out") == {"package.json", "lib/index.js"}

    def test_missing_literal_path(self, checkout: Path, tmp_path: Path):
        with pytest.raises(FetchFailedError, match="Payload path 'bin' not found"):
            copy_payload(checkout, tmp_path / "out", ["bin"], "sample-lib")


class TestSourceFetcher:
    """Tests for SourceFetcher dispatch and bookkeeping."""

    def _fetcher(self, provider: FakeRegistryProvider) -> SourceFetcher:
        return SourceFetcher({SourceKind.REGISTRY: provider})

    def test_returns_installed_package(self, tmp_path: Path):
        fetcher = self._fetcher(FakeRegistryProvider({("once", "1.1.1"): package_files("once", "1.1.1")}))

        pkg = fetcher.fetch(PackageSpec.parse("once", "=1.1.1"), tmp_path / "once")

        assert pkg.name == "once"
        assert pkg.version == "1.1.1"
        assert pkg.root_path == tmp_path / "once"
        assert set(fetcher.fetched) == {"once"}

    def test_duplicate_fetch(self, tmp_path: Path):
        provider = FakeRegistryProvider({("once", "1.1.1"): package_files("once", "1.1.1")})
        fetcher = self._fetcher(provider)
        fetcher.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "a")

        with pytest.raises(DuplicateFetchError):
            fetcher.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "b")

        assert provider.fetched == ["once@1.1.1"]

    def test_range_is_rejected_before_fetch(self, tmp_path: Path):
        provider = FakeRegistryProvider({})

        with pytest.raises(VersionUnresolvableError):
            self._fetcher(provider).fetch(PackageSpec.parse("once", "^1.1.0"), tmp_path / "once")

        assert provider.fetched == []

    def test_missing_provider(self, tmp_path: Path):
        spec = PackageSpec.vcs("verror", "https://github.com/joyent/node-verror.git", "v1.3.3")

        with pytest.raises(FetchFailedError, match="No source provider"):
            self._fetcher(FakeRegistryProvider({})).fetch(spec, tmp_path / "verror")

    def test_non_empty_destination(self, tmp_path: Path):
        (tmp_path / "once").mkdir()
        (tmp_path / "once" / "stale.js").write_text("", encoding="utf-8")
        fetcher = self._fetcher(FakeRegistryProvider({("once", "1.1.1"): package_files("once", "1.1.1")}))

        with pytest.raises(FetchFailedError, match="not empty"):
            fetcher.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "once")

    def test_source_without_manifest(self, tmp_path: Path):
        fetcher = self._fetcher(FakeRegistryProvider({("once", "1.1.1"): {"index.js": ""}}))

        with pytest.raises(ManifestMissingError) as exc_info:
            fetcher.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "once")

        assert exc_info.value.package == "once"

    def test_manifest_version_mismatch(self, tmp_path: Path):
        fetcher = self._fetcher(FakeRegistryProvider({("once", "1.1.1"): package_files("once", "1.2.0")}))

        with pytest.raises(FetchFailedError, match="declares version 1.2.0"):
            fetcher.fetch(PackageSpec.parse("once", "1.1.1"), tmp_path / "once")

    def test_registry_provider_end_to_end(self, tmp_path: Path):
        content = _tarball(package_files("verror", "1.3.3"))
        provider = RegistrySourceProvider(registry=REGISTRY, client=_registry_client({("verror", "1.3.3"): content}))
        fetcher = SourceFetcher({SourceKind.REGISTRY: provider})

        pkg = fetcher.fetch(PackageSpec.parse("verror", "1.3.3"), tmp_path / "verror")

        assert pkg.version == "1.3.3"
        assert "test/test.js" in pkg.files


def _git(*args: str, cwd: Path) -> str:
    result = subprocess.run(
        ["git", "-c", "user.name=Vendor Tests", "-c", "user.email=vendor@example.invalid", *args],
        cwd=cwd,
        capture_output=True,
        text=True,
        check=True,
    )
    return result.stdout.strip()


@pytest.mark.skipif(shutil.which("git") is None, reason="git is not installed")
class TestGitSourceProvider:
    """Tests for GitSourceProvider against a local repository."""

    @pytest.fixture
    def repo(self, tmp_path: Path) -> tuple[Path, str, str]:
        repo = tmp_path / "repo"
        write_tree(repo, package_files("verror", "1.3.3", main="./lib/verror.js"))
        _git("init", "--quiet", cwd=repo)
        _git("add", ".", cwd=repo)
        _git("commit", "--quiet", "-m", "1.3.3", cwd=repo)
        first = _git("rev-parse", "HEAD", cwd=repo)

        (repo / "package.json").write_text(json.dumps({"name": "verror", "version": "1.4.0"}), encoding="utf-8")
        _git("commit", "--quiet", "-am", "1.4.0", cwd=repo)
        return repo, first, _git("rev-parse", "HEAD", cwd=repo)

    def test_checks_out_pinned_ref(self, repo, tmp_path: Path):
        path, first, _ = repo
        spec = PackageSpec.vcs("verror", path.as_uri(), first)

        pkg = SourceFetcher({SourceKind.VCS_REF: GitSourceProvider(timeout=60)}).fetch(spec, tmp_path / "out")

        assert pkg.version == "1.3.3"
        assert not (tmp_path / "out" / ".git").exists()
        assert (tmp_path / "out" / "lib" / "verror.js").is_file()

    def test_payload_selection(self, repo, tmp_path: Path):
        path, _, latest = repo
        spec = PackageSpec.vcs("verror", path.as_uri(), latest)

        GitSourceProvider(timeout=60).fetch(spec, tmp_path / "out", payload=["README.md"])

        assert list_files(tmp_path / "out") == {"package.json", "README.md"}

    def test_unknown_ref(self, repo, tmp_path: Path):
        path, _, _ = repo
        spec = PackageSpec.vcs("verror", path.as_uri(), "no-such-ref")

        with pytest.raises(FetchFailedError, match="checkout"):
            GitSourceProvider(timeout=60).fetch(spec, tmp_path / "out")

    def test_missing_git_executable(self, tmp_path: Path):
        spec = PackageSpec.vcs("verror", "https://git.example.invalid/verror.git", "master")
        provider = GitSourceProvider(git="definitely-not-git")

        with pytest.raises(FetchFailedError, match="git executable not found"):
            provider.fetch(spec, tmp_path / "out")
