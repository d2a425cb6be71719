"""Shared fixtures for CloudSnap tests."""

from __future__ import annotations

import hashlib
import posixpath

import pytest
from fastapi.testclient import TestClient

from cloudsnap.config import Settings
from cloudsnap.errors import CloudSnapError, ErrorKind
from cloudsnap.main import create_app, limiter
from cloudsnap.models import DirectoryEntry, FileEntry, StoredFile

API_KEY = "secret-key"
PIN = "2468"


# ------------------------------------------------------------------
# In-memory GitHub repository
# ------------------------------------------------------------------


class FakeRepo:
    """Content client backed by a dict of ``path -> {sha, commit, size}``."""

    def __init__(self, owner: str = "octo", repo: str = "media"):
        self.owner = owner
        self.repo = repo
        self.files: dict[str, dict] = {}
        self.writes: list[dict] = []
        self.deletes: list[str] = []
        self.commit_lookups: list[str] = []
        self.missing_commits: set[str] = set()
        self.failing_deletes: set[str] = set()
        self.closed = False
        self._commits = 0

    async def __aenter__(self) -> FakeRepo:
        return self

    async def __aexit__(self, *exc_info) -> None:
        self.closed = True

    def _next_commit(self) -> str:
        self._commits += 1
        return hashlib.sha1(f"commit-{self._commits}".encode()).hexdigest()

    def add(self, path: str, content: bytes = b"data") -> str:
        sha = hashlib.sha1(path.encode() + content).hexdigest()
        self.files[path] = {"sha": sha, "commit": self._next_commit(), "size": len(content)}
        return sha

    def _file_entry(self, path: str, cls):
        info = self.files[path]
        return cls(
            name=posixpath.basename(path),
            path=path,
            sha=info["sha"],
            size=info["size"],
            type="file",
            download_url=f"https://raw.githubusercontent.com/{self.owner}/{self.repo}/main/{path}",
            html_url=f"https://github.com/{self.owner}/{self.repo}/blob/main/{path}",
        )

    async def get_content(self, path: str, ref: str | None = None):
        path = path.strip("/")
        if path in self.files:
            return self._file_entry(path, FileEntry)

        prefix = f"{path}/" if path else ""
        children: dict[str, DirectoryEntry] = {}
        for file_path in sorted(self.files):
            if not file_path.startswith(prefix):
                continue
            rest = file_path[len(prefix):]
            head = rest.split("/", 1)[0]
            if "/" in rest:
                children.setdefault(head, DirectoryEntry(
                    name=head, path=prefix + head, sha=f"tree-{head}", size=0, type="dir",
                ))
            else:
                children[head] = self._file_entry(file_path, DirectoryEntry)
        if not children:
            raise CloudSnapError("Not Found", ErrorKind.UPSTREAM_NOT_FOUND)
        return list(children.values())

    async def create_or_update_file(self, path, content, message, branch, sha=None):
        commit = self._next_commit()
        content_sha = hashlib.sha1(content.encode()).hexdigest()
        self.files[path] = {"sha": content_sha, "commit": commit, "size": len(content)}
        self.writes.append({
            "path": path, "content": content, "message": message, "branch": branch, "sha": sha,
        })
        return StoredFile(
            path=path,
            content_sha=content_sha,
            commit_sha=commit,
            content_url=f"https://github.com/{self.owner}/{self.repo}/blob/{branch}/{path}",
        )

    async def delete_file(self, path, sha, message, branch):
        if path in self.failing_deletes:
            raise CloudSnapError("is at 123 but expected 456", ErrorKind.UPSTREAM_CONFLICT)
        if path not in self.files or self.files[path]["sha"] != sha:
            raise CloudSnapError("Not Found", ErrorKind.UPSTREAM_NOT_FOUND)
        del self.files[path]
        self.deletes.append(path)

    async def list_commits(self, path, limit=1, ref=None):
        self.commit_lookups.append(path)
        if path in self.missing_commits or path not in self.files:
            return None
        return self.files[path]["commit"]


class FakeGitHub:
    """Client factory handing out one ``FakeRepo`` per (owner, repo)."""

    def __init__(self):
        self.repos: dict[tuple[str, str], FakeRepo] = {}
        self.calls: list[tuple] = []

    def __call__(self, owner, repo, token, timeout):
        self.calls.append((owner, repo, token, timeout))
        return self.repo(owner, repo)

    def repo(self, owner: str = "octo", repo: str = "media") -> FakeRepo:
        return self.repos.setdefault((owner, repo), FakeRepo(owner, repo))


# ------------------------------------------------------------------
# Fixtures
# ------------------------------------------------------------------


@pytest.fixture(autouse=True)
def reset_rate_limits():
    limiter.reset()
    yield
    limiter.reset()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        github_owner="octo",
        github_repo="media",
        github_branch="main",
        github_token="ghp_server",
        api_key=API_KEY,
        pin=PIN,
        environment="development",
    )


@pytest.fixture
def github() -> FakeGitHub:
    return FakeGitHub()


@pytest.fixture
def repo(github: FakeGitHub) -> FakeRepo:
    return github.repo("octo", "media")


@pytest.fixture
def fake_repo() -> FakeRepo:
    """A standalone repository for tests that call the modules directly."""
    return FakeRepo()


@pytest.fixture
def make_client(github: FakeGitHub):
    """Build a TestClient for arbitrary settings against the fake GitHub."""
    clients = []

    def factory(app_settings: Settings) -> TestClient:
        client = TestClient(create_app(app_settings, github_factory=github))
        clients.append(client)
        return client

    yield factory
    for client in clients:
        client.close()


@pytest.fixture
def client(make_client, settings: Settings) -> TestClient:
    return make_client(settings)


@pytest.fixture
def api_headers() -> dict[str, str]:
    return {"x-api-key": API_KEY}
