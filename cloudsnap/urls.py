"""
Public URL variants for a file stored in a GitHub repository.
"""
from pydantic import BaseModel


class URLSet(BaseModel):
    """Branch-pinned and commit-pinned URLs; commit-pinned ones never change."""
    github: str
    raw: str
    jsdelivr: str
    github_commit: str
    raw_commit: str
    jsdelivr_commit: str


def github_url(owner: str, repo: str, ref: str, path: str) -> str:
    return f"https://github.com/{owner}/{repo}/blob/{ref}/{path}"


def raw_url(owner: str, repo: str, ref: str, path: str) -> str:
    return f"https://raw.githubusercontent.com/{owner}/{repo}/{ref}/{path}"


def jsdelivr_url(owner: str, repo: str, ref: str, path: str) -> str:
    return f"https://cdn.jsdelivr.net/gh/{owner}/{repo}@{ref}/{path}"


def build_urls(owner: str, repo: str, branch: str, commit_sha: str, path: str) -> URLSet:
    return URLSet(
        github=github_url(owner, repo, branch, path),
        raw=raw_url(owner, repo, branch, path),
        jsdelivr=jsdelivr_url(owner, repo, branch, path),
        github_commit=github_url(owner, repo, commit_sha, path),
        raw_commit=raw_url(owner, repo, commit_sha, path),
        jsdelivr_commit=jsdelivr_url(owner, repo, commit_sha, path),
    )
