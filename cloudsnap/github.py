"""
GitHub contents API client.

Thin async wrapper over the four calls CloudSnap needs. Upstream failures
are translated into ``CloudSnapError`` kinds; nothing is retried.
"""
import logging
from typing import Any, Optional
from urllib.parse import quote

import httpx

from cloudsnap.errors import CloudSnapError, ErrorKind
from cloudsnap.models import Content, DirectoryEntry, FileEntry, StoredFile

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 30.0  # seconds


def _error_message(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        data = None
    if isinstance(data, dict) and data.get("message"):
        return str(data["message"])
    return f"GitHub API returned {response.status_code}"


def _classify(response: httpx.Response) -> ErrorKind:
    status = response.status_code
    if status == 404:
        return ErrorKind.UPSTREAM_NOT_FOUND
    if status == 409:
        return ErrorKind.UPSTREAM_CONFLICT
    if status == 422 and "sha" in _error_message(response).lower():
        return ErrorKind.UPSTREAM_CONFLICT
    # Includes 401/403: bad upstream credentials are an upstream failure
    return ErrorKind.UPSTREAM_UNKNOWN


class GitHubClient:
    """GitHub REST client bound to one repository."""

    BASE_URL = "https://api.github.com"

    def __init__(
        self,
        owner: str,
        repo: str,
        token: Optional[str] = None,
        timeout: float = DEFAULT_TIMEOUT,
        base_url: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.owner = owner
        self.repo = repo
        self.base_url = base_url or self.BASE_URL
        headers = {
            "Accept": "application/vnd.github.v3+json",
            "User-Agent": "cloudsnap",
        }
        if token:
            headers["Authorization"] = f"token {token}"
        else:
            logger.warning("GitHub client for %s/%s has no token", owner, repo)
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers=headers,
            timeout=timeout,
            transport=transport,
        )

    async def __aenter__(self) -> "GitHubClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    def _contents_endpoint(self, path: str) -> str:
        base = f"/repos/{self.owner}/{self.repo}/contents"
        path = path.strip("/")
        return f"{base}/{quote(path)}" if path else base

    async def _request(self, method: str, endpoint: str, **kwargs: Any) -> httpx.Response:
        logger.debug("Request: %s %s", method, endpoint)
        try:
            response = await self._client.request(method, endpoint, **kwargs)
        except httpx.TimeoutException as e:
            logger.error("GitHub request timed out: %s %s", method, endpoint)
            raise CloudSnapError(
                f"GitHub API timed out ({e.__class__.__name__})",
                ErrorKind.UPSTREAM_TIMEOUT,
            ) from e
        except httpx.HTTPError as e:
            logger.error("GitHub request failed: %s %s: %s", method, endpoint, e)
            raise CloudSnapError(str(e) or e.__class__.__name__) from e

        logger.debug("Response: %s %s (status=%d)", method, endpoint, response.status_code)
        if response.is_error:
            raise CloudSnapError(_error_message(response), _classify(response))
        return response

    async def get_content(self, path: str, ref: Optional[str] = None) -> Content:
        """
        Read a path.

        Returns a ``FileEntry`` when the path is a single file, otherwise the
        directory listing as a list of ``DirectoryEntry``. Raises
        ``UPSTREAM_NOT_FOUND`` when the path does not exist.
        """
        params = {"ref": ref} if ref else {}
        logger.info("Fetching contents: %s/%s path=%s ref=%s", self.owner, self.repo, path, ref)
        response = await self._request("GET", self._contents_endpoint(path), params=params)
        data = response.json()

        if isinstance(data, list):
            logger.debug("Directory listing: %d items", len(data))
            return [DirectoryEntry(**item) for item in data]
        return FileEntry(**data)

    async def create_or_update_file(
        self,
        path: str,
        content: str,
        message: str,
        branch: str,
        sha: Optional[str] = None,
    ) -> StoredFile:
        """
        Commit base64 ``content`` to ``path``.

        ``sha`` is the blob being replaced; a stale value raises
        ``UPSTREAM_CONFLICT``.
        """
        body = {"message": message, "content": content, "branch": branch}
        if sha:
            body["sha"] = sha
        logger.info("Writing file: %s/%s path=%s branch=%s", self.owner, self.repo, path, branch)
        response = await self._request("PUT", self._contents_endpoint(path), json=body)
        data = response.json()
        stored = data.get("content") or {}
        return StoredFile(
            path=stored.get("path", path),
            content_sha=stored.get("sha"),
            commit_sha=data["commit"]["sha"],
            content_url=stored.get("html_url"),
        )

    async def delete_file(self, path: str, sha: str, message: str, branch: str) -> None:
        logger.info("Deleting file: %s/%s path=%s branch=%s", self.owner, self.repo, path, branch)
        body = {"message": message, "sha": sha, "branch": branch}
        await self._request("DELETE", self._contents_endpoint(path), json=body)

    async def list_commits(self, path: str, limit: int = 1, ref: Optional[str] = None) -> Optional[str]:
        """Return the latest commit sha touching ``path``, or None when unavailable."""
        params = {"path": path, "per_page": limit}
        if ref:
            params["sha"] = ref
        try:
            response = await self._request(
                "GET", f"/repos/{self.owner}/{self.repo}/commits", params=params
            )
            commits = response.json()
        except CloudSnapError as e:
            logger.warning("Commit lookup failed for %s: %s", path, e.message)
            return None
        if not commits:
            return None
        return commits[0].get("sha")
