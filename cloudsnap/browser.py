"""
Folder-scoped browsing and deletion of repository content.

Every path accepted here is relative to the assets root in the repository.
"""
import asyncio
import base64
import logging
from typing import Any

from cloudsnap.config import ASSETS_ROOT
from cloudsnap.errors import CloudSnapError, ErrorKind, validation_error
from cloudsnap.models import FileEntry, ListFilesResponse, ListItem
from cloudsnap.security import sanitize_folder
from cloudsnap.urls import jsdelivr_url, raw_url

logger = logging.getLogger(__name__)

PLACEHOLDER_NAME = ".gitkeep"


def asset_path(relative: str) -> str:
    """
    Map a path relative to the assets root onto a repository path.

    Raises:
        CloudSnapError: VALIDATION if the path tries to leave the assets root
    """
    relative = (relative or "").strip("/")
    if any(part == ".." for part in relative.split("/")):
        raise validation_error("Path must stay inside the assets folder")
    return f"{ASSETS_ROOT}/{relative}" if relative else ASSETS_ROOT


def relative_path(repo_path: str) -> str:
    prefix = f"{ASSETS_ROOT}/"
    return repo_path[len(prefix):] if repo_path.startswith(prefix) else repo_path


# ============ LISTING ============

async def _list_item(client, entry, branch: str) -> ListItem:
    item = ListItem(
        name=entry.name,
        path=relative_path(entry.path),
        type=entry.type,
        size=entry.size,
        sha=entry.sha,
        download_url=entry.download_url,
        html_url=entry.html_url,
    )
    if entry.type != "file":
        return item

    commit_sha = await client.list_commits(entry.path, limit=1, ref=branch)
    item.commit_sha = commit_sha
    item.jsdelivr_url = jsdelivr_url(client.owner, client.repo, commit_sha, entry.path) if commit_sha else ""
    item.raw_url = raw_url(client.owner, client.repo, commit_sha, entry.path) if commit_sha else ""
    return item


async def list_directory(client, path: str, branch: str) -> ListFilesResponse:
    """
    List ``path`` with commit-pinned URLs for each file.

    A missing path is an empty listing. Commit lookups for all files run
    concurrently; a failed lookup leaves that file without commit URLs.
    """
    try:
        content = await client.get_content(asset_path(path), ref=branch)
    except CloudSnapError as e:
        if e.kind is ErrorKind.UPSTREAM_NOT_FOUND:
            logger.info("Nothing at %s, returning empty listing", path)
            return ListFilesResponse(items=[], path=path)
        raise

    entries = [content] if isinstance(content, FileEntry) else content
    items = await asyncio.gather(*(_list_item(client, entry, branch) for entry in entries))
    return ListFilesResponse(items=list(items), path=path)


# ============ DELETION ============

async def delete_tree(client, repo_path: str, branch: str) -> int:
    """
    Delete every file under ``repo_path``, depth first.

    Directories disappear with their last file. The first failure aborts
    the walk; files already deleted stay deleted.

    Returns:
        int: Number of files deleted
    """
    content = await client.get_content(repo_path, ref=branch)

    if isinstance(content, FileEntry):
        await client.delete_file(content.path, content.sha, f"Delete file: {content.path}", branch)
        return 1

    deleted = 0
    for entry in content:
        if entry.is_dir:
            deleted += await delete_tree(client, entry.path, branch)
        else:
            await client.delete_file(entry.path, entry.sha, f"Delete file: {entry.path}", branch)
            deleted += 1
    return deleted


async def delete_folder(client, folder: Any, branch: str) -> str:
    """Sanitize ``folder`` and delete everything under it; returns the clean path."""
    if not folder or not isinstance(folder, str):
        raise validation_error("Folder path is required")
    clean = sanitize_folder(folder)
    if not clean:
        raise validation_error("Invalid folder path")

    count = await delete_tree(client, f"{ASSETS_ROOT}/{clean}", branch)
    logger.info("Deleted folder %s (%d files)", clean, count)
    return clean


async def delete_file(client, path: str, sha: str, branch: str) -> None:
    if not path or not sha:
        raise validation_error("Path and SHA are required")
    real_path = asset_path(path)
    await client.delete_file(real_path, sha, f"Delete file: {real_path}", branch)


# ============ CREATION ============

async def create_folder(client, folder: Any, branch: str) -> str:
    """
    Create a folder by committing a placeholder file inside it.

    Returns:
        str: The sanitized folder path
    """
    if not folder or not isinstance(folder, str):
        raise validation_error("Folder path is required")
    clean = sanitize_folder(folder)
    if not clean:
        raise validation_error("Invalid folder path")

    content = base64.b64encode(b"\n").decode("ascii")
    await client.create_or_update_file(
        f"{ASSETS_ROOT}/{clean}/{PLACEHOLDER_NAME}",
        content,
        f"Create folder: {clean}",
        branch,
    )
    return clean
