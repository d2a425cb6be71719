"""
Upload validation and storage.
"""
import base64
import logging
from dataclasses import dataclass
from typing import Optional

from cloudsnap.config import ASSETS_ROOT
from cloudsnap.errors import validation_error
from cloudsnap.models import UploadResponse
from cloudsnap.security import log_security_event, sanitize_folder
from cloudsnap.urls import build_urls
from cloudsnap.utils.naming import build_filename

logger = logging.getLogger(__name__)

MAX_IMAGE_SIZE = 100 * 1024 * 1024  # 100MB
MAX_VIDEO_SIZE = 500 * 1024 * 1024  # 500MB
DEFAULT_FOLDER = "default"


@dataclass
class UploadRequest:
    content: bytes
    content_type: str
    original_name: str
    folder: str = DEFAULT_FOLDER
    custom_filename: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)


def max_size_for(content_type: str) -> int:
    return MAX_VIDEO_SIZE if content_type.startswith("video/") else MAX_IMAGE_SIZE


def check_media(content_type: Optional[str], size: int, filename: str = "") -> None:
    """
    Reject anything that is not an image/video or exceeds its size ceiling.

    Raises:
        CloudSnapError: VALIDATION
    """
    content_type = content_type or ""
    if not (content_type.startswith("image/") or content_type.startswith("video/")):
        log_security_event("blocked_upload_type", {"filename": filename, "type": content_type})
        raise validation_error("Only image and video files are allowed")

    if size > max_size_for(content_type):
        limit = "500MB" if content_type.startswith("video/") else "100MB"
        raise validation_error(f"File size must be less than {limit}")


def destination_path(folder: str, filename: str) -> str:
    clean_folder = sanitize_folder(folder)
    if not clean_folder:
        return f"{ASSETS_ROOT}/{filename}"
    return f"{ASSETS_ROOT}/{clean_folder}/{filename}"


async def store_upload(client, upload: UploadRequest, branch: str) -> UploadResponse:
    """
    Validate ``upload`` and commit it to the client's repository.

    Nothing is written upstream when validation fails.
    """
    check_media(upload.content_type, upload.size, upload.original_name)

    path = destination_path(upload.folder or DEFAULT_FOLDER, build_filename(
        upload.original_name, upload.custom_filename
    ))
    encoded = base64.b64encode(upload.content).decode("ascii")

    stored = await client.create_or_update_file(
        path,
        encoded,
        f"Upload image: {upload.original_name}",
        branch,
    )
    logger.info("Uploaded %s (%d bytes) at commit %s", path, upload.size, stored.commit_sha)

    urls = build_urls(client.owner, client.repo, branch, stored.commit_sha, path)
    return UploadResponse(
        filename=path,
        url=urls.raw,
        urls=urls,
        size=upload.size,
        type=upload.content_type,
        commit_sha=stored.commit_sha,
        github_url=stored.content_url,
    )
