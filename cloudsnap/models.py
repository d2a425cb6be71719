"""
Pydantic models for GitHub content and API request/response validation.
"""
from typing import Any, List, Literal, Optional, Union

from pydantic import BaseModel, Field

from cloudsnap.urls import URLSet


# ============ GITHUB CONTENT ============

class ContentEntry(BaseModel):
    """Fields shared by every item the contents API returns."""
    name: str
    path: str
    sha: str
    size: int = 0
    download_url: Optional[str] = None
    html_url: Optional[str] = None


class FileEntry(ContentEntry):
    """A path that resolved to a single file."""
    type: Literal["file", "symlink", "submodule"] = "file"


class DirectoryEntry(ContentEntry):
    """One item of a directory listing."""
    type: Literal["file", "dir", "symlink", "submodule"]

    @property
    def is_dir(self) -> bool:
        return self.type == "dir"


# Result of reading a path: a single file, or the listing of a directory.
Content = Union[FileEntry, List[DirectoryEntry]]


class StoredFile(BaseModel):
    """Outcome of a create-or-update commit."""
    path: str
    content_sha: Optional[str] = None
    commit_sha: str
    content_url: Optional[str] = None


# ============ API REQUESTS ============

class DeleteFileRequest(BaseModel):
    """Request model for deleting one file."""
    path: str = ""
    sha: str = ""


class FolderRequest(BaseModel):
    """Request model for creating or deleting a folder."""
    path: Any = None


# ============ API RESPONSES ============

class UploadResponse(BaseModel):
    """Response model after a successful upload."""
    success: bool = True
    filename: str
    url: str  # raw branch URL
    urls: URLSet
    size: int
    type: str
    commit_sha: str
    github_url: Optional[str] = None


class ListItem(BaseModel):
    """One entry of a list-files response."""
    name: str
    path: str
    type: str
    size: int
    sha: str
    download_url: Optional[str] = None
    html_url: Optional[str] = None
    # Only present for files
    commit_sha: Optional[str] = None
    jsdelivr_url: Optional[str] = None
    raw_url: Optional[str] = None


class ListFilesResponse(BaseModel):
    success: bool = True
    items: List[ListItem] = Field(default_factory=list)
    path: str


class DeleteFileResponse(BaseModel):
    success: bool = True
    message: str = "File deleted successfully"


class FolderResponse(BaseModel):
    success: bool = True
    path: str
