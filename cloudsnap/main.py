"""
FastAPI application for uploading images and videos to a GitHub repository
and serving them through the jsDelivr CDN.
"""
import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, Depends, FastAPI, File, Form, Query, Request, UploadFile
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse
from fastapi.templating import Jinja2Templates
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address
from starlette.middleware.base import BaseHTTPMiddleware

from cloudsnap import browser
from cloudsnap.config import DEFAULT_BRANCH, Settings
from cloudsnap.errors import CloudSnapError, config_error, upstream_context, validation_error
from cloudsnap.gate import AccessGateMiddleware
from cloudsnap.github import GitHubClient
from cloudsnap.models import DeleteFileRequest, DeleteFileResponse, FolderRequest, FolderResponse
from cloudsnap.uploads import DEFAULT_FOLDER, UploadRequest, check_media, store_upload

logger = logging.getLogger(__name__)

TEMPLATES_PATH = Path(__file__).parent / "templates"
templates = Jinja2Templates(directory=TEMPLATES_PATH)

# Rate limiter setup; only the open upload route is limited
limiter = Limiter(key_func=get_remote_address)
PUBLIC_UPLOAD_LIMIT = "10/minute"


# Security Headers Middleware
class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    def __init__(self, app, settings: Settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        # Uploaded media is previewed straight from the CDN and raw GitHub
        response.headers["Content-Security-Policy"] = (
            "default-src 'self'; "
            "script-src 'self' 'unsafe-inline'; "
            "style-src 'self' 'unsafe-inline' https://fonts.googleapis.com; "
            "font-src 'self' https://fonts.gstatic.com; "
            "img-src 'self' data: blob: https://cdn.jsdelivr.net https://raw.githubusercontent.com; "
            "media-src 'self' blob: https://cdn.jsdelivr.net https://raw.githubusercontent.com; "
            "connect-src 'self'; "
            "frame-ancestors 'none';"
        )
        if self.settings.is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"
        return response


# ============ DEPENDENCIES ============

def get_settings(request: Request) -> Settings:
    return request.app.state.settings


async def repo_client(request: Request, settings: Settings = Depends(get_settings)):
    """Client for the server-configured repository, closed after the request."""
    if not settings.github_owner or not settings.github_repo:
        raise config_error(
            "GitHub repository configuration is missing. "
            "Please set GITHUB_OWNER, GITHUB_REPO, and GITHUB_BRANCH in your environment."
        )
    factory = request.app.state.github_factory
    async with factory(
        settings.github_owner, settings.github_repo, settings.github_token, settings.github_timeout
    ) as client:
        yield client


async def read_upload(
    file: Optional[UploadFile], folder: Optional[str], custom_filename: Optional[str]
) -> UploadRequest:
    if file is None:
        raise validation_error("No file provided")
    # Reject before buffering the body when the size is already known
    check_media(file.content_type, file.size or 0, file.filename or "")
    content = await file.read()
    return UploadRequest(
        content=content,
        content_type=file.content_type or "",
        original_name=file.filename or "",
        folder=folder or DEFAULT_FOLDER,
        custom_filename=custom_filename or None,
    )


# ============ API ============

router = APIRouter()


@router.get("/", response_class=HTMLResponse)
async def home_page(request: Request, settings: Settings = Depends(get_settings)):
    """Serve the upload page."""
    return templates.TemplateResponse(request, "index.html", {
        "owner": settings.github_owner,
        "repo": settings.github_repo,
        "branch": settings.github_branch,
    })


@router.get("/api/upload")
async def upload_info():
    return {
        "message": "Image upload API endpoint",
        "methods": ["POST"],
        "maxFileSize": "100MB (images), 500MB (videos)",
        "allowedTypes": ["image/*", "video/*"],
    }


@router.post("/api/upload")
async def upload(
    file: Optional[UploadFile] = File(None),
    folder: Optional[str] = Form(None),
    custom_filename: Optional[str] = Form(None),
    client=Depends(repo_client),
    settings: Settings = Depends(get_settings),
):
    """Upload using the server-configured repository."""
    upload_request = await read_upload(file, folder, custom_filename)
    with upstream_context("Upload failed"):
        result = await store_upload(client, upload_request, settings.github_branch)
    return result


@router.post("/api/public-upload")
@limiter.limit(PUBLIC_UPLOAD_LIMIT)
async def public_upload(
    request: Request,
    file: Optional[UploadFile] = File(None),
    github_token: Optional[str] = Form(None),
    github_owner: Optional[str] = Form(None),
    github_repo: Optional[str] = Form(None),
    github_branch: Optional[str] = Form(None),
    folder: Optional[str] = Form(None),
    custom_filename: Optional[str] = Form(None),
    settings: Settings = Depends(get_settings),
):
    """Upload to the caller's own repository with the caller's own token."""
    if not github_token or not github_owner or not github_repo:
        raise validation_error("github_token, github_owner and github_repo are required")

    upload_request = await read_upload(file, folder, custom_filename)
    logger.info("Public upload to %s/%s from %s", github_owner, github_repo,
                request.client.host if request.client else "unknown")

    factory = request.app.state.github_factory
    async with factory(github_owner, github_repo, github_token, settings.github_timeout) as client:
        with upstream_context("Upload failed"):
            result = await store_upload(client, upload_request, github_branch or DEFAULT_BRANCH)
    return result


@router.get("/api/list-files")
async def list_files(
    path: str = Query(""),
    client=Depends(repo_client),
    settings: Settings = Depends(get_settings),
):
    with upstream_context("Failed to list files"):
        listing = await browser.list_directory(client, path, settings.github_branch)
    # File-only fields are left out of directory items
    return {
        "success": True,
        "items": [item.model_dump(exclude_unset=True) for item in listing.items],
        "path": listing.path,
    }


@router.delete("/api/delete-file", response_model=DeleteFileResponse)
async def delete_file(
    body: DeleteFileRequest,
    client=Depends(repo_client),
    settings: Settings = Depends(get_settings),
):
    with upstream_context("Failed to delete file"):
        await browser.delete_file(client, body.path, body.sha, settings.github_branch)
    return DeleteFileResponse()


@router.delete("/api/delete-folder", response_model=FolderResponse)
async def delete_folder(
    body: FolderRequest,
    client=Depends(repo_client),
    settings: Settings = Depends(get_settings),
):
    with upstream_context("Failed to delete folder"):
        path = await browser.delete_folder(client, body.path, settings.github_branch)
    return FolderResponse(path=path)


@router.post("/api/create-folder", response_model=FolderResponse)
async def create_folder(
    body: FolderRequest,
    client=Depends(repo_client),
    settings: Settings = Depends(get_settings),
):
    with upstream_context("Failed to create folder"):
        path = await browser.create_folder(client, body.path, settings.github_branch)
    return FolderResponse(path=path)


# ============ APPLICATION ============

async def cloudsnap_error_handler(request: Request, exc: CloudSnapError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %r", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected: %r", request.method, request.url.path, exc)
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


def create_app(settings: Optional[Settings] = None, github_factory=GitHubClient) -> FastAPI:
    """
    Build the application.

    Args:
        settings: Configuration; read from the environment when omitted
        github_factory: Callable ``(owner, repo, token, timeout)`` returning an
            async context manager that exposes the content-client operations
    """
    settings = settings or Settings.from_env()
    logging.basicConfig(
        level=logging.DEBUG if settings.debug else logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s',
    )

    @asynccontextmanager
    async def lifespan(app):
        logger.info(
            "CloudSnap started for %s/%s@%s",
            settings.github_owner, settings.github_repo, settings.github_branch,
        )
        yield
        logger.info("CloudSnap shutting down")

    app = FastAPI(title="CloudSnap", docs_url=None, redoc_url=None, lifespan=lifespan)
    app.state.settings = settings
    app.state.github_factory = github_factory
    app.state.limiter = limiter
    app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)
    app.add_exception_handler(CloudSnapError, cloudsnap_error_handler)

    # Last added runs first: CORS, then headers, then the access gate
    app.add_middleware(AccessGateMiddleware, settings=settings, templates=templates)
    app.add_middleware(SecurityHeadersMiddleware, settings=settings)
    if settings.allowed_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=list(settings.allowed_origins),
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
        )

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8000)
