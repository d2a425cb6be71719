"""
Access gate: decides per request whether it needs a PIN session, an API key,
or nothing at all.
"""
import logging
from enum import Enum

from fastapi import Request
from fastapi.responses import JSONResponse, PlainTextResponse, RedirectResponse
from fastapi.templating import Jinja2Templates
from starlette.middleware.base import BaseHTTPMiddleware

from cloudsnap.config import SESSION_MAX_AGE, Settings
from cloudsnap.errors import ErrorKind
from cloudsnap.security import (
    SESSION_COOKIE,
    SessionState,
    api_key_matches,
    extract_api_key,
    issue_session_token,
    log_security_event,
    pin_matches,
    validate_session_token,
)

logger = logging.getLogger(__name__)

API_PREFIX = "/api/"
PUBLIC_ROUTES = frozenset({"/api/public-upload"})
VERIFY_PIN_PATH = "/verify-pin"
INCORRECT_PIN = "Incorrect PIN. Please try again."


class RouteClass(str, Enum):
    PUBLIC = "public"
    REQUIRES_SESSION_OR_KEY = "requires_session_or_key"
    REQUIRES_PIN_PAGE = "requires_pin_page"


def classify_route(path: str) -> RouteClass:
    if path in PUBLIC_ROUTES:
        return RouteClass.PUBLIC
    if path.startswith(API_PREFIX):
        return RouteClass.REQUIRES_SESSION_OR_KEY
    return RouteClass.REQUIRES_PIN_PAGE


def client_host(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class AccessGateMiddleware(BaseHTTPMiddleware):
    """PIN session for pages, session or API key for the API."""

    def __init__(self, app, settings: Settings, templates: Jinja2Templates):
        super().__init__(app)
        self.settings = settings
        self.templates = templates

    def has_session(self, request: Request) -> bool:
        state = validate_session_token(
            request.cookies.get(SESSION_COOKIE), self.settings.signing_key
        )
        if state is SessionState.EXPIRED:
            logger.debug("Expired session cookie from %s", client_host(request))
        return state is SessionState.VALID

    async def dispatch(self, request: Request, call_next):
        route = classify_route(request.url.path)

        if route is RouteClass.PUBLIC:
            return await call_next(request)
        if route is RouteClass.REQUIRES_SESSION_OR_KEY:
            return await self.check_api(request, call_next)
        return await self.check_page(request, call_next)

    async def check_api(self, request: Request, call_next):
        if self.has_session(request):
            return await call_next(request)

        if not self.settings.api_key:
            logger.error("API_KEY is not configured; rejecting %s", request.url.path)
            return JSONResponse(
                {"error": "API key not configured on server"}, status_code=ErrorKind.CONFIG.status_code
            )

        if not api_key_matches(extract_api_key(request.headers), self.settings.api_key):
            log_security_event("invalid_api_key", {
                "path": request.url.path,
                "client": client_host(request),
            })
            return JSONResponse(
                {"error": "Invalid or missing API key. Use header: x-api-key or Authorization: Bearer <key>"},
                status_code=ErrorKind.AUTH.status_code,
            )
        return await call_next(request)

    async def check_page(self, request: Request, call_next):
        if not self.settings.pin:
            logger.error("PIN is not configured")
            return PlainTextResponse("Error: PIN not configured", status_code=ErrorKind.CONFIG.status_code)

        if request.method == "POST" and request.url.path == VERIFY_PIN_PATH:
            return await self.verify_pin(request)

        if self.has_session(request):
            return await call_next(request)
        return self.login_page(request)

    async def verify_pin(self, request: Request):
        form = await request.form()
        entered = form.get("pin")

        if not pin_matches(entered, self.settings.pin):
            log_security_event("incorrect_pin", {"client": client_host(request)})
            return self.login_page(request, INCORRECT_PIN)

        logger.info("PIN accepted for %s", client_host(request))
        response = RedirectResponse(url="/", status_code=303)
        response.set_cookie(
            SESSION_COOKIE,
            issue_session_token(self.settings.signing_key),
            max_age=SESSION_MAX_AGE,
            path="/",
            httponly=True,
            secure=self.settings.is_production,
            samesite="strict",
        )
        return response

    def login_page(self, request: Request, error: str = ""):
        return self.templates.TemplateResponse(
            request, "login.html", {"error": error}, status_code=200
        )
