"""
Request gatekeeper.

Every request inside the gatekeeper's scope is classified as public or
protected before routing. Protected page requests without a valid session
cookie are redirected to the login page; the handler is never invoked.
The verified identity is not forwarded: handlers resolve it again themselves.
"""

import enum
import logging
from typing import Iterable
from urllib.parse import quote

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from blog.core.auth import get_session_identity
from blog.core.config import Settings, settings as default_settings
from blog.core.logging_config import log_request_event

logger = logging.getLogger(__name__)

AUTH_PREFIXES = ("/api/auth", "/auth")
ACCOUNT_PAGES = ("/login", "/register")


class RouteAccess(str, enum.Enum):
    PUBLIC = "public"
    PROTECTED = "protected"


def _matches_prefix(path: str, prefixes: Iterable[str]) -> bool:
    """True when ``path`` equals a prefix or lives below it."""
    for prefix in prefixes:
        prefix = prefix.rstrip("/")
        if not prefix:
            continue
        if path == prefix or path.startswith(prefix + "/"):
            return True
    return False


def is_in_scope(path: str, settings: Settings = default_settings) -> bool:
    """Whether the gatekeeper handles ``path`` at all."""
    return not any(
        path.startswith(scope) for scope in settings.GATEKEEPER_EXCLUDED_SCOPES
    )


def classify_path(path: str, settings: Settings = default_settings) -> RouteAccess:
    """Classify a request path; the first matching rule wins."""
    if path == "/":
        return RouteAccess.PUBLIC
    if _matches_prefix(path, AUTH_PREFIXES):
        return RouteAccess.PUBLIC
    if _matches_prefix(path, ACCOUNT_PAGES + (settings.LOGIN_PATH,)):
        return RouteAccess.PUBLIC
    if _matches_prefix(path, settings.GATEKEEPER_INTERNAL_PREFIXES):
        return RouteAccess.PUBLIC
    # Anything that looks like a file (favicon.ico, app.js, ...) is an asset
    if "." in path:
        return RouteAccess.PUBLIC
    return RouteAccess.PROTECTED


class GatekeeperMiddleware(BaseHTTPMiddleware):
    """Redirect unauthenticated requests for protected pages to the login page."""

    def __init__(self, app, settings: Settings = default_settings):
        super().__init__(app)
        self.settings = settings

    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if not is_in_scope(path, self.settings):
            return await call_next(request)

        if classify_path(path, self.settings) is RouteAccess.PUBLIC:
            return await call_next(request)

        if get_session_identity(request) is None:
            log_request_event(
                request,
                event_type="gatekeeper.redirect",
                message="Unauthenticated request redirected to login",
                event_category="authorization",
            )
            login_url = f"{self.settings.LOGIN_PATH}?next={quote(path)}"
            return RedirectResponse(url=login_url, status_code=307)

        return await call_next(request)
