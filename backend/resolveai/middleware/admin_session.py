"""
Admin navigation gate.

Browser navigation to admin pages requires the admin_session cookie set by
POST /api/admin/auth/login. Without a valid one the visitor is redirected to
the admin login page with a ``next`` parameter pointing back to where they
were going. API routes are not gated here; they authenticate with bearer
tokens in api/deps.py.

Old links to /cases are redirected to /admin/cases.
"""

import logging
from urllib.parse import urlencode

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from resolveai.auth.jwt import AdminClaims, verify_token
from resolveai.config import settings
from resolveai.errors import InvalidCredential

logger = logging.getLogger(__name__)

LOGIN_PATH = "/admin/auth"
DEFAULT_NEXT = "/admin/cases"

PUBLIC_PREFIXES = (
    LOGIN_PATH,
    "/employee/login",
    "/api",
    "/metrics",
    "/docs",
    "/openapi.json",
    "/favicon.ico",
)


def is_public_path(path: str) -> bool:
    return any(path == p or path.startswith(p + "/") for p in PUBLIC_PREFIXES)


def _is_legacy_cases_path(path: str) -> bool:
    return path == "/cases" or path.startswith("/cases/")


def normalize_next(path: str | None) -> str:
    """Only internal absolute paths are allowed as redirect targets."""
    if not path or not path.startswith("/") or path.startswith("//") or "\\" in path:
        return DEFAULT_NEXT
    if _is_legacy_cases_path(path):
        return "/admin" + path
    return path


def has_admin_session(request: Request) -> bool:
    cookie = request.cookies.get(settings.admin_session_cookie)
    if not cookie:
        return False
    try:
        return isinstance(verify_token(cookie), AdminClaims)
    except InvalidCredential:
        return False


class AdminSessionMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next):
        path = request.url.path

        if is_public_path(path):
            return await call_next(request)

        if _is_legacy_cases_path(path):
            target = normalize_next(path)
            if request.url.query:
                target = f"{target}?{request.url.query}"
            return RedirectResponse(target, status_code=307)

        if path == "/admin" or path.startswith("/admin/"):
            if not has_admin_session(request):
                query = urlencode({"next": normalize_next(path)})
                logger.debug("Admin page %s without session, redirecting to login", path)
                return RedirectResponse(f"{LOGIN_PATH}?{query}", status_code=307)

        return await call_next(request)
