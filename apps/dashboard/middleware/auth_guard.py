"""Middleware: stateless token gate in front of the dashboard UI and API trees."""
import logging

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import RedirectResponse

from apps.dashboard.auth import extract_token, verify_token
from apps.dashboard.rbac import is_route_allowed, match_path
from apps.dashboard.utils.api_errors import error_response

logger = logging.getLogger(__name__)

PUBLIC_PATHS = ("/login", "/form", "/api/public", "/api/webchat")
AUTH_API_PATHS = ("/api/auth",)
# shared-secret scheme, see internal_auth
INTERNAL_API_PATHS = ("/api/internal",)

LOGIN_PATH = "/login"
DASHBOARD_ROOT = "/dashboard"


def is_allow_listed(pathname: str) -> bool:
    return any(
        match_path(pathname, p)
        for p in PUBLIC_PATHS + AUTH_API_PATHS + INTERNAL_API_PATHS
    )


def is_dashboard_path(pathname: str) -> bool:
    return match_path(pathname, DASHBOARD_ROOT)


def is_api_path(pathname: str) -> bool:
    return match_path(pathname, "/api")


class AuthGuardMiddleware(BaseHTTPMiddleware):
    """Signature + expiry only; session rows are checked by the route handlers."""

    async def dispatch(self, request: Request, call_next):
        path = request.url.path
        if is_allow_listed(path):
            return await call_next(request)
        dashboard = is_dashboard_path(path)
        if not dashboard and not is_api_path(path):
            return await call_next(request)

        token = extract_token(request)
        if not token:
            if dashboard:
                return RedirectResponse(LOGIN_PATH, status_code=302)
            return error_response(401, "Unauthorized")

        payload = verify_token(token)
        if payload is None:
            if dashboard:
                return RedirectResponse(LOGIN_PATH, status_code=302)
            return error_response(401, "Invalid token")

        if dashboard and not is_route_allowed(payload.role, path):
            logger.info("auth_guard redirect role=%s path=%s", payload.role, path)
            return RedirectResponse(DASHBOARD_ROOT, status_code=302)

        return await call_next(request)
