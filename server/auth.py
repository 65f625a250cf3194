"""Authentication middleware for the Memsync service."""

import os
import secrets

from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

HEALTH_PATHS = {"/health", "/docs", "/openapi.json", "/redoc"}
HOOK_PREFIX = "/events"


def _is_dev_mode() -> bool:
    return os.environ.get("MEMSYNC_DEV", "0") == "1"


def _check_key(request: Request, env_var: str, header: str) -> Response | None:
    expected = os.environ.get(env_var, "")
    if not expected:
        return Response(
            content=f'{{"detail":"{env_var} not configured on server"}}',
            status_code=500,
            media_type="application/json",
        )
    provided = request.headers.get(header, "")
    if not provided or not secrets.compare_digest(provided, expected):
        return Response(
            content=f'{{"detail":"Unauthorized: invalid or missing {header} header"}}',
            status_code=401,
            media_type="application/json",
        )
    return None


class ServiceAuthMiddleware(BaseHTTPMiddleware):
    """Host hooks authenticate with the hook key; everything else needs the admin key."""

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if _is_dev_mode():
            return await call_next(request)
        path = request.url.path
        if path in HEALTH_PATHS:
            return await call_next(request)
        if path.startswith(HOOK_PREFIX):
            denied = _check_key(request, "MEMSYNC_HOOK_KEY", "X-MEMSYNC-HOOK")
        else:
            denied = _check_key(request, "MEMSYNC_ADMIN_KEY", "X-MEMSYNC-ADMIN")
        if denied is not None:
            return denied
        return await call_next(request)
