"""Request gating middleware applied to every route except the exempt ones."""

from typing import cast

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

from keygate.app import App
from keygate.core.modules.gate.models import AuthFailure
from keygate.web.error_handlers import create_json_error_response

logger = structlog.get_logger(__name__)

# Reachable without authentication; the auth routes consult the gate themselves
EXEMPT_PATHS = {
    "/health",
    "/api/auth",
}

# A stale or unknown session is treated like no credential: the client has to log in again
REJECTIONS: dict[AuthFailure, tuple[int, str]] = {
    AuthFailure.MISSING_CREDENTIALS: (401, "Authentication required."),
    AuthFailure.INVALID_OR_EXPIRED_SESSION: (401, "Authentication required."),
    AuthFailure.INVALID_API_KEY: (403, "Invalid API key."),
}


class AuthGateMiddleware(BaseHTTPMiddleware):
    """Rejects unauthenticated HTTP requests before they reach protected handlers.

    WebSocket connections pass through untouched and authenticate at handshake.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if self._is_exempt(request.url.path):
            return await call_next(request)

        app = cast(App, request.app.state.app)
        outcome = await app.authenticate(request)
        if outcome.authenticated:
            return await call_next(request)

        failure = outcome.failure or AuthFailure.MISSING_CREDENTIALS
        status_code, message = REJECTIONS[failure]
        logger.info(
            "request_rejected",
            path=request.url.path,
            method=request.method,
            reason=failure,
            status_code=status_code,
        )
        return create_json_error_response(status_code=status_code, message=message)

    def _is_exempt(self, path: str) -> bool:
        """Check if the path is exempt from authentication."""
        if path in EXEMPT_PATHS:
            return True
        return any(path.startswith(exempt_path + "/") for exempt_path in EXEMPT_PATHS)
