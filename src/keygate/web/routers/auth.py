from fastapi import APIRouter, Request, Response
from pydantic import BaseModel, ConfigDict, Field

from keygate.app import App
from keygate.web.deps import AppDep, PresentedSessionTokenDep
from keygate.web.openapi import ErrorResponse

router = APIRouter(tags=["auth"])


class LoginRequest(BaseModel):
    """Login request."""

    api_key: str | None = Field(None, alias="apiKey", description="The server's API key")

    model_config = ConfigDict(populate_by_name=True)


class AuthStatusResponse(BaseModel):
    success: bool = True
    authenticated: bool = Field(..., description="Whether the request carries a valid credential")
    required: bool = Field(True, description="Authentication is always required")


class LoginResponse(BaseModel):
    """Login response."""

    success: bool = True
    message: str = "Logged in successfully."
    token: str = Field(..., description="Session token, also set as a cookie, for header-based clients")


class ConnectionTokenResponse(BaseModel):
    success: bool = True
    token: str = Field(..., description="Short-lived WebSocket connection token")
    expires_in: int = Field(..., alias="expiresIn", description="Seconds until the token expires")

    model_config = ConfigDict(populate_by_name=True)


class LogoutResponse(BaseModel):
    success: bool = True
    message: str = "Logged out successfully."


def _cookie_attributes(app: App) -> dict[str, object]:
    return {
        "httponly": True,
        "secure": app.config.production,
        "samesite": "strict",
        "path": "/",
    }


@router.get(
    "/auth/status",
    summary="Authentication status",
    description="Report whether the current request is authenticated. Never rejects.",
    operation_id="getAuthStatus",
)
async def status(request: Request, app: AppDep) -> AuthStatusResponse:
    authenticated = await app.is_request_authenticated(request)
    return AuthStatusResponse(authenticated=authenticated)


@router.post(
    "/auth/login",
    summary="Log in with the API key",
    description="Validate the API key and start a session carried by an HTTP-only cookie.",
    operation_id="login",
    responses={
        200: {"description": "Session created"},
        400: {"model": ErrorResponse, "description": "API key missing"},
        401: {"model": ErrorResponse, "description": "Invalid API key"},
    },
)
async def login(app: AppDep, response: Response, login_data: LoginRequest | None = None) -> LoginResponse:
    """Validate the API key and create a session."""

    token = await app.login(login_data.api_key if login_data is not None else None)

    response.set_cookie(
        key=app.config.session_cookie_name,
        value=token,
        max_age=app.session_ttl_seconds,
        **_cookie_attributes(app),  # type: ignore[arg-type]
    )

    return LoginResponse(token=token)


@router.get(
    "/auth/token",
    summary="Issue a WebSocket connection token",
    description="Issue a 5 minute token for WebSocket handshakes. It is not the session token.",
    operation_id="getConnectionToken",
    responses={
        200: {"description": "Token issued"},
        401: {"model": ErrorResponse, "description": "Not authenticated"},
    },
)
async def connection_token(request: Request, app: AppDep) -> ConnectionTokenResponse:
    issued = await app.issue_connection_token(request)
    return ConnectionTokenResponse(token=issued.token, expires_in=issued.expires_in)


@router.post(
    "/auth/logout",
    summary="End session",
    description="Invalidate the current session if there is one and clear the cookie. Always succeeds.",
    operation_id="logout",
)
async def logout(app: AppDep, session_token: PresentedSessionTokenDep, response: Response) -> LogoutResponse:
    await app.logout(session_token)
    response.delete_cookie(app.config.session_cookie_name, **_cookie_attributes(app))  # type: ignore[arg-type]
    return LogoutResponse()
