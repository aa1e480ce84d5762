from typing import Annotated, cast

from fastapi import Depends
from fastapi.requests import HTTPConnection

from keygate.app import App
from keygate.core.modules.gate.extractors import SESSION_TOKEN_HEADER
from keygate.core.modules.session.models import AuthToken


async def get_app(connection: HTTPConnection) -> App:
    return cast(App, connection.app.state.app)


async def get_presented_session_token(
    connection: HTTPConnection, app: Annotated[App, Depends(get_app)]
) -> AuthToken | None:
    """Session token from the session cookie, falling back to the session token header."""

    token = connection.cookies.get(app.config.session_cookie_name) or connection.headers.get(SESSION_TOKEN_HEADER)
    return AuthToken(token) if token else None


# Type aliases for dependencies
AppDep = Annotated[App, Depends(get_app)]
PresentedSessionTokenDep = Annotated[AuthToken | None, Depends(get_presented_session_token)]
