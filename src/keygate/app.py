from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from starlette.requests import HTTPConnection

from keygate.config import Config
from keygate.core.core import Core
from keygate.core.modules.gate.models import AuthOutcome, AuthStatus, CredentialKind
from keygate.core.modules.session.models import SESSION_TTL, AuthToken, ConnectionToken
from keygate.errors import AuthenticationError, ValidationError
from keygate.utils import Clock, now

logger = structlog.get_logger(__name__)


class App:
    """Facade for all authentication operations, delegating to Core services."""

    def __init__(self, config: Config, clock: Clock = now) -> None:
        self._core = Core(config, clock)

    @property
    def config(self) -> Config:
        return self._core.config

    @property
    def session_ttl_seconds(self) -> int:
        return int(SESSION_TTL.total_seconds())

    @asynccontextmanager
    async def lifespan(self) -> AsyncGenerator[None]:
        """Application lifespan management - delegates to Core."""
        async with self._core.lifespan():
            yield

    async def authenticate(self, connection: HTTPConnection) -> AuthOutcome:
        """Classify a request as authenticated or not, with the reason."""
        return await self._core.services.gate.authenticate(connection)

    async def is_request_authenticated(self, connection: HTTPConnection) -> bool:
        """Read-only authentication check, never rejects."""
        return await self._core.services.gate.is_authenticated(connection)

    async def login(self, api_key: str | None) -> AuthToken:
        """Validate the API key and create a session."""
        if not api_key:
            raise ValidationError("API key is required.")
        if not self._core.key_validator.validate(api_key):
            logger.warning("login_rejected")
            raise AuthenticationError("Invalid API key.")
        return await self._core.services.session.create()

    async def logout(self, session_token: AuthToken | None) -> None:
        """Invalidate the session if one was presented. Always succeeds."""
        if session_token:
            await self._core.services.session.invalidate(session_token)

    async def issue_connection_token(self, connection: HTTPConnection) -> ConnectionToken:
        """Issue a WebSocket connection token to an authenticated caller."""
        outcome = await self.authenticate(connection)
        if not outcome.authenticated:
            raise AuthenticationError
        if outcome.credential is CredentialKind.API_KEY:
            return await self._core.services.connection.issue_for_api_key()
        session_token = outcome.session.token if outcome.session is not None else None
        return await self._core.services.connection.issue(session_token)

    async def redeem_connection_token(self, token: str | None) -> bool:
        """Check a connection token presented at WebSocket handshake."""
        return await self._core.services.connection.redeem(token)

    def get_auth_status(self) -> AuthStatus:
        return self._core.services.gate.auth_status()

    def get_session_stats(self) -> dict[str, int]:
        session = self._core.services.session
        return {"sessions": session.session_count, "connection_tokens": session.connection_token_count}
