import secrets

import structlog

from keygate.core.core import Service
from keygate.core.modules.session.models import (
    CONNECTION_TOKEN_TTL,
    AuthToken,
    ConnectionToken,
    ConnectionTokenValue,
)
from keygate.errors import NotAuthenticatedError

logger = structlog.get_logger(__name__)


class ConnectionTokenService(Service):
    """Issues and redeems short-lived tokens for WebSocket handshakes.

    Tokens live in the session store's separate namespace. Redeeming never
    touches the parent session and does not require it to still be valid.
    """

    async def issue(self, session_token: AuthToken | None) -> ConnectionToken:
        """Issue a token bound to a currently valid session."""
        if not session_token or await self.core.services.session.get(session_token) is None:
            raise NotAuthenticatedError
        return await self._mint(issued_for=session_token)

    async def issue_for_api_key(self) -> ConnectionToken:
        """Issue a token to a caller that authenticated with the API key itself."""
        return await self._mint(issued_for=None)

    async def redeem(self, token: str | None) -> bool:
        """Check a presented token: True only before its expiry."""
        if not token:
            return False

        store = self.core.services.session
        value = ConnectionTokenValue(token)
        if self.core.config.connection_token_single_use:
            record = await store.pop_connection_token(value)
        else:
            record = await store.get_connection_token(value)

        if record is None:
            logger.debug("connection_token_unknown")
            return False
        if record.is_expired(self.core.clock()):
            await store.discard_connection_token(value)
            logger.info("connection_token_expired")
            return False
        return True

    async def _mint(self, issued_for: AuthToken | None) -> ConnectionToken:
        store = self.core.services.session
        while True:
            issued_at = self.core.clock()
            record = ConnectionToken(
                token=ConnectionTokenValue(secrets.token_urlsafe(24)),
                issued_for=issued_for,
                issued_at=issued_at,
                expires_at=issued_at + CONNECTION_TOKEN_TTL,
            )
            if await store.add_connection_token(record):
                break

        logger.debug("connection_token_issued", session_bound=issued_for is not None)
        return record
