import structlog
from starlette.requests import HTTPConnection

from keygate.core.core import Service
from keygate.core.modules.gate.extractors import CredentialExtractor, default_extractors
from keygate.core.modules.gate.models import AuthFailure, AuthOutcome, AuthStatus, CredentialKind
from keygate.core.modules.session.models import AuthToken

logger = structlog.get_logger(__name__)


class GateService(Service):
    """Single authentication decision shared by the middleware, the auth routes and WebSocket handshakes."""

    def __init__(self) -> None:
        super().__init__()
        self._extractors: list[CredentialExtractor] | None = None

    @property
    def extractors(self) -> list[CredentialExtractor]:
        if self._extractors is None:
            self._extractors = default_extractors(self.core.config.session_cookie_name)
        return self._extractors

    async def authenticate(self, connection: HTTPConnection) -> AuthOutcome:
        """Judge the first credential present on the request; later channels are not consulted."""
        for extractor in self.extractors:
            value = extractor.extract(connection)
            if value is None:
                continue

            if extractor.kind is CredentialKind.API_KEY:
                if self.core.key_validator.validate(value):
                    return AuthOutcome.granted(extractor.kind)
                logger.warning("api_key_rejected", path=connection.url.path)
                return AuthOutcome.denied(AuthFailure.INVALID_API_KEY, extractor.kind)

            session = await self.core.services.session.get(AuthToken(value))
            if session is None:
                logger.info("session_rejected", path=connection.url.path, channel=extractor.kind)
                return AuthOutcome.denied(AuthFailure.INVALID_OR_EXPIRED_SESSION, extractor.kind)
            return AuthOutcome.granted(extractor.kind, session)

        return AuthOutcome.denied(AuthFailure.MISSING_CREDENTIALS)

    async def is_authenticated(self, connection: HTTPConnection) -> bool:
        """Report whether the request is authenticated, without rejecting it."""
        outcome = await self.authenticate(connection)
        return outcome.authenticated

    def is_auth_enabled(self) -> bool:
        """Authentication is always enforced; there is no way to switch it off."""
        return True

    def auth_status(self) -> AuthStatus:
        return AuthStatus(enabled=self.is_auth_enabled(), method="api_key_or_session")
