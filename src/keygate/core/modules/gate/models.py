"""Authentication decision outcomes."""

from enum import StrEnum
from typing import Self

from pydantic import BaseModel

from keygate.core.modules.session.models import Session


class CredentialKind(StrEnum):
    """Channels a request can carry a credential on, in precedence order."""

    API_KEY = "api_key"
    SESSION_COOKIE = "session_cookie"
    SESSION_HEADER = "session_header"


class AuthFailure(StrEnum):
    """Why a request was not authenticated."""

    MISSING_CREDENTIALS = "missing_credentials"  # No attempt was made
    INVALID_API_KEY = "invalid_api_key"
    INVALID_OR_EXPIRED_SESSION = "invalid_or_expired_session"


class AuthOutcome(BaseModel):
    """Result of authenticating one request."""

    authenticated: bool
    credential: CredentialKind | None = None
    session: Session | None = None
    failure: AuthFailure | None = None

    @classmethod
    def granted(cls, credential: CredentialKind, session: Session | None = None) -> Self:
        return cls(authenticated=True, credential=credential, session=session)

    @classmethod
    def denied(cls, failure: AuthFailure, credential: CredentialKind | None = None) -> Self:
        return cls(authenticated=False, credential=credential, failure=failure)


class AuthStatus(BaseModel):
    """Static description of how this server authenticates."""

    enabled: bool
    method: str
