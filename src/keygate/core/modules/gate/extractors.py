"""Credential extractors, one per channel a request may carry a credential on."""

from abc import ABC, abstractmethod

from starlette.requests import HTTPConnection

from keygate.core.modules.gate.models import CredentialKind

API_KEY_HEADER = "X-API-Key"
SESSION_TOKEN_HEADER = "X-Session-Token"


class CredentialExtractor(ABC):
    """Pulls a candidate credential out of a request without judging it."""

    kind: CredentialKind

    @abstractmethod
    def extract(self, connection: HTTPConnection) -> str | None:
        """Return the raw credential, or None if this channel carries nothing."""


class ApiKeyHeaderExtractor(CredentialExtractor):
    kind = CredentialKind.API_KEY

    def __init__(self, header: str = API_KEY_HEADER) -> None:
        self.header = header

    def extract(self, connection: HTTPConnection) -> str | None:
        return connection.headers.get(self.header) or None


class SessionCookieExtractor(CredentialExtractor):
    kind = CredentialKind.SESSION_COOKIE

    def __init__(self, cookie_name: str) -> None:
        self.cookie_name = cookie_name

    def extract(self, connection: HTTPConnection) -> str | None:
        return connection.cookies.get(self.cookie_name) or None


class SessionTokenHeaderExtractor(CredentialExtractor):
    """Alternate session carry for cross-origin clients that cannot rely on cookies."""

    kind = CredentialKind.SESSION_HEADER

    def __init__(self, header: str = SESSION_TOKEN_HEADER) -> None:
        self.header = header

    def extract(self, connection: HTTPConnection) -> str | None:
        return connection.headers.get(self.header) or None


def default_extractors(cookie_name: str) -> list[CredentialExtractor]:
    """Extractors in precedence order: API key, session cookie, session token header."""
    return [
        ApiKeyHeaderExtractor(),
        SessionCookieExtractor(cookie_name),
        SessionTokenHeaderExtractor(),
    ]
