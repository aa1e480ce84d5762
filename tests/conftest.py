"""Shared pytest fixtures."""

from collections.abc import AsyncGenerator, Callable
from datetime import UTC, datetime, timedelta

import pytest
from httpx import ASGITransport, AsyncClient
from starlette.requests import Request

from keygate.app import App
from keygate.config import Config
from keygate.core.core import Core
from keygate.core.modules.session.models import AuthToken, Session
from keygate.web.server import create_fastapi_app

TEST_API_KEY = "test-secret-key"


class FakeClock:
    """Manually advanced clock."""

    def __init__(self, start: datetime | None = None) -> None:
        self.current = start or datetime(2025, 1, 1, 12, 0, tzinfo=UTC)

    def __call__(self) -> datetime:
        return self.current

    def advance(self, **kwargs: float) -> None:
        self.current += timedelta(**kwargs)


class RecordingSessionBackend:
    """In-memory stand-in for the MongoDB backend that records every call."""

    def __init__(self, preloaded: list[Session] | None = None) -> None:
        self.documents: dict[AuthToken, Session] = {s.token: s for s in preloaded or []}
        self.calls: list[str] = []
        self.fail_writes = False

    async def start(self) -> None:
        self.calls.append("start")

    async def close(self) -> None:
        self.calls.append("close")

    async def load_active(self, at: datetime) -> list[Session]:
        self.calls.append("load_active")
        return [s for s in self.documents.values() if not s.is_expired(at)]

    async def save(self, session: Session) -> None:
        self.calls.append("save")
        if self.fail_writes:
            raise ConnectionError("backend unavailable")
        self.documents[session.token] = session

    async def delete(self, token: AuthToken) -> None:
        self.calls.append("delete")
        if self.fail_writes:
            raise ConnectionError("backend unavailable")
        self.documents.pop(token, None)

    async def delete_expired(self, at: datetime) -> int:
        self.calls.append("delete_expired")
        expired = [t for t, s in self.documents.items() if s.is_expired(at)]
        for token in expired:
            del self.documents[token]
        return len(expired)


@pytest.fixture
def api_key():
    return TEST_API_KEY


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def config():
    """Configuration with a known API key and nothing read from the environment or .env."""
    return Config(_env_file=None, api_key=TEST_API_KEY, api_key_file=None, database_url=None)  # type: ignore[call-arg]


@pytest.fixture
def core(config, clock):
    return Core(config, clock)


@pytest.fixture
def backend(core):
    """Attach a recording backend to the core's session store."""
    recording = RecordingSessionBackend()
    core.session_backend = recording
    return recording


@pytest.fixture
def app_instance(config, clock):
    return App(config, clock)


@pytest.fixture
def fastapi_app(app_instance, config):
    return create_fastapi_app(app_instance, config)


@pytest.fixture
async def client(fastapi_app) -> AsyncGenerator[AsyncClient]:
    """Async test client. Cookies are passed explicitly by tests, never kept between requests."""
    async with AsyncClient(transport=ASGITransport(app=fastapi_app), base_url="http://test") as client:
        yield client


@pytest.fixture
def make_request() -> Callable[..., Request]:
    """Build a bare Starlette request carrying the given headers and cookies."""

    def _make(
        headers: dict[str, str] | None = None, cookies: dict[str, str] | None = None, path: str = "/api/things"
    ) -> Request:
        raw_headers = [(name.lower().encode(), value.encode()) for name, value in (headers or {}).items()]
        if cookies:
            cookie_header = "; ".join(f"{name}={value}" for name, value in cookies.items())
            raw_headers.append((b"cookie", cookie_header.encode()))
        scope = {
            "type": "http",
            "method": "GET",
            "path": path,
            "query_string": b"",
            "headers": raw_headers,
        }
        return Request(scope)

    return _make
