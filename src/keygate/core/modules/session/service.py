import asyncio
import contextlib
import secrets

import structlog

from keygate.core.core import Service
from keygate.core.modules.session.backend import SessionBackend
from keygate.core.modules.session.models import (
    SESSION_TTL,
    AuthToken,
    ConnectionToken,
    ConnectionTokenValue,
    Session,
)

logger = structlog.get_logger(__name__)


class SessionService(Service):
    """Process-wide store of sessions and connection tokens.

    Every operation runs under a single lock, so a record is never observed
    half-written and an invalidation is visible to every later lookup. When a
    backend is configured, writes reach it before the in-memory map changes.
    """

    def __init__(self) -> None:
        super().__init__()
        self._sessions: dict[AuthToken, Session] = {}
        self._connection_tokens: dict[ConnectionTokenValue, ConnectionToken] = {}
        self._lock = asyncio.Lock()
        self._sweep_task: asyncio.Task[None] | None = None

    @property
    def _backend(self) -> SessionBackend | None:
        return self.core.session_backend

    @property
    def session_count(self) -> int:
        return len(self._sessions)

    @property
    def connection_token_count(self) -> int:
        return len(self._connection_tokens)

    async def on_start(self) -> None:
        """Reload persisted sessions and start the expiry sweep."""
        if self._backend is not None:
            await self._backend.start()
            sessions = await self._backend.load_active(self.core.clock())
            async with self._lock:
                self._sessions.update({session.token: session for session in sessions})

        self._sweep_task = asyncio.create_task(self._sweep_loop())
        logger.debug("session_service_started", session_count=self.session_count)

    async def on_stop(self) -> None:
        """Cancel the expiry sweep."""
        if self._sweep_task is None:
            return
        self._sweep_task.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await self._sweep_task
        self._sweep_task = None

    async def create(self) -> AuthToken:
        """Create a session and return its token."""
        async with self._lock:
            token = self._new_token()
            created_at = self.core.clock()
            session = Session(token=token, created_at=created_at, expires_at=created_at + SESSION_TTL)
            if self._backend is not None:
                await self._backend.save(session)
            self._sessions[token] = session
            count = len(self._sessions)

        logger.info("session_created", session_count=count)
        return token

    async def get(self, token: AuthToken) -> Session | None:
        """Return the session if it exists and has not expired; expired entries are evicted."""
        async with self._lock:
            session = self._sessions.get(token)
            if session is None:
                return None
            if session.is_expired(self.core.clock()):
                await self._remove(token)
                logger.debug("session_expired_on_access")
                return None
            return session

    async def invalidate(self, token: AuthToken) -> None:
        """Remove a session. Unknown tokens are ignored."""
        async with self._lock:
            if token not in self._sessions:
                return
            await self._remove(token)
            count = len(self._sessions)

        logger.info("session_invalidated", session_count=count)

    async def sweep_expired(self) -> int:
        """Drop every expired session and connection token, returning how many were removed."""
        async with self._lock:
            at = self.core.clock()
            expired_sessions = [token for token, session in self._sessions.items() if session.is_expired(at)]
            expired_tokens = [token for token, record in self._connection_tokens.items() if record.is_expired(at)]

            if self._backend is not None:
                await self._backend.delete_expired(at)
            for session_token in expired_sessions:
                del self._sessions[session_token]
            for connection_token in expired_tokens:
                del self._connection_tokens[connection_token]

        removed = len(expired_sessions) + len(expired_tokens)
        if removed:
            logger.debug("expired_entries_swept", sessions=len(expired_sessions), connection_tokens=len(expired_tokens))
        return removed

    async def add_connection_token(self, record: ConnectionToken) -> bool:
        """Store a connection token. Returns False if the value is already taken."""
        async with self._lock:
            if record.token in self._connection_tokens or record.token in self._sessions:
                return False
            self._connection_tokens[record.token] = record
            return True

    async def get_connection_token(self, token: ConnectionTokenValue) -> ConnectionToken | None:
        """Return the stored record as-is; expiry is judged by the caller."""
        async with self._lock:
            return self._connection_tokens.get(token)

    async def pop_connection_token(self, token: ConnectionTokenValue) -> ConnectionToken | None:
        """Remove and return the record in one step."""
        async with self._lock:
            return self._connection_tokens.pop(token, None)

    async def discard_connection_token(self, token: ConnectionTokenValue) -> None:
        async with self._lock:
            self._connection_tokens.pop(token, None)

    def _new_token(self) -> AuthToken:
        while True:
            token = AuthToken(secrets.token_urlsafe(32))
            if token not in self._sessions:
                return token

    async def _remove(self, token: AuthToken) -> None:
        # Caller holds the lock
        if self._backend is not None:
            await self._backend.delete(token)
        del self._sessions[token]

    async def _sweep_loop(self) -> None:
        interval = self.core.config.sweep_interval_seconds
        while True:
            await asyncio.sleep(interval)
            try:
                await self.sweep_expired()
            except Exception:
                logger.exception("expiry_sweep_failed")
