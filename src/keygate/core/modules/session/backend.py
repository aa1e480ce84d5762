"""Durable session storage behind the in-memory session store."""

from datetime import datetime
from typing import Any, Protocol
from urllib.parse import urlparse

import structlog
from pymongo import AsyncMongoClient

from keygate.core.modules.session.models import AuthToken, Session

logger = structlog.get_logger(__name__)


class SessionBackend(Protocol):
    """Write-through persistence for sessions.

    Every method must have completed durably when it returns; failures
    propagate to the caller.
    """

    async def start(self) -> None: ...

    async def close(self) -> None: ...

    async def load_active(self, at: datetime) -> list[Session]: ...

    async def save(self, session: Session) -> None: ...

    async def delete(self, token: AuthToken) -> None: ...

    async def delete_expired(self, at: datetime) -> int: ...


class MongoSessionBackend:
    """Sessions collection in MongoDB."""

    def __init__(self, database_url: str) -> None:
        self._client: AsyncMongoClient[dict[str, Any]] = AsyncMongoClient(
            database_url, tz_aware=True, w="majority", journal=True
        )
        self._collection = self._client.get_database(urlparse(database_url).path[1:]).get_collection("sessions")

    async def start(self) -> None:
        """Create indexes on startup."""
        # TTL index lets MongoDB reap sessions the process never swept
        await self._collection.create_index([("expires_at", 1)], expireAfterSeconds=0)

    async def close(self) -> None:
        await self._client.aclose()

    async def load_active(self, at: datetime) -> list[Session]:
        cursor = self._collection.find({"expires_at": {"$gt": at}})
        sessions = [Session.from_mongo(document) async for document in cursor]
        logger.debug("sessions_loaded", count=len(sessions))
        return sessions

    async def save(self, session: Session) -> None:
        await self._collection.insert_one(session.to_mongo())

    async def delete(self, token: AuthToken) -> None:
        await self._collection.delete_one({"_id": token})

    async def delete_expired(self, at: datetime) -> int:
        result = await self._collection.delete_many({"expires_at": {"$lte": at}})
        return result.deleted_count
