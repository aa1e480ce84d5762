"""Session and connection token models."""

from datetime import datetime, timedelta
from typing import Any, NewType, Self

from pydantic import BaseModel

AuthToken = NewType("AuthToken", str)
ConnectionTokenValue = NewType("ConnectionTokenValue", str)

SESSION_TTL = timedelta(days=30)
CONNECTION_TOKEN_TTL = timedelta(minutes=5)


class Session(BaseModel):
    """Logged-in client session.

    Stored in MongoDB with the token as _id when persistence is enabled;
    indexed on expires_at (TTL).
    """

    token: AuthToken
    created_at: datetime
    expires_at: datetime

    def is_expired(self, at: datetime) -> bool:
        return at >= self.expires_at

    def to_mongo(self) -> dict[str, Any]:
        data = self.model_dump()
        data["_id"] = data.pop("token")
        return data

    @classmethod
    def from_mongo(cls, document: dict[str, Any]) -> Self:
        return cls(token=document["_id"], created_at=document["created_at"], expires_at=document["expires_at"])


class ConnectionToken(BaseModel):
    """Short-lived credential for handshakes that cannot carry cookies or headers.

    issued_for names the parent session for lookup only; None when the
    token was issued to an API key caller.
    """

    token: ConnectionTokenValue
    issued_for: AuthToken | None
    issued_at: datetime
    expires_at: datetime

    def is_expired(self, at: datetime) -> bool:
        return at >= self.expires_at

    @property
    def expires_in(self) -> int:
        return int((self.expires_at - self.issued_at).total_seconds())
