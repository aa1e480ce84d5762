"""API key validation against the single configured secret."""

import hashlib
import hmac
from pathlib import Path

import structlog

from keygate.config import Config

logger = structlog.get_logger(__name__)


def _digest(value: str) -> bytes:
    return hashlib.sha256(value.encode("utf-8")).digest()


class KeyValidator:
    """Validates a presented API key against the configured secret.

    The secret is bound once at construction and never changes afterwards.
    Both sides are reduced to fixed-size SHA-256 digests before a constant-time
    comparison, so neither the mismatch position nor a length difference
    shortens the check. Without a secret every key is rejected.
    """

    def __init__(self, secret: str | None) -> None:
        self._secret_digest = _digest(secret) if secret else None
        # Compared against when no secret is set, so rejection costs the same
        self._placeholder_digest = _digest("")

    @classmethod
    def from_config(cls, config: Config) -> "KeyValidator":
        """Load the secret from the environment value or the key file."""
        if config.api_key is not None and config.api_key.get_secret_value():
            logger.info("api_key_loaded", source="environment")
            return cls(config.api_key.get_secret_value())

        if config.api_key_file is not None:
            secret = _read_key_file(config.api_key_file)
            if secret:
                logger.info("api_key_loaded", source="file", path=str(config.api_key_file))
                return cls(secret)

        logger.warning("api_key_not_configured")
        return cls(None)

    @property
    def is_configured(self) -> bool:
        return self._secret_digest is not None

    def validate(self, presented: str | None) -> bool:
        """Return True only if the presented key equals the configured secret."""
        candidate = _digest(presented or "")
        if self._secret_digest is None:
            hmac.compare_digest(candidate, self._placeholder_digest)
            return False
        return hmac.compare_digest(candidate, self._secret_digest)


def _read_key_file(path: Path) -> str | None:
    try:
        content = path.read_text(encoding="utf-8")
    except FileNotFoundError:
        logger.warning("api_key_file_not_found", path=str(path))
        return None
    except OSError as e:
        logger.error("api_key_file_unreadable", path=str(path), error=str(e))
        return None

    for line in content.splitlines():
        if line.strip():
            return line.strip()
    logger.warning("api_key_file_empty", path=str(path))
    return None
