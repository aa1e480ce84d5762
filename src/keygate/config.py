from pathlib import Path

from pydantic import SecretStr
from pydantic_settings import BaseSettings


class Config(BaseSettings):
    """Application configuration loaded from environment variables."""

    host: str = "127.0.0.1"
    port: int = 3008
    debug: bool = False
    production: bool = False  # Marks the session cookie Secure (HTTPS deployments)
    api_key: SecretStr | None = None  # The shared secret; takes precedence over api_key_file
    api_key_file: Path | None = None  # File whose first non-empty line is the shared secret
    database_url: str | None = None  # MongoDB URL for durable sessions; memory-only when unset
    session_cookie_name: str = "keygate_session"
    cors_origins: list[str] = []
    sweep_interval_seconds: float = 60.0  # Period of the expired session/token sweep
    connection_token_single_use: bool = False  # Discard connection tokens on first successful redeem

    model_config = {
        "env_file": [".env"],
        "env_prefix": "KEYGATE_",
        "extra": "ignore",
    }
