"""
Runtime configuration helpers for the reader client.

Loads the API location, socket options and cache tuning from the environment,
with defaults read from the .env file located in the project root.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve the project root
BASE_DIR = Path(__file__).resolve().parents[1]

# Absolute path to .env
ENV_PATH = BASE_DIR / ".env"

# Load .env defaults without overriding environment variables provided by the platform
load_dotenv(dotenv_path=ENV_PATH, override=False)


class Settings(BaseSettings):
    api_base_url: str = Field(default="http://localhost:5001", alias="READER_API_BASE_URL")
    socket_url: str | None = Field(default=None, alias="READER_SOCKET_URL")
    socket_path: str = Field(default="socket.io", alias="READER_SOCKET_PATH")

    # Token persistence (the browser client kept this in localStorage)
    auth_token: str | None = Field(default=None, alias="READER_AUTH_TOKEN")
    token_path: Path = Field(default=BASE_DIR / "auth_token.json", alias="READER_TOKEN_PATH")

    request_timeout: float | None = Field(default=30.0, alias="READER_REQUEST_TIMEOUT")
    cache_stale_after: float = Field(default=30.0, alias="READER_CACHE_STALE_AFTER")
    last_actions_limit: int = Field(default=50, alias="READER_LAST_ACTIONS_LIMIT")
    typing_indicator_timeout: float = Field(default=3.0, alias="READER_TYPING_TIMEOUT")

    # Socket.IO reconnection policy
    reconnection_attempts: int = Field(default=5, alias="READER_RECONNECTION_ATTEMPTS")
    reconnection_delay: float = Field(default=1.0, alias="READER_RECONNECTION_DELAY")
    reconnection_delay_max: float = Field(default=5.0, alias="READER_RECONNECTION_DELAY_MAX")

    model_config = SettingsConfigDict(
        env_file=str(ENV_PATH),
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    @property
    def resolved_socket_url(self) -> str:
        return (self.socket_url or self.api_base_url).rstrip("/")


@lru_cache()
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
