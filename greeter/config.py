"""Application configuration using Pydantic Settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from ``GREETER_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GREETER_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # HTTP (demo page, health, POST /hello)
    http_host: str = Field(default="127.0.0.1")
    http_port: int = Field(default=8080)

    # WebSocket endpoint
    ws_host: str = Field(default="127.0.0.1")
    ws_port: int = Field(default=8765)
    ws_path: str = Field(default="/gs-guide-websocket")

    # Destination prefixes
    application_prefix: str = Field(default="/app")
    broker_prefix: str = Field(default="/topic")

    # Artificial latency before each greeting, in seconds
    greeting_delay: float = Field(default=0.0, ge=0.0)

    log_level: str = Field(default="INFO")
    json_logs: bool = Field(default=False)
    debug: bool = Field(default=False)

    @property
    def ws_url(self) -> str:
        return f"ws://{self.ws_host}:{self.ws_port}{self.ws_path}"


@lru_cache
def get_settings() -> Settings:
    """Return the process-wide settings instance."""
    return Settings()
