"""Configuration management with Pydantic Settings."""

from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Proxy settings with environment variable support.

    Built once at startup (usually by the CLI) and handed to the server,
    which passes it on to every component that needs it.
    """

    model_config = SettingsConfigDict(
        env_prefix="FIXTURE_PROXY_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Listener
    host: str = Field(default="127.0.0.1", description="Address the proxy listens on")
    port: int = Field(default=1234, ge=1, le=65535, description="Port the proxy listens on")

    # Upstream
    upstream_host: str = Field(default="127.0.0.1", description="Backend host to forward to")
    proxy_port: int = Field(default=7001, ge=1, le=65535, description="Backend port to forward to")

    # Caching
    skip_cache: bool = Field(
        default=False,
        description="Always forward requests, overwriting any existing cache",
    )
    cache_dir: Path = Field(default=Path("cache"), description="Directory for cached responses")
    cached_headers: list[str] = Field(
        default_factory=lambda: ["session"],
        description="Request headers whose values are part of the cache key",
    )
    graphql_path: str = Field(
        default="/graphql",
        description="Path prefix whose requests are keyed by GraphQL operationName",
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO", description="Log level"
    )

    @field_validator("cached_headers")
    @classmethod
    def _lowercase_headers(cls, value: list[str]) -> list[str]:
        # Header names compare case-insensitively.
        return sorted({name.strip().lower() for name in value if name.strip()})

    @field_validator("log_level", mode="before")
    @classmethod
    def _upper_log_level(cls, value: str) -> str:
        return value.upper() if isinstance(value, str) else value

    @property
    def upstream_url(self) -> str:
        """Base URL of the proxied backend."""
        return f"http://{self.upstream_host}:{self.proxy_port}"

    @property
    def listen_url(self) -> str:
        return f"http://{self.host}:{self.port}"
