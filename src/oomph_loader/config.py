"""Configuration management for the Oomph loader."""

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from oomph_loader.constants import (
    DEFAULT_ASSET_ENDPOINT,
    DEFAULT_CACHE_DIR,
    DEFAULT_CLIENT_CERT,
    DEFAULT_CLIENT_KEY,
    MAX_POOLED_BUFFER_BYTES,
    REQUEST_TIMEOUT_SECONDS,
    SHUTDOWN_GRACE_SECONDS,
)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Asset service
    asset_endpoint: str = Field(
        default=DEFAULT_ASSET_ENDPOINT, description="URL the asset request is POSTed to"
    )
    client_cert_path: str = Field(
        default=DEFAULT_CLIENT_CERT, description="PEM client certificate for mutual TLS"
    )
    client_key_path: str = Field(
        default=DEFAULT_CLIENT_KEY, description="PEM private key for the client certificate"
    )
    request_timeout_seconds: float = Field(
        default=REQUEST_TIMEOUT_SECONDS, gt=0, description="Overall HTTP request timeout"
    )
    max_pooled_buffer_bytes: int = Field(
        default=MAX_POOLED_BUFFER_BYTES,
        gt=0,
        description="Request buffers above this size are not returned to the pool",
    )
    asset_compression: Literal["auto", "zlib", "none"] = Field(
        default="auto",
        description="Payload compression when the response does not declare one",
    )

    # Cache
    cache_dir: str = Field(default=DEFAULT_CACHE_DIR, description="Local binary cache directory")

    # Supervision
    shutdown_grace_seconds: float = Field(
        default=SHUTDOWN_GRACE_SECONDS,
        gt=0,
        description="Time the proxy gets to exit after an interrupt before it is killed",
    )

    # Application
    environment: str = Field(default="production", description="Environment name")
    log_level: str = Field(default="INFO", description="Logging level")

    @property
    def is_development(self) -> bool:
        """Check if running in development mode."""
        return self.environment.lower() == "development"


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
