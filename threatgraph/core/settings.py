"""Application settings and configuration."""

from functools import lru_cache
from typing import ClassVar

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_name: str = Field(default="ThreatGraph API", description="Application name")
    app_version: str = Field(default="0.1.0", description="Application version")
    debug: bool = Field(default=False, description="Debug mode")
    host: str = Field(default="0.0.0.0", description="Host to bind to")
    port: int = Field(default=8000, description="Port to bind to")
    log_level: str = Field(default="INFO", description="Root log level")

    # CORS
    allowed_origins: list[str] = Field(
        default=[
            "http://localhost:3000",
            "http://localhost:4000",
        ],
        description="Allowed CORS origins",
    )

    # Security
    secret_key: str = Field(
        default="your-secret-key-change-in-production",
        description="Secret key for JWT tokens",
    )
    algorithm: str = Field(default="HS256", description="JWT algorithm")

    # PostgreSQL / AGE
    postgres_user: str = Field(default="admin", description="PostgreSQL user")
    postgres_password: str = Field(
        default="supersecretpassword", description="PostgreSQL password"
    )
    postgres_host: str = Field(default="localhost", description="PostgreSQL host")
    postgres_port: int = Field(default=5432, description="PostgreSQL port")
    postgres_db: str = Field(
        default="threatgraph", description="PostgreSQL database name"
    )
    age_graph_name: str = Field(default="stix", description="AGE graph name")
    pool_min_size: int = Field(default=5, description="Minimum pool connections")
    pool_max_size: int = Field(default=20, description="Maximum pool connections")

    # Write transactions
    tx_acquire_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds to wait for a write transaction connection",
    )
    tx_commit_timeout: float = Field(
        default=10.0, gt=0, description="Seconds to wait for a commit"
    )
    refetch_attempts: int = Field(
        default=3,
        ge=1,
        description="Reads attempted for a freshly committed entity",
    )
    refetch_delay: float = Field(
        default=0.1, ge=0, description="Seconds between re-fetch attempts"
    )

    # Event bus
    event_queue_size: int = Field(
        default=1000, ge=1, description="Per-subscriber notification queue size"
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached application settings."""
    return Settings()
