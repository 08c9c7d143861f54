"""12-factor configuration adapter using environment variables."""

from typing import Any

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


class AppConfig(BaseSettings):
    """Server configuration following 12-factor principles."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Host to bind the server to")
    port: int = Field(default=8000, description="Port to bind the server to")
    log_level: str = Field(default="INFO", description="Root log level")
    frontend_url: str = Field(
        default="http://localhost:5173",
        description="Origin allowed by CORS (the web frontend)",
    )

    # Authentication
    jwt_secret: str = Field(
        default="dev-secret-change-me",
        description="Secret used to sign and verify access tokens",
    )
    jwt_algorithm: str = Field(default="HS256", description="JWT signing algorithm")
    token_ttl_hours: int = Field(default=24, description="Lifetime of issued access tokens")

    # Live connections
    ws_path: str = Field(default="/ws", description="Path of the websocket endpoint")
    ws_require_token: bool = Field(
        default=True,
        description="Reject websocket connections without a valid bearer token",
    )
    outbox_max_size: int = Field(
        default=256,
        description="Maximum number of queued pushes per connection before dropping",
    )
    notify_superseded_connections: bool = Field(
        default=False,
        description="Tell a connection when a newer connection takes over its user's slot",
    )

    # Rate limiting configuration
    rate_limit_per_minute: int = Field(
        default=300,
        description="Maximum number of API requests per user or IP per minute, 0 disables",
    )

    # Admin endpoints are disabled unless a token is configured
    admin_command_token: str | None = Field(
        default=None,
        description="Shared secret expected in the X-Admin-Token header",
    )

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is a standard logging level name."""
        if v.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {', '.join(LOG_LEVELS)}")
        return v.upper()

    @field_validator("ws_path")
    @classmethod
    def validate_ws_path(cls, v: str) -> str:
        """Validate the websocket path is absolute."""
        if not v.startswith("/"):
            raise ValueError("ws_path must start with '/'")
        return v

    @field_validator("outbox_max_size", "token_ttl_hours")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Validate sizes and durations are positive."""
        if v <= 0:
            raise ValueError("value must be positive")
        return v

    @classmethod
    def for_testing(cls, **overrides: Any) -> "AppConfig":
        """Build a config that ignores any local .env file."""
        return cls(_env_file=None, **overrides)
