"""Configuration for the realtime client library."""

from typing import Any

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientConfig(BaseSettings):
    """Client configuration, read from ``COACH_CLIENT_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="COACH_CLIENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    server_url: str = Field(
        default="http://localhost:8000", description="Base URL of the coach realtime server"
    )
    ws_path: str = Field(default="/ws", description="Path of the websocket endpoint")
    request_timeout_seconds: float = Field(default=10.0, description="REST request timeout")
    heartbeat_seconds: float = Field(
        default=20.0, description="Interval of websocket ping frames sent by the client"
    )
    reconnect_initial_delay: float = Field(
        default=0.5, description="Delay before the first reconnect attempt in seconds"
    )
    reconnect_max_delay: float = Field(
        default=30.0, description="Upper bound for the reconnect delay in seconds"
    )
    reconnect_multiplier: float = Field(
        default=2.0, description="Factor applied to the delay after each failed attempt"
    )

    @field_validator("server_url")
    @classmethod
    def validate_server_url(cls, v: str) -> str:
        """Validate the server URL is http(s) and strip a trailing slash."""
        if not v.startswith(("http://", "https://")):
            raise ValueError("server_url must start with http:// or https://")
        return v.rstrip("/")

    @model_validator(mode="after")
    def validate_backoff(self) -> "ClientConfig":
        """Validate the reconnect backoff settings are consistent."""
        if self.reconnect_initial_delay < 0 or self.reconnect_max_delay < 0:
            raise ValueError("reconnect delays cannot be negative")
        if self.reconnect_initial_delay > self.reconnect_max_delay:
            raise ValueError("reconnect_initial_delay cannot exceed reconnect_max_delay")
        if self.reconnect_multiplier < 1:
            raise ValueError("reconnect_multiplier must be at least 1")
        return self

    @property
    def ws_url(self) -> str:
        """Websocket URL derived from the server URL."""
        scheme, rest = self.server_url.split("://", 1)
        ws_scheme = "wss" if scheme == "https" else "ws"
        return f"{ws_scheme}://{rest}{self.ws_path}"

    @classmethod
    def for_testing(cls, **overrides: Any) -> "ClientConfig":
        """Build a config that ignores any local .env file."""
        return cls(_env_file=None, **overrides)
