"""Configuration adapters."""

from coach_realtime.adapters.config.app_config import AppConfig
from coach_realtime.adapters.config.client_config import ClientConfig

__all__ = ["AppConfig", "ClientConfig"]
