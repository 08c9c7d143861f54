"""Adapters layer - web server, client library, auth, config and storage."""

from coach_realtime.adapters.config import AppConfig, ClientConfig
from coach_realtime.adapters.persistence import InMemoryEntityRepository, SequenceCounter

__all__ = [
    "AppConfig",
    "ClientConfig",
    "InMemoryEntityRepository",
    "SequenceCounter",
]
