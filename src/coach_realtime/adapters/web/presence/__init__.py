"""Presence tracking for live connections."""

from coach_realtime.adapters.web.presence.presence_registry import (
    PresenceRegistry,
    get_presence_registry,
)

__all__ = ["PresenceRegistry", "get_presence_registry"]
