"""Broadcasters for web adapter."""

from coach_realtime.adapters.web.broadcasters.change_broadcaster import ChangeBroadcaster

__all__ = ["ChangeBroadcaster"]
