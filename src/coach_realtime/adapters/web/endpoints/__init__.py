"""HTTP and websocket endpoints."""

from coach_realtime.adapters.web.endpoints.admin_routes import admin_routes
from coach_realtime.adapters.web.endpoints.api_routes import (
    EXCEPTION_HANDLERS,
    entity_routes,
    messaging_routes,
)
from coach_realtime.adapters.web.endpoints.realtime_endpoint import RealtimeEndpoint

__all__ = [
    "EXCEPTION_HANDLERS",
    "RealtimeEndpoint",
    "admin_routes",
    "entity_routes",
    "messaging_routes",
]
