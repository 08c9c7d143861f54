"""Live connections and their lifecycle."""

from coach_realtime.adapters.web.connections.connection_directory import ConnectionDirectory
from coach_realtime.adapters.web.connections.connection_info import (
    get_connection_info_from_scope,
)
from coach_realtime.adapters.web.connections.lifecycle_handler import (
    ConnectionLifecycleHandler,
)
from coach_realtime.adapters.web.connections.live_connection import LiveConnection

__all__ = [
    "ConnectionDirectory",
    "ConnectionLifecycleHandler",
    "LiveConnection",
    "get_connection_info_from_scope",
]
