"""Index of open live connections by connection id."""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from coach_realtime.adapters.web.connections.live_connection import LiveConnection


class ConnectionDirectory:
    """Maps connection ids to the open connection objects on this process."""

    def __init__(self) -> None:
        self._connections: dict[str, LiveConnection] = {}

    def add(self, connection: LiveConnection) -> None:
        self._connections[connection.connection_id] = connection

    def get(self, connection_id: str) -> LiveConnection | None:
        return self._connections.get(connection_id)

    def remove(self, connection_id: str) -> LiveConnection | None:
        return self._connections.pop(connection_id, None)

    def all(self) -> list[LiveConnection]:
        return list(self._connections.values())

    def __len__(self) -> int:
        return len(self._connections)
