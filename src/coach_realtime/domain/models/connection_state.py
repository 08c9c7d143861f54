"""Connection state machines."""

from enum import StrEnum


class ConnectionState(StrEnum):
    """Server-side state of one live connection.

    ``OPEN -> REGISTERED -> CLOSED``; there is no way back from ``REGISTERED``
    to ``OPEN``. A client that needs another identity opens a new connection.
    """

    OPEN = "open"
    REGISTERED = "registered"
    CLOSED = "closed"


class ClientConnectionState(StrEnum):
    """Client-side state of the connection manager."""

    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    CONNECTED_REGISTERED = "connected_registered"
