"""Protocol for a server-side live connection."""

from typing import Any, Protocol

from coach_realtime.domain.models.connection_state import ConnectionState


class LiveConnectionProtocol(Protocol):
    """A connection that accepts pushed messages without blocking the caller."""

    connection_id: str
    user_id: str | None
    authenticated_user_id: str | None
    state: ConnectionState

    def push(self, message: dict[str, Any]) -> bool:
        """Queue a message for delivery.

        Returns:
            True if the message was queued, False if the connection is closed
            or cannot accept more messages.
        """
        ...
