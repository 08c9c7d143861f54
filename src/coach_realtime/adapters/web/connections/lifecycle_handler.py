"""Keeps the presence registry consistent with the live connections."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from coach_realtime.domain.models import ConnectionState, RegistrationResult, WireMessageType

if TYPE_CHECKING:
    from coach_realtime.adapters.web.connections.connection_directory import (
        ConnectionDirectory,
    )
    from coach_realtime.adapters.web.connections.live_connection import LiveConnection
    from coach_realtime.domain.contracts import PresenceRegistryProtocol

logger = logging.getLogger(__name__)


class ConnectionLifecycleHandler:
    """Drives each connection through OPEN -> REGISTERED -> CLOSED.

    Together with the admin reset this is the only writer of the presence
    registry.
    """

    def __init__(
        self,
        registry: PresenceRegistryProtocol,
        directory: ConnectionDirectory,
        notify_superseded: bool = False,
    ) -> None:
        """Initialize the handler.

        Args:
            registry: The user-to-connection routing table.
            directory: Index of open connections.
            notify_superseded: Send a ``superseded`` notice to a connection
                whose slot was taken by a newer registration.
        """
        self._registry = registry
        self._directory = directory
        self._notify_superseded = notify_superseded

    def on_open(self, connection: LiveConnection) -> None:
        connection.state = ConnectionState.OPEN
        self._directory.add(connection)
        logger.info(
            f"Connection {connection.connection_id} opened from {connection.info.ip} "
            f"({len(self._directory)} open)"
        )

    def on_register(
        self, connection: LiveConnection, message: dict[str, Any]
    ) -> RegistrationResult:
        """Handle a ``register_user`` message.

        Rejections leave the connection state unchanged, so the client may
        retry on the same connection.

        Args:
            connection: The connection the message arrived on.
            message: The decoded message, expected to carry ``userId``.

        Returns:
            RegistrationResult describing the outcome.
        """
        connection_id = connection.connection_id
        user_id = message.get("userId")

        if connection.state is ConnectionState.CLOSED:
            return self._reject(connection, "connection is closed")
        if not isinstance(user_id, str) or not user_id.strip():
            return self._reject(connection, "userId is required")
        if (
            connection.authenticated_user_id is not None
            and user_id != connection.authenticated_user_id
        ):
            return self._reject(
                connection, "userId does not match the authenticated user", user_id
            )
        if connection.user_id is not None and connection.user_id != user_id:
            return self._reject(
                connection, "connection is already registered as another user", user_id
            )

        result = self._registry.register(user_id, connection_id)
        if not result.accepted:
            return result

        connection.user_id = user_id
        connection.state = ConnectionState.REGISTERED

        if result.superseded_connection_id and self._notify_superseded:
            self._send_superseded_notice(result.superseded_connection_id, connection_id)
        return result

    def on_close(self, connection: LiveConnection) -> list[str]:
        """Handle a closed connection. Safe to call more than once.

        Returns:
            User IDs whose presence record was removed.
        """
        already_closed = connection.state is ConnectionState.CLOSED
        connection.state = ConnectionState.CLOSED
        self._directory.remove(connection.connection_id)
        released = self._registry.remove_by_connection(connection.connection_id)
        if not already_closed:
            logger.info(
                f"Connection {connection.connection_id} closed (user {connection.user_id}, "
                f"{len(self._directory)} open)"
            )
        return released

    def _reject(
        self, connection: LiveConnection, reason: str, user_id: str | None = None
    ) -> RegistrationResult:
        logger.warning(f"Rejected registration on {connection.connection_id}: {reason}")
        return RegistrationResult.rejected(
            reason, user_id=user_id, connection_id=connection.connection_id
        )

    def _send_superseded_notice(self, loser_id: str, winner_id: str) -> None:
        loser = self._directory.get(loser_id)
        if loser is None:
            return
        loser.push({"type": WireMessageType.SUPERSEDED.value, "connectionId": winner_id})
