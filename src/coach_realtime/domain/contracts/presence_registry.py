"""Presence registry contract (protocol)."""

from typing import Protocol

from coach_realtime.domain.models.presence_record import RegistrationResult


class PresenceRegistryProtocol(Protocol):
    """Protocol for the user-to-connection routing table."""

    def register(self, user_id: str, connection_id: str) -> RegistrationResult:
        """Point the user's slot at the connection, replacing any previous record.

        Args:
            user_id: The authenticated user identity.
            connection_id: The live connection now holding the slot.

        Returns:
            RegistrationResult, rejected when either identifier is malformed.
        """
        ...

    def resolve(self, user_id: str) -> str | None:
        """Return the connection currently holding the user's slot, if any."""
        ...

    def remove_by_connection(self, connection_id: str) -> list[str]:
        """Remove every record held by the connection.

        Args:
            connection_id: The connection that closed.

        Returns:
            User IDs whose record was removed (empty when none matched).
        """
        ...
