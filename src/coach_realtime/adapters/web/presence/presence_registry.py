"""Routing table from authenticated users to their live connection."""

import logging

from coach_realtime.domain.contracts.presence_registry import PresenceRegistryProtocol
from coach_realtime.domain.models import PresenceRecord, RegistrationResult

logger = logging.getLogger(__name__)


def _is_identifier(value: object) -> bool:
    return isinstance(value, str) and bool(value.strip())


class PresenceRegistry(PresenceRegistryProtocol):
    """Tracks which live connection currently holds each user's slot.

    A user has at most one record; the latest registration wins. The table is
    only touched from the event loop, so it needs no locking.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._connections_by_user: dict[str, str] = {}

    def register(self, user_id: str, connection_id: str) -> RegistrationResult:
        """Point the user's slot at the connection.

        Args:
            user_id: The authenticated user identity.
            connection_id: The connection registering the identity.

        Returns:
            RegistrationResult. ``superseded_connection_id`` is set when another
            connection held the slot before this call.
        """
        if not _is_identifier(user_id):
            logger.warning(f"Rejected registration with invalid user id {user_id!r}")
            return RegistrationResult.rejected("userId must be a non-empty string")
        if not _is_identifier(connection_id):
            logger.warning(f"Rejected registration of {user_id} with invalid connection id")
            return RegistrationResult.rejected(
                "connectionId must be a non-empty string", user_id=user_id
            )

        previous = self._connections_by_user.get(user_id)
        self._connections_by_user[user_id] = connection_id
        superseded = previous if previous is not None and previous != connection_id else None

        if superseded:
            logger.info(
                f"Presence: user {user_id} moved from connection {superseded} to {connection_id}"
            )
        elif previous is None:
            logger.info(
                f"Presence: user {user_id} registered on connection {connection_id}. "
                f"Total users: {len(self._connections_by_user)}"
            )

        return RegistrationResult(
            accepted=True,
            user_id=user_id,
            connection_id=connection_id,
            superseded_connection_id=superseded,
        )

    def resolve(self, user_id: str) -> str | None:
        return self._connections_by_user.get(user_id)

    def remove_by_connection(self, connection_id: str) -> list[str]:
        """Remove the records held by a closing connection.

        A connection that already lost its slot to a newer one matches nothing,
        so the newer record survives.

        Returns:
            The user IDs whose record was removed.
        """
        removed = [
            user_id
            for user_id, held_by in self._connections_by_user.items()
            if held_by == connection_id
        ]
        for user_id in removed:
            del self._connections_by_user[user_id]

        if removed:
            logger.info(
                f"Presence: connection {connection_id} released {', '.join(removed)}. "
                f"Total users: {len(self._connections_by_user)}"
            )
        return removed

    def get_total_count(self) -> int:
        """Get the number of users with a live connection."""
        return len(self._connections_by_user)

    def records(self) -> list[PresenceRecord]:
        """Snapshot of the current records, sorted by user id."""
        return [
            PresenceRecord(user_id=user_id, connection_id=connection_id)
            for user_id, connection_id in sorted(self._connections_by_user.items())
        ]

    def clear(self) -> int:
        """Drop every record.

        Returns:
            Number of records removed.
        """
        count = len(self._connections_by_user)
        self._connections_by_user.clear()
        return count


# Global presence registry instance
_presence_registry = PresenceRegistry()


def get_presence_registry() -> PresenceRegistry:
    """Get the global presence registry instance.

    Returns:
        The global presence registry.
    """
    return _presence_registry
