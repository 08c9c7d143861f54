"""Broadcaster for committed entity changes."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from coach_realtime.domain.contracts.mutation_broadcaster import MutationBroadcasterProtocol
from coach_realtime.domain.models import BroadcastResult, ChangeEvent

if TYPE_CHECKING:
    from coach_realtime.adapters.web.connections.connection_directory import (
        ConnectionDirectory,
    )
    from coach_realtime.domain.contracts import PresenceRegistryProtocol
    from coach_realtime.domain.models import ChangeKind, EntityType, SharedEntity

logger = logging.getLogger(__name__)


class ChangeBroadcaster(MutationBroadcasterProtocol):
    """Pushes change events to the connected stakeholders of an entity.

    Delivery is best effort: a stakeholder without a live connection is
    skipped and catches up on their next fetch.
    """

    def __init__(self, registry: PresenceRegistryProtocol, directory: ConnectionDirectory) -> None:
        self._registry = registry
        self._directory = directory

    def _push_to(self, user_id: str, event: ChangeEvent) -> bool:
        """Push the event to the user's live connection, if there is one."""
        connection_id = self._registry.resolve(user_id)
        if connection_id is None:
            logger.debug(f"No live connection for {user_id}, skipping {event.entity_type} push")
            return False

        connection = self._directory.get(connection_id)
        if connection is None:
            logger.debug(f"Connection {connection_id} of {user_id} is gone, skipping push")
            return False

        try:
            return connection.push(event.to_wire())
        except Exception as e:
            logger.error(f"Failed to push change to {user_id}: {e}", exc_info=True)
            return False

    def broadcast(
        self, entity_type: EntityType, entity: SharedEntity, kind: ChangeKind
    ) -> BroadcastResult:
        """Push a change event for an already committed write.

        Never raises; failures are logged and reported as missed users.
        """
        event = ChangeEvent.for_entity(kind, entity_type, entity)
        delivered: list[str] = []
        missed: list[str] = []
        for user_id in event.target_user_ids:
            (delivered if self._push_to(user_id, event) else missed).append(user_id)

        logger.debug(
            f"Broadcast {kind} {entity_type} {event.entity_id}: "
            f"delivered to {delivered}, missed {missed}"
        )
        return BroadcastResult(
            event=event, delivered_user_ids=tuple(delivered), missed_user_ids=tuple(missed)
        )
