"""Protocol for broadcasting committed mutations."""

from typing import Protocol

from coach_realtime.domain.models.change_event import BroadcastResult, ChangeKind, EntityType
from coach_realtime.domain.models.shared_entity import SharedEntity


class MutationBroadcasterProtocol(Protocol):
    """Protocol for pushing change events to an entity's connected stakeholders."""

    def broadcast(
        self, entity_type: EntityType, entity: SharedEntity, kind: ChangeKind
    ) -> BroadcastResult:
        """Push a change event for a write that has already been committed.

        Must not raise: stakeholders who are not connected are simply missed.

        Args:
            entity_type: Collection the entity belongs to.
            entity: The entity as committed (or as it was, for deletions).
            kind: What happened to it.

        Returns:
            BroadcastResult listing delivered and missed stakeholders.
        """
        ...
