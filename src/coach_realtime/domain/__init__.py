"""Domain layer - entities, change events and the contracts around them."""

from coach_realtime.domain.models import (
    ChangeEvent,
    ChangeKind,
    Conversation,
    EntityType,
    Invoice,
    Message,
    Session,
    SharedEntity,
)
from coach_realtime.domain.ports import (
    EntityRepository,
    MessagingService,
    SharedEntityService,
)

__all__ = [
    "ChangeEvent",
    "ChangeKind",
    "Conversation",
    "EntityRepository",
    "EntityType",
    "Invoice",
    "Message",
    "MessagingService",
    "Session",
    "SharedEntity",
    "SharedEntityService",
]
