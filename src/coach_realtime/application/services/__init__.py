"""Application services."""

from coach_realtime.application.services.messaging_service import ConversationService
from coach_realtime.application.services.shared_entity_service import (
    FieldDefaults,
    SharedEntityCrudService,
)

__all__ = ["ConversationService", "FieldDefaults", "SharedEntityCrudService"]
