"""Ports (interfaces) for the ports-and-adapters architecture."""

from coach_realtime.domain.ports.entity_repository import EntityRepository
from coach_realtime.domain.ports.messaging_service import MessagingService
from coach_realtime.domain.ports.shared_entity_service import SharedEntityService

__all__ = [
    "EntityRepository",
    "MessagingService",
    "SharedEntityService",
]
