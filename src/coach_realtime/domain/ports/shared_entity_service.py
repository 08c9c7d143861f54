"""Shared entity service port."""

from typing import Any, Protocol, TypeVar

from coach_realtime.domain.models.change_event import EntityType
from coach_realtime.domain.models.shared_entity import SharedEntity

EntityT = TypeVar("EntityT", bound=SharedEntity, covariant=True)


class SharedEntityService(Protocol[EntityT]):
    """Port for CRUD on a collection whose writes are broadcast to stakeholders."""

    @property
    def entity_type(self) -> EntityType:
        """Collection handled by this service."""
        ...

    async def list_for_user(self, user_id: str) -> list[EntityT]:
        """List the entities the user is a stakeholder of."""
        ...

    async def get_for_user(self, entity_id: str, user_id: str) -> EntityT:
        """Get one entity, checking that the user is a stakeholder."""
        ...

    async def create(self, actor_id: str, data: dict[str, Any]) -> EntityT:
        """Validate and commit a new entity owned by the actor, then broadcast it."""
        ...

    async def update(self, entity_id: str, actor_id: str, changes: dict[str, Any]) -> EntityT:
        """Apply changes, commit, then broadcast the updated entity."""
        ...

    async def delete(self, entity_id: str, actor_id: str) -> EntityT:
        """Delete, then broadcast the deletion."""
        ...
