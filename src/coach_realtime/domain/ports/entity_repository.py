"""Entity repository port."""

from collections.abc import Callable
from typing import Protocol, TypeVar

from coach_realtime.domain.models.shared_entity import SharedEntity

EntityT = TypeVar("EntityT", bound=SharedEntity)


class EntityRepository(Protocol[EntityT]):
    """Port for storing one collection of shared entities.

    ``save`` and ``delete`` return only once the write is committed.
    """

    async def list_for_user(self, user_id: str) -> list[EntityT]:
        """List entities the user is a stakeholder of."""
        ...

    async def find(self, predicate: Callable[[EntityT], bool]) -> list[EntityT]:
        """List entities matching the predicate."""
        ...

    async def get(self, entity_id: str) -> EntityT | None:
        """Get an entity by id."""
        ...

    async def save(self, entity: EntityT) -> EntityT:
        """Insert or replace an entity."""
        ...

    async def delete(self, entity_id: str) -> EntityT | None:
        """Delete an entity, returning it if it existed."""
        ...
