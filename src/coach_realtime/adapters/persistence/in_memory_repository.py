"""In-memory entity repository."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Generic, TypeVar

from coach_realtime.domain.models import SharedEntity

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=SharedEntity)


class InMemoryEntityRepository(Generic[EntityT]):
    """Stores one collection of entities in a dict keyed by id.

    Each write completes before the coroutine returns, so a returned entity is
    committed from the caller's point of view.
    """

    def __init__(self, name: str) -> None:
        """Initialize an empty repository.

        Args:
            name: Collection name, used in log messages.
        """
        self.name = name
        self._entities: dict[str, EntityT] = {}

    async def list_for_user(self, user_id: str) -> list[EntityT]:
        owned = [entity for entity in self._entities.values() if entity.is_stakeholder(user_id)]
        return sorted(owned, key=lambda entity: entity.created_at)

    async def find(self, predicate: Callable[[EntityT], bool]) -> list[EntityT]:
        return [entity for entity in self._entities.values() if predicate(entity)]

    async def get(self, entity_id: str) -> EntityT | None:
        return self._entities.get(entity_id)

    async def save(self, entity: EntityT) -> EntityT:
        self._entities[entity.id] = entity
        logger.debug(f"Saved {self.name} {entity.id}")
        return entity

    async def delete(self, entity_id: str) -> EntityT | None:
        removed = self._entities.pop(entity_id, None)
        if removed is not None:
            logger.debug(f"Deleted {self.name} {entity_id}")
        return removed

    def __len__(self) -> int:
        return len(self._entities)
