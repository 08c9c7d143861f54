"""Merges pushed change events into a list seeded by a REST fetch."""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from typing import Any, Generic, TypeVar

from pydantic import ValidationError

from coach_realtime.domain.models import ChangeEvent, ChangeKind, EntityType, SharedEntity

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=SharedEntity)


def _by_creation(entity: SharedEntity) -> Any:
    return entity.created_at


class ReconciliationStore(Generic[EntityT]):
    """Client-side list of one entity type, kept in sync with pushes.

    Entities are keyed by ``id``: a created or updated event upserts, a
    deleted event removes, and applying the same event twice changes nothing.
    Events that arrive before the list is seeded, or while a refresh is in
    flight, are buffered and replayed onto the fetched snapshot, so the fetch
    and the pushes may arrive in either order.
    """

    def __init__(
        self,
        entity_type: EntityType,
        model: type[EntityT],
        sort_key: Callable[[EntityT], Any] | None = None,
        predicate: Callable[[EntityT], bool] | None = None,
    ) -> None:
        """Initialize an unseeded store.

        Args:
            entity_type: The only entity type this store accepts.
            model: Model used to parse event payloads.
            sort_key: Order of ``items``; defaults to creation time.
            predicate: Optional filter, e.g. messages of one conversation.
        """
        self.entity_type = entity_type
        self._model = model
        self._sort_key = sort_key or _by_creation
        self._predicate = predicate
        self._items: dict[str, EntityT] = {}
        self._pending: list[ChangeEvent] = []
        self._tombstones: set[str] = set()
        self._seeded = False
        self._refreshes = 0

    @property
    def is_seeded(self) -> bool:
        return self._seeded

    @property
    def is_buffering(self) -> bool:
        return not self._seeded or self._refreshes > 0

    @property
    def items(self) -> list[EntityT]:
        return sorted(self._items.values(), key=self._sort_key)

    def get(self, entity_id: str) -> EntityT | None:
        return self._items.get(entity_id)

    def __len__(self) -> int:
        return len(self._items)

    def begin_refresh(self) -> None:
        """Start buffering events until the matching ``seed`` or ``abort_refresh``."""
        self._refreshes += 1

    def seed(self, entities: Iterable[EntityT]) -> None:
        """Replace the list with a fetched snapshot.

        Entities deleted locally are left out, then events buffered since the
        refresh began are replayed in arrival order.
        """
        self._items = {
            entity.id: entity
            for entity in entities
            if entity.id not in self._tombstones and self._accepts(entity)
        }
        self._seeded = True
        self._refreshes = max(0, self._refreshes - 1)
        if self._refreshes == 0:
            self._replay_pending()

    def abort_refresh(self) -> None:
        """End a failed refresh, replaying buffered events onto the current list."""
        self._refreshes = max(0, self._refreshes - 1)
        if self._refreshes == 0:
            self._seeded = True
            self._replay_pending()

    def reset(self) -> None:
        """Forget everything, e.g. when the identity changes."""
        self._items.clear()
        self._pending.clear()
        self._tombstones.clear()
        self._seeded = False
        self._refreshes = 0

    def apply(self, event: ChangeEvent) -> bool:
        """Apply a pushed event.

        Returns:
            True if the visible list changed.
        """
        if event.entity_type != self.entity_type:
            return False
        if self.is_buffering:
            self._pending.append(event)
            return False
        return self._merge(event)

    def _replay_pending(self) -> None:
        pending, self._pending = self._pending, []
        for event in pending:
            self._merge(event)

    def _accepts(self, entity: EntityT) -> bool:
        return self._predicate is None or self._predicate(entity)

    def _merge(self, event: ChangeEvent) -> bool:
        entity_id = event.entity_id
        if event.kind is ChangeKind.DELETED:
            self._tombstones.add(entity_id)
            return self._items.pop(entity_id, None) is not None

        if entity_id in self._tombstones:
            # Ids are never reused, so a deletion always wins.
            return False

        try:
            entity = self._model.model_validate(event.payload)
        except ValidationError as e:
            logger.warning(f"Dropping {event.kind} {event.entity_type} {entity_id}: {e}")
            return False

        if not self._accepts(entity):
            # It may have stopped matching the filter.
            return self._items.pop(entity_id, None) is not None

        current = self._items.get(entity_id)
        if current is not None:
            if entity.updated_at < current.updated_at:
                logger.debug(f"Ignoring stale {event.kind} of {event.entity_type} {entity_id}")
                return False
            if entity == current:
                return False

        self._items[entity_id] = entity
        return True
