"""CRUD service for entities whose committed writes are pushed to stakeholders."""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Any, Generic, TypeVar

from coach_realtime.domain.errors import NotFoundError, PermissionDeniedError
from coach_realtime.domain.models import (
    ChangeKind,
    EntityType,
    SharedEntity,
    new_entity_id,
    utc_now,
)

if TYPE_CHECKING:
    from coach_realtime.domain.contracts import MutationBroadcasterProtocol
    from coach_realtime.domain.ports import EntityRepository

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=SharedEntity)

# Extra fields computed at creation time, e.g. a document number.
FieldDefaults = Callable[[], Awaitable[dict[str, Any]]]

# Fields only the server sets.
SERVER_MANAGED_FIELDS = frozenset({"id", "createdAt", "updatedAt"})


def _camel_key(key: str) -> str:
    """Normalize a snake_case payload key to its camelCase alias."""
    if "_" not in key:
        return key
    head, *rest = key.split("_")
    return head + "".join(part.title() for part in rest)


def _client_fields(data: dict[str, Any]) -> dict[str, Any]:
    """Drop server-managed fields from a client payload, normalizing key style."""
    fields = {_camel_key(key): value for key, value in data.items()}
    return {key: value for key, value in fields.items() if key not in SERVER_MANAGED_FIELDS}


class SharedEntityCrudService(Generic[EntityT]):
    """Commits writes for one collection and broadcasts each one after commit.

    The broadcaster is only ever called with what the repository returned, so a
    failed commit never produces a change event.
    """

    def __init__(
        self,
        entity_type: EntityType,
        model: type[EntityT],
        repository: EntityRepository[EntityT],
        broadcaster: MutationBroadcasterProtocol,
        owner_field: str = "coachId",
        immutable_fields: frozenset[str] = frozenset({"coachId", "clientId"}),
        field_defaults: FieldDefaults | None = None,
    ) -> None:
        """Initialize the service.

        Args:
            entity_type: Collection handled by this service.
            model: Pydantic model used to validate payloads.
            repository: Storage for the collection.
            broadcaster: Broadcaster called after each committed write.
            owner_field: JSON field set to the acting user on creation.
            immutable_fields: JSON fields that cannot change after creation.
            field_defaults: Optional coroutine supplying extra fields on creation.
        """
        self._entity_type = entity_type
        self._model = model
        self._repository = repository
        self._broadcaster = broadcaster
        self._owner_field = owner_field
        self._immutable_fields = immutable_fields
        self._field_defaults = field_defaults

    @property
    def entity_type(self) -> EntityType:
        return self._entity_type

    async def list_for_user(self, user_id: str) -> list[EntityT]:
        return await self._repository.list_for_user(user_id)

    async def get_for_user(self, entity_id: str, user_id: str) -> EntityT:
        entity = await self._repository.get(entity_id)
        if entity is None:
            raise NotFoundError(f"{self._entity_type.value} {entity_id} not found")
        if not entity.is_stakeholder(user_id):
            raise PermissionDeniedError(
                f"user {user_id} is not a stakeholder of {self._entity_type.value} {entity_id}"
            )
        return entity

    async def create(self, actor_id: str, data: dict[str, Any]) -> EntityT:
        defaults = await self._field_defaults() if self._field_defaults is not None else {}
        now = utc_now()
        payload = {
            **_client_fields(data),
            **defaults,
            "id": new_entity_id(),
            self._owner_field: actor_id,
            "createdAt": now,
            "updatedAt": now,
        }
        entity = self._model.model_validate(payload)
        return await self._commit(entity, ChangeKind.CREATED)

    async def update(self, entity_id: str, actor_id: str, changes: dict[str, Any]) -> EntityT:
        current = await self.get_for_user(entity_id, actor_id)
        current_json = current.to_json()
        requested = _client_fields(changes)

        locked = sorted(
            field
            for field in self._immutable_fields
            if field in requested and requested[field] != current_json.get(field)
        )
        if locked:
            raise PermissionDeniedError(f"fields cannot be changed: {', '.join(locked)}")

        entity = self._model.model_validate(
            {**current_json, **requested, "updatedAt": utc_now()}
        )
        return await self._commit(entity, ChangeKind.UPDATED)

    async def delete(self, entity_id: str, actor_id: str) -> EntityT:
        await self.get_for_user(entity_id, actor_id)
        removed = await self._repository.delete(entity_id)
        if removed is None:
            raise NotFoundError(f"{self._entity_type.value} {entity_id} not found")
        self._broadcaster.broadcast(self._entity_type, removed, ChangeKind.DELETED)
        logger.info(f"Deleted {self._entity_type.value} {entity_id} (by {actor_id})")
        return removed

    async def _commit(self, entity: EntityT, kind: ChangeKind) -> EntityT:
        """Save the entity, then broadcast what was saved."""
        saved = await self._repository.save(entity)
        result = self._broadcaster.broadcast(self._entity_type, saved, kind)
        logger.info(
            f"Committed {kind.value} {self._entity_type.value} {saved.id}; "
            f"pushed to {len(result.delivered_user_ids)} of {len(result.event.target_user_ids)} "
            "stakeholders"
        )
        return saved
