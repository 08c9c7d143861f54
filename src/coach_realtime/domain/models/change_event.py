"""Change event domain models."""

from enum import StrEnum
from typing import Any

from pydantic import BaseModel, ConfigDict, model_validator
from pydantic.alias_generators import to_camel

from coach_realtime.domain.models.shared_entity import SharedEntity
from coach_realtime.domain.models.wire_message import WireMessageType


class ChangeKind(StrEnum):
    """What happened to the entity."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


class EntityType(StrEnum):
    """Entity collections that are kept live on clients."""

    SESSION = "session"
    INVOICE = "invoice"
    MESSAGE = "message"
    CONVERSATION = "conversation"


class ChangeEvent(BaseModel):
    """A committed mutation of a shared entity.

    For ``created`` and ``updated`` the payload is the full entity in its JSON
    form; for ``deleted`` it is the entity id. ``target_user_ids`` is derived
    from the entity's stakeholders when the event is built and is not part of
    the wire message.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    kind: ChangeKind
    entity_type: EntityType
    payload: dict[str, Any] | str
    target_user_ids: tuple[str, ...] = ()

    @model_validator(mode="after")
    def _check_payload(self) -> "ChangeEvent":
        if self.kind is ChangeKind.DELETED:
            if not isinstance(self.payload, str) or not self.payload:
                raise ValueError("deleted events carry the entity id as payload")
        elif not isinstance(self.payload, dict) or not self.payload.get("id"):
            raise ValueError(f"{self.kind} events carry the full entity as payload")
        return self

    @property
    def entity_id(self) -> str:
        """Identity of the entity this event is about."""
        if isinstance(self.payload, str):
            return self.payload
        return str(self.payload["id"])

    @classmethod
    def for_entity(
        cls, kind: ChangeKind, entity_type: EntityType, entity: SharedEntity
    ) -> "ChangeEvent":
        """Build the event for a committed write, targeting the entity's stakeholders."""
        targets = tuple(dict.fromkeys(entity.stakeholder_ids()))
        payload: dict[str, Any] | str = (
            entity.id if kind is ChangeKind.DELETED else entity.to_json()
        )
        return cls(kind=kind, entity_type=entity_type, payload=payload, target_user_ids=targets)

    def to_wire(self) -> dict[str, Any]:
        """Serialize to the server-to-client wire message."""
        return {
            "type": WireMessageType.CHANGE.value,
            "kind": self.kind.value,
            "entityType": self.entity_type.value,
            "payload": self.payload,
        }

    @classmethod
    def from_wire(cls, message: dict[str, Any]) -> "ChangeEvent":
        """Parse a wire message received by a client.

        Raises:
            pydantic.ValidationError: If the message is not a valid change event.
        """
        return cls.model_validate(
            {
                "kind": message.get("kind"),
                "entityType": message.get("entityType"),
                "payload": message.get("payload"),
            }
        )


class BroadcastResult(BaseModel):
    """Outcome of one broadcast: who was pushed to and who was not connected."""

    model_config = ConfigDict(frozen=True)

    event: ChangeEvent
    delivered_user_ids: tuple[str, ...] = ()
    missed_user_ids: tuple[str, ...] = ()
