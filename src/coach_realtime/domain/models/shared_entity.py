"""Base model for entities co-owned by two users."""

import uuid
from datetime import UTC, datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


def new_entity_id() -> str:
    """Generate a new entity identifier."""
    return uuid.uuid4().hex


def utc_now() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)


class SharedEntity(BaseModel):
    """An entity with exactly two stakeholder identities.

    The JSON form uses camelCase keys (``coachId``, ``updatedAt``); Python code
    uses the snake_case attribute names. ``id`` is the merge key used by REST
    lists and change events alike.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, alias_generator=to_camel)

    id: str = Field(min_length=1)
    created_at: datetime = Field(default_factory=utc_now)
    updated_at: datetime = Field(default_factory=utc_now)

    def stakeholder_ids(self) -> tuple[str, str]:
        """Return the two user identities that have a stake in this entity."""
        raise NotImplementedError

    def is_stakeholder(self, user_id: str) -> bool:
        """Check whether the user is one of the two stakeholders."""
        return user_id in self.stakeholder_ids()

    def to_json(self) -> dict:
        """Serialize to the camelCase JSON shape used on the wire."""
        return self.model_dump(mode="json", by_alias=True)
