"""Conversation and message domain models."""

from pydantic import Field, field_validator, model_validator

from coach_realtime.domain.models.shared_entity import SharedEntity


class Conversation(SharedEntity):
    """A chat thread between exactly two users.

    Participants are stored sorted so the same pair always maps to one thread.
    """

    participants: tuple[str, str]

    @field_validator("participants")
    @classmethod
    def validate_participants(cls, v: tuple[str, str]) -> tuple[str, str]:
        """Require two distinct participants and store them sorted."""
        first, second = sorted(v)
        if not first or first == second:
            raise ValueError("a conversation needs two distinct participants")
        return first, second

    def stakeholder_ids(self) -> tuple[str, str]:
        return self.participants

    def other_participant(self, user_id: str) -> str:
        """Return the participant that is not ``user_id``."""
        first, second = self.participants
        if user_id == first:
            return second
        if user_id == second:
            return first
        raise ValueError(f"{user_id} is not a participant of conversation {self.id}")


class Message(SharedEntity):
    """A message posted in a conversation.

    ``recipient_id`` is copied from the conversation when the message is
    written so the message carries both of its stakeholders itself.
    """

    conversation_id: str
    sender_id: str
    recipient_id: str
    content: str = Field(min_length=1, max_length=5000)
    read_by: tuple[str, ...] = ()

    @field_validator("content")
    @classmethod
    def validate_content(cls, v: str) -> str:
        """Trim surrounding whitespace and reject empty messages."""
        stripped = v.strip()
        if not stripped:
            raise ValueError("message content cannot be empty")
        return stripped

    @model_validator(mode="after")
    def _check_recipient(self) -> "Message":
        if self.sender_id == self.recipient_id:
            raise ValueError("sender and recipient must be different users")
        return self

    def stakeholder_ids(self) -> tuple[str, str]:
        return self.sender_id, self.recipient_id
