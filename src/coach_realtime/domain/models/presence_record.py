"""Presence domain models."""

from pydantic import BaseModel, ConfigDict


class PresenceRecord(BaseModel):
    """The live connection currently holding a user's slot."""

    model_config = ConfigDict(frozen=True)

    user_id: str
    connection_id: str


class RegistrationResult(BaseModel):
    """Result of a registration attempt.

    Registration problems are reported here instead of being raised, since the
    registry sits on the path of all live traffic.
    """

    model_config = ConfigDict(frozen=True)

    accepted: bool
    user_id: str | None = None
    connection_id: str | None = None
    superseded_connection_id: str | None = None
    reason: str | None = None

    @classmethod
    def rejected(
        cls, reason: str, user_id: str | None = None, connection_id: str | None = None
    ) -> "RegistrationResult":
        """Build a rejection with the given reason."""
        return cls(accepted=False, user_id=user_id, connection_id=connection_id, reason=reason)
