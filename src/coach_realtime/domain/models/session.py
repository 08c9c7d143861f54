"""Coaching session domain model."""

from datetime import date, time
from enum import StrEnum

from pydantic import model_validator

from coach_realtime.domain.models.shared_entity import SharedEntity


class SessionStatus(StrEnum):
    """Lifecycle status of a coaching session."""

    UPCOMING = "Upcoming"
    COMPLETED = "Completed"
    CANCELLED = "Cancelled"
    NO_SHOW = "No Show"


class Session(SharedEntity):
    """A scheduled session between a coach and a client."""

    coach_id: str
    client_id: str
    session_date: date
    start_time: time
    end_time: time
    location: str = ""
    status: SessionStatus = SessionStatus.UPCOMING
    notes: str = ""
    focus_topic: str = ""
    related_invoice_id: str | None = None

    @model_validator(mode="after")
    def _check_session(self) -> "Session":
        if self.coach_id == self.client_id:
            raise ValueError("coach and client must be different users")
        if self.end_time <= self.start_time:
            raise ValueError("end_time must be after start_time")
        return self

    def stakeholder_ids(self) -> tuple[str, str]:
        return self.coach_id, self.client_id
