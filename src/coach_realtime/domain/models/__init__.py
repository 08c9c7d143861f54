"""Domain models for coach realtime."""

from coach_realtime.domain.models.change_event import (
    BroadcastResult,
    ChangeEvent,
    ChangeKind,
    EntityType,
)
from coach_realtime.domain.models.connection_info import ConnectionInfo
from coach_realtime.domain.models.connection_state import ClientConnectionState, ConnectionState
from coach_realtime.domain.models.conversation import Conversation, Message
from coach_realtime.domain.models.invoice import Invoice, InvoiceStatus, LineItem
from coach_realtime.domain.models.presence_record import PresenceRecord, RegistrationResult
from coach_realtime.domain.models.session import Session, SessionStatus
from coach_realtime.domain.models.shared_entity import SharedEntity, new_entity_id, utc_now
from coach_realtime.domain.models.wire_message import WireMessageType

__all__ = [
    "BroadcastResult",
    "ChangeEvent",
    "ChangeKind",
    "ClientConnectionState",
    "ConnectionInfo",
    "ConnectionState",
    "Conversation",
    "EntityType",
    "Invoice",
    "InvoiceStatus",
    "LineItem",
    "Message",
    "PresenceRecord",
    "RegistrationResult",
    "Session",
    "SessionStatus",
    "SharedEntity",
    "WireMessageType",
    "new_entity_id",
    "utc_now",
]
