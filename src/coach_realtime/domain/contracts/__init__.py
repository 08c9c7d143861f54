"""Domain contracts (protocols) for coach realtime."""

from coach_realtime.domain.contracts.client_transport import (
    ClientConnector,
    ClientTransportProtocol,
)
from coach_realtime.domain.contracts.live_connection import LiveConnectionProtocol
from coach_realtime.domain.contracts.mutation_broadcaster import MutationBroadcasterProtocol
from coach_realtime.domain.contracts.presence_registry import PresenceRegistryProtocol

__all__ = [
    "ClientConnector",
    "ClientTransportProtocol",
    "LiveConnectionProtocol",
    "MutationBroadcasterProtocol",
    "PresenceRegistryProtocol",
]
