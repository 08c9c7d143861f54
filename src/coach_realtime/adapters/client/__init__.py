"""Client library: one live connection per identity and live entity lists."""

from coach_realtime.adapters.client.connection_manager import (
    ClientConnectionManager,
    Subscription,
)
from coach_realtime.adapters.client.live_collection import LiveCollection
from coach_realtime.adapters.client.reconciliation_store import ReconciliationStore
from coach_realtime.adapters.client.rest_client import ApiError, PracticeApiClient
from coach_realtime.adapters.client.transport import AiohttpConnector, AiohttpTransport

__all__ = [
    "AiohttpConnector",
    "AiohttpTransport",
    "ApiError",
    "ClientConnectionManager",
    "LiveCollection",
    "PracticeApiClient",
    "ReconciliationStore",
    "Subscription",
]
