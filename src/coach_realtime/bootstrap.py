"""Composition root: wires storage, services and web adapters together."""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from coach_realtime.adapters.auth import TokenService
from coach_realtime.adapters.config import AppConfig
from coach_realtime.adapters.persistence import InMemoryEntityRepository, SequenceCounter
from coach_realtime.adapters.web import create_app
from coach_realtime.adapters.web.broadcasters import ChangeBroadcaster
from coach_realtime.adapters.web.connections import (
    ConnectionDirectory,
    ConnectionLifecycleHandler,
)
from coach_realtime.adapters.web.presence import PresenceRegistry
from coach_realtime.application.services import ConversationService, SharedEntityCrudService
from coach_realtime.domain.models import (
    Conversation,
    EntityType,
    Invoice,
    Message,
    Session,
)

if TYPE_CHECKING:
    from starlette.applications import Starlette

INVOICE_SEQUENCE = "invoice"
INVOICE_NUMBER_PREFIX = "INV-"


@dataclass(frozen=True)
class Application:
    """Everything one server process needs, built once at startup."""

    config: AppConfig
    tokens: TokenService
    registry: PresenceRegistry
    directory: ConnectionDirectory
    handler: ConnectionLifecycleHandler
    broadcaster: ChangeBroadcaster
    sessions: SharedEntityCrudService[Session]
    invoices: SharedEntityCrudService[Invoice]
    messaging: ConversationService
    counter: SequenceCounter
    app: Starlette


def invoice_defaults(counter: SequenceCounter) -> Any:
    """Build the creation defaults for invoices: the next invoice number."""

    async def defaults() -> dict[str, Any]:
        number = await counter.next_formatted(INVOICE_SEQUENCE, prefix=INVOICE_NUMBER_PREFIX)
        return {"invoiceNumber": number}

    return defaults


def build_application(
    config: AppConfig | None = None, registry: PresenceRegistry | None = None
) -> Application:
    """Build the application.

    Args:
        config: Server configuration; read from the environment when omitted.
        registry: Presence registry; a fresh one when omitted. Pass
            ``get_presence_registry()`` to share the process-wide instance.
    """
    config = config or AppConfig()
    registry = registry if registry is not None else PresenceRegistry()
    directory = ConnectionDirectory()
    handler = ConnectionLifecycleHandler(
        registry, directory, notify_superseded=config.notify_superseded_connections
    )
    broadcaster = ChangeBroadcaster(registry, directory)
    tokens = TokenService(
        config.jwt_secret, algorithm=config.jwt_algorithm, ttl_hours=config.token_ttl_hours
    )
    counter = SequenceCounter()

    sessions = SharedEntityCrudService(
        EntityType.SESSION,
        Session,
        InMemoryEntityRepository[Session]("sessions"),
        broadcaster,
    )
    invoices = SharedEntityCrudService(
        EntityType.INVOICE,
        Invoice,
        InMemoryEntityRepository[Invoice]("invoices"),
        broadcaster,
        immutable_fields=frozenset({"coachId", "clientId", "invoiceNumber"}),
        field_defaults=invoice_defaults(counter),
    )
    messaging = ConversationService(
        InMemoryEntityRepository[Conversation]("conversations"),
        InMemoryEntityRepository[Message]("messages"),
        broadcaster,
    )

    app = create_app(
        config,
        tokens=tokens,
        sessions=sessions,
        invoices=invoices,
        messaging=messaging,
        registry=registry,
        directory=directory,
        handler=handler,
    )
    return Application(
        config=config,
        tokens=tokens,
        registry=registry,
        directory=directory,
        handler=handler,
        broadcaster=broadcaster,
        sessions=sessions,
        invoices=invoices,
        messaging=messaging,
        counter=counter,
        app=app,
    )
