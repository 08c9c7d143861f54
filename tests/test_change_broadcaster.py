"""Tests for the change broadcaster."""

from unittest.mock import MagicMock

from conftest import FakeWebSocket, make_session

from coach_realtime.adapters.web.broadcasters import ChangeBroadcaster
from coach_realtime.adapters.web.connections import (
    ConnectionDirectory,
    ConnectionLifecycleHandler,
    LiveConnection,
)
from coach_realtime.adapters.web.presence import PresenceRegistry
from coach_realtime.domain.models import ChangeKind, ConnectionState, EntityType


class _Server:
    """Registry, directory and broadcaster wired like the real server."""

    def __init__(self) -> None:
        self.registry = PresenceRegistry()
        self.directory = ConnectionDirectory()
        self.handler = ConnectionLifecycleHandler(self.registry, self.directory)
        self.broadcaster = ChangeBroadcaster(self.registry, self.directory)

    def connect(self, user_id: str, outbox_size: int = 256) -> LiveConnection:
        connection = LiveConnection(FakeWebSocket(), outbox_size=outbox_size)
        self.handler.on_open(connection)
        self.handler.on_register(connection, {"userId": user_id})
        return connection


def _drain(connection: LiveConnection) -> list[dict]:
    messages = []
    while connection.pending:
        messages.append(connection._outbox.get_nowait())
    return messages


def test_when_both_stakeholders_connected_then_both_receive_the_event() -> None:
    """Given coach and client connected, when broadcasting, then both get the change."""
    server = _Server()
    coach = server.connect("coach-1")
    client = server.connect("client-1")
    session = make_session("s1")

    result = server.broadcaster.broadcast(EntityType.SESSION, session, ChangeKind.CREATED)

    assert result.delivered_user_ids == ("coach-1", "client-1")
    assert result.missed_user_ids == ()
    expected = {
        "type": "change",
        "kind": "created",
        "entityType": "session",
        "payload": session.to_json(),
    }
    assert _drain(coach) == [expected]
    assert _drain(client) == [expected]


def test_when_counterparty_not_connected_then_no_push_and_no_error() -> None:
    """Given no record for client-1, when broadcasting, then only the coach is pushed to."""
    server = _Server()
    coach = server.connect("coach-1")

    result = server.broadcaster.broadcast(EntityType.SESSION, make_session(), ChangeKind.UPDATED)

    assert result.delivered_user_ids == ("coach-1",)
    assert result.missed_user_ids == ("client-1",)
    assert coach.pending == 1


def test_when_nobody_connected_then_broadcast_is_noop() -> None:
    server = _Server()
    server.registry = MagicMock(wraps=server.registry)
    server.broadcaster = ChangeBroadcaster(server.registry, server.directory)

    result = server.broadcaster.broadcast(EntityType.SESSION, make_session(), ChangeKind.CREATED)

    assert result.delivered_user_ids == ()
    assert server.registry.resolve.call_count == 2


def test_when_outsider_connected_then_outsider_receives_nothing() -> None:
    """Given a user who is not a stakeholder, when broadcasting, then they get nothing."""
    server = _Server()
    outsider = server.connect("coach-2")

    server.broadcaster.broadcast(EntityType.SESSION, make_session(), ChangeKind.CREATED)

    assert outsider.pending == 0


def test_when_deleted_then_payload_is_entity_id() -> None:
    server = _Server()
    client = server.connect("client-1")

    server.broadcaster.broadcast(EntityType.SESSION, make_session("s1"), ChangeKind.DELETED)

    assert _drain(client) == [
        {"type": "change", "kind": "deleted", "entityType": "session", "payload": "s1"}
    ]


def test_when_connection_closed_after_lookup_then_user_is_missed() -> None:
    """Given a connection marked closed but still registered, when broadcasting, then missed."""
    server = _Server()
    coach = server.connect("coach-1")
    coach.state = ConnectionState.CLOSED

    result = server.broadcaster.broadcast(EntityType.SESSION, make_session(), ChangeKind.CREATED)

    assert "coach-1" in result.missed_user_ids


def test_when_outbox_full_then_user_is_missed() -> None:
    server = _Server()
    coach = server.connect("coach-1", outbox_size=1)
    coach.push({"type": "pong"})

    result = server.broadcaster.broadcast(EntityType.SESSION, make_session(), ChangeKind.CREATED)

    assert "coach-1" in result.missed_user_ids


def test_when_push_raises_then_broadcast_does_not_raise() -> None:
    """Given a connection whose push fails, when broadcasting, then the error is contained."""
    server = _Server()
    coach = server.connect("coach-1")
    client = server.connect("client-1")
    coach.push = MagicMock(side_effect=RuntimeError("boom"))  # type: ignore[method-assign]

    result = server.broadcaster.broadcast(EntityType.SESSION, make_session(), ChangeKind.CREATED)

    assert result.missed_user_ids == ("coach-1",)
    assert result.delivered_user_ids == ("client-1",)
    assert client.pending == 1


def test_events_for_one_entity_are_queued_in_commit_order() -> None:
    """Given several writes to one session, when broadcast inline, then order is kept."""
    server = _Server()
    client = server.connect("client-1")
    session = make_session("s1")

    server.broadcaster.broadcast(EntityType.SESSION, session, ChangeKind.CREATED)
    server.broadcaster.broadcast(
        EntityType.SESSION, session.model_copy(update={"notes": "moved"}), ChangeKind.UPDATED
    )
    server.broadcaster.broadcast(EntityType.SESSION, session, ChangeKind.DELETED)

    assert [message["kind"] for message in _drain(client)] == ["created", "updated", "deleted"]
