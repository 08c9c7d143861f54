"""Tests for the client connection manager."""

import asyncio
from unittest.mock import MagicMock

import pytest
from conftest import FakeConnector, make_session, wait_until

from coach_realtime.adapters.client import ClientConnectionManager
from coach_realtime.domain.models import (
    ChangeEvent,
    ChangeKind,
    ClientConnectionState,
    EntityType,
)


def _change(session_kind: ChangeKind = ChangeKind.CREATED, **overrides: object) -> dict:
    return ChangeEvent.for_entity(
        session_kind, EntityType.SESSION, make_session(**overrides)
    ).to_wire()


async def _connected(manager: ClientConnectionManager, connector: FakeConnector, index: int = 0):
    await wait_until(lambda: len(connector.transports) > index and connector.transports[index].sent)
    return connector.transports[index]


async def _registered(manager: ClientConnectionManager, transport, connection_id: str = "c1"):
    transport.server_send({"type": "registered", "connectionId": connection_id})
    await wait_until(manager.registered.is_set)


class TestRegistration:
    """Tests for connecting and registering the identity."""

    @pytest.mark.asyncio
    async def test_when_identity_set_then_register_user_is_first_message(
        self, client_config
    ) -> None:
        """Given a manager, when an identity is set, then register_user is sent on connect."""
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)

        await manager.set_identity("coach-1", token="tok-1")
        transport = await _connected(manager, connector)

        assert transport.sent[0] == {"type": "register_user", "userId": "coach-1"}
        assert connector.tokens == ["tok-1"]
        assert manager.state is ClientConnectionState.CONNECTED_REGISTERED
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_registered_ack_arrives_then_connection_id_is_known(
        self, client_config
    ) -> None:
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        transport = await _connected(manager, connector)

        await _registered(manager, transport, "conn-42")

        assert manager.connection_id == "conn-42"
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_transport_drops_then_it_reconnects_and_registers_again(
        self, client_config
    ) -> None:
        """Given a registered connection, when it drops, then a new one re-registers."""
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        calls: list[bool] = []
        manager.subscribe(EntityType.SESSION, MagicMock(), on_registered=calls.append)
        first = await _connected(manager, connector)
        await _registered(manager, first)

        first.server_close()
        second = await _connected(manager, connector, index=1)
        await _registered(manager, second, "c2")

        assert second.sent[0] == {"type": "register_user", "userId": "coach-1"}
        assert calls == [False, True]
        assert manager.connection_id == "c2"
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_connector_fails_then_it_retries(self, client_config) -> None:
        """Given an unavailable server, when it comes back, then the manager connects."""
        connector = FakeConnector(failures=2)
        manager = ClientConnectionManager(connector, client_config)

        await manager.set_identity("coach-1", token="tok")
        transport = await _connected(manager, connector)

        assert connector.tokens == ["tok", "tok", "tok"]
        assert transport.sent[0]["type"] == "register_user"
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_registration_rejected_then_it_stops(self, client_config) -> None:
        """Given a rejection, when it arrives, then the manager does not reconnect."""
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        transport = await _connected(manager, connector)

        transport.server_send({"type": "registration_rejected", "reason": "bad user"})
        await wait_until(lambda: not manager.is_running)

        assert manager.rejection_reason == "bad user"
        assert manager.state is ClientConnectionState.DISCONNECTED
        assert len(connector.tokens) == 1
        assert transport.closed

    @pytest.mark.asyncio
    async def test_when_superseded_notice_arrives_then_flag_is_set(self, client_config) -> None:
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        transport = await _connected(manager, connector)

        transport.server_send({"type": "superseded", "connectionId": "other"})
        await wait_until(lambda: manager.superseded)

        assert manager.is_running
        await manager.close()


class TestIdentityChanges:
    """Tests for set_identity and close."""

    @pytest.mark.asyncio
    async def test_when_same_identity_set_again_then_no_new_connection(
        self, client_config
    ) -> None:
        """Given a running connection, when the same identity is set, then nothing reconnects."""
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1", token="old")
        await _connected(manager, connector)

        await manager.set_identity("coach-1", token="new")
        await asyncio.sleep(0.01)

        assert len(connector.tokens) == 1
        assert not connector.transports[0].closed

        connector.transports[0].server_close()
        await _connected(manager, connector, index=1)
        assert connector.tokens == ["old", "new"]
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_identity_changes_then_old_connection_closes_before_new_opens(
        self, client_config
    ) -> None:
        """Given user A connected, when B signs in, then A's transport closes before B's opens."""
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        old = await _connected(manager, connector)

        await manager.set_identity("client-1")

        assert old.closed
        assert len(connector.transports) == 1

        new = await _connected(manager, connector, index=1)
        assert new.sent[0] == {"type": "register_user", "userId": "client-1"}
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_identity_switches_overlap_then_only_the_last_connection_is_live(
        self, client_config
    ) -> None:
        """Given user A connected, when B and C sign in concurrently, then only C stays open."""
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        await _connected(manager, connector)

        await asyncio.gather(manager.set_identity("client-1"), manager.set_identity("client-2"))
        await wait_until(
            lambda: any(
                t.sent and t.sent[0]["userId"] == "client-2" for t in connector.transports
            )
        )
        await asyncio.sleep(0.01)

        live = [t for t in connector.transports if not t.closed]
        assert len(live) == 1
        assert live[0].sent[0] == {"type": "register_user", "userId": "client-2"}
        assert manager.identity == "client-2"
        assert manager.is_running
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_identity_changes_then_no_event_reaches_old_handlers(
        self, client_config
    ) -> None:
        """Given A's handlers, when the identity switches to B, then A's handlers stay silent."""
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        old_handler = MagicMock()
        old_subscription = manager.subscribe(EntityType.SESSION, old_handler)
        old = await _connected(manager, connector)

        await manager.set_identity("client-1")
        old.server_send(_change())
        new_handler = MagicMock()
        manager.subscribe(EntityType.SESSION, new_handler)
        new = await _connected(manager, connector, index=1)
        new.server_send(_change())
        await wait_until(lambda: new_handler.call_count == 1)

        old_handler.assert_not_called()
        assert old_subscription.active is False
        assert manager.subscription_count() == 1
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_identity_cleared_then_connection_is_closed(self, client_config) -> None:
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        transport = await _connected(manager, connector)

        await manager.set_identity(None)

        assert transport.closed
        assert manager.identity is None
        assert manager.state is ClientConnectionState.DISCONNECTED
        assert not manager.is_running

    @pytest.mark.asyncio
    async def test_when_subscribing_without_identity_then_it_raises(self, client_config) -> None:
        manager = ClientConnectionManager(FakeConnector(), client_config)

        with pytest.raises(RuntimeError):
            manager.subscribe(EntityType.SESSION, MagicMock())


class TestChangeDelivery:
    """Tests for routing change events to subscriptions."""

    @pytest.mark.asyncio
    async def test_when_change_arrives_then_only_matching_type_handlers_run(
        self, client_config
    ) -> None:
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        sessions = MagicMock()
        invoices = MagicMock()
        manager.subscribe(EntityType.SESSION, sessions)
        manager.subscribe("invoice", invoices)
        transport = await _connected(manager, connector)

        transport.server_send(_change(session_id="s1"))
        await wait_until(lambda: sessions.call_count == 1)

        event = sessions.call_args.args[0]
        assert event.entity_type is EntityType.SESSION
        assert event.entity_id == "s1"
        invoices.assert_not_called()
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_unsubscribed_then_handler_is_not_called(self, client_config) -> None:
        """Given a subscription, when unsubscribed, then later events skip it."""
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        removed = MagicMock()
        kept = MagicMock()
        manager.subscribe(EntityType.SESSION, removed).unsubscribe()
        manager.subscribe(EntityType.SESSION, kept)
        transport = await _connected(manager, connector)

        transport.server_send(_change())
        await wait_until(lambda: kept.call_count == 1)

        removed.assert_not_called()
        assert manager.subscription_count(EntityType.SESSION) == 1
        await manager.close()

    @pytest.mark.asyncio
    async def test_when_handler_fails_or_event_is_malformed_then_delivery_continues(
        self, client_config
    ) -> None:
        connector = FakeConnector()
        manager = ClientConnectionManager(connector, client_config)
        await manager.set_identity("coach-1")
        failing = MagicMock(side_effect=RuntimeError("boom"))
        healthy = MagicMock()
        manager.subscribe(EntityType.SESSION, failing)
        manager.subscribe(EntityType.SESSION, healthy)
        transport = await _connected(manager, connector)

        transport.server_send({"type": "change", "kind": "created", "entityType": "session"})
        transport.server_send(_change())
        await wait_until(lambda: healthy.call_count == 1)

        assert failing.call_count == 1
        assert manager.is_running
        await manager.close()
