"""Shared fixtures and fakes for the coach realtime tests."""

import asyncio
from collections.abc import Callable
from datetime import date, time, timedelta
from typing import Any

import pytest

from coach_realtime.adapters.config import AppConfig, ClientConfig
from coach_realtime.domain.models import (
    BroadcastResult,
    ChangeEvent,
    Conversation,
    Invoice,
    Message,
    Session,
    new_entity_id,
    utc_now,
)


def make_session(
    session_id: str | None = None,
    coach_id: str = "coach-1",
    client_id: str = "client-1",
    updated_offset: int = 0,
    **overrides: Any,
) -> Session:
    """Build a valid session; ``updated_offset`` shifts updatedAt by seconds."""
    now = utc_now()
    fields: dict[str, Any] = {
        "id": session_id or new_entity_id(),
        "coach_id": coach_id,
        "client_id": client_id,
        "session_date": date(2026, 11, 3),
        "start_time": time(9, 0),
        "end_time": time(10, 0),
        "created_at": now,
        "updated_at": now + timedelta(seconds=updated_offset),
    }
    fields.update(overrides)
    return Session(**fields)


def make_invoice(invoice_id: str | None = None, **overrides: Any) -> Invoice:
    fields: dict[str, Any] = {
        "id": invoice_id or new_entity_id(),
        "coach_id": "coach-1",
        "client_id": "client-1",
        "invoice_number": "INV-0001",
        "issue_date": date(2026, 11, 1),
        "amount": 120.0,
    }
    fields.update(overrides)
    return Invoice(**fields)


def make_conversation(first: str = "coach-1", second: str = "client-1") -> Conversation:
    return Conversation(id=new_entity_id(), participants=(first, second))


def make_message(conversation_id: str = "conv-1", **overrides: Any) -> Message:
    fields: dict[str, Any] = {
        "id": new_entity_id(),
        "conversation_id": conversation_id,
        "sender_id": "coach-1",
        "recipient_id": "client-1",
        "content": "See you on Tuesday",
    }
    fields.update(overrides)
    return Message(**fields)


class FakeWebSocket:
    """Records what a LiveConnection writes."""

    def __init__(self, fail_on_send: bool = False) -> None:
        self.scope: dict[str, Any] = {
            "type": "websocket",
            "client": ("10.0.0.7", 50123),
            "headers": [(b"user-agent", b"pytest")],
        }
        self.sent: list[dict[str, Any]] = []
        self.closed_with: int | None = None
        self.fail_on_send = fail_on_send

    async def send_json(self, data: Any, mode: str = "text") -> None:
        if self.fail_on_send:
            raise RuntimeError("socket is gone")
        self.sent.append(data)

    async def close(self, code: int = 1000, reason: str | None = None) -> None:
        self.closed_with = code


class FakeTransport:
    """In-memory client transport; the test plays the server through ``server_send``."""

    def __init__(self) -> None:
        self.sent: list[dict[str, Any]] = []
        self.inbox: asyncio.Queue[dict[str, Any] | None] = asyncio.Queue()
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def send_json(self, message: dict[str, Any]) -> None:
        if self._closed:
            raise ConnectionResetError("transport is closed")
        self.sent.append(message)

    async def receive_json(self) -> dict[str, Any] | None:
        if self._closed:
            return None
        message = await self.inbox.get()
        if message is None:
            self._closed = True
        return message

    def server_send(self, message: dict[str, Any]) -> None:
        self.inbox.put_nowait(message)

    def server_close(self) -> None:
        self.inbox.put_nowait(None)

    async def close(self) -> None:
        if not self._closed:
            self._closed = True
            self.inbox.put_nowait(None)


class FakeConnector:
    """Hands out FakeTransports and records every connect attempt."""

    def __init__(self, failures: int = 0) -> None:
        self.transports: list[FakeTransport] = []
        self.tokens: list[str | None] = []
        self.failures = failures
        self.connected = asyncio.Event()

    async def __call__(self, token: str | None) -> FakeTransport:
        self.tokens.append(token)
        if self.failures > 0:
            self.failures -= 1
            raise ConnectionRefusedError("server unavailable")
        transport = FakeTransport()
        self.transports.append(transport)
        self.connected.set()
        return transport


async def wait_until(condition: Callable[[], bool], timeout: float = 2.0) -> None:
    """Yield to the event loop until the condition holds."""

    async def poll() -> None:
        while not condition():
            await asyncio.sleep(0.001)

    await asyncio.wait_for(poll(), timeout)


@pytest.fixture
def app_config() -> AppConfig:
    return AppConfig.for_testing(
        jwt_secret="test-secret",
        admin_command_token="admin-token",
        rate_limit_per_minute=1000,
    )


@pytest.fixture
def client_config() -> ClientConfig:
    return ClientConfig.for_testing(
        reconnect_initial_delay=0.0,
        reconnect_max_delay=0.0,
        reconnect_multiplier=1.0,
    )


@pytest.fixture
def recording_broadcaster() -> Any:
    """A broadcaster mock that answers like the real one with nobody connected."""
    from unittest.mock import MagicMock

    broadcaster = MagicMock()
    broadcaster.broadcast.side_effect = lambda entity_type, entity, kind: BroadcastResult(
        event=ChangeEvent.for_entity(kind, entity_type, entity),
        missed_user_ids=tuple(dict.fromkeys(entity.stakeholder_ids())),
    )
    return broadcaster
