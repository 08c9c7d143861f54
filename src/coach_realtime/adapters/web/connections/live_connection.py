"""Server-side live connection with a bounded outbound queue."""

from __future__ import annotations

import asyncio
import contextlib
import logging
import uuid
from typing import Any, Protocol

from coach_realtime.adapters.web.connections.connection_info import (
    get_connection_info_from_scope,
)
from coach_realtime.domain.contracts.live_connection import LiveConnectionProtocol
from coach_realtime.domain.models import ConnectionInfo, ConnectionState

logger = logging.getLogger(__name__)


class JsonSender(Protocol):
    """The part of a Starlette ``WebSocket`` a live connection writes to."""

    scope: Any

    async def send_json(self, data: Any, mode: str = "text") -> None: ...

    async def close(self, code: int = 1000, reason: str | None = None) -> None: ...


class LiveConnection(LiveConnectionProtocol):
    """One accepted websocket and its outbox.

    Pushes go into a FIFO queue with ``put_nowait`` so a broadcaster never waits
    on the network. A single writer task drains the queue onto the socket,
    which keeps per-connection delivery order equal to push order.
    """

    def __init__(
        self,
        websocket: JsonSender,
        outbox_size: int = 256,
        authenticated_user_id: str | None = None,
    ) -> None:
        """Initialize the connection in state OPEN.

        Args:
            websocket: The accepted websocket.
            outbox_size: Maximum number of undelivered pushes before dropping.
            authenticated_user_id: Subject of the bearer token the connection
                was opened with, if any.
        """
        self.connection_id = uuid.uuid4().hex
        self.user_id: str | None = None
        self.authenticated_user_id = authenticated_user_id
        self.state = ConnectionState.OPEN
        self.info: ConnectionInfo = get_connection_info_from_scope(
            getattr(websocket, "scope", None)
        )
        self._websocket = websocket
        self._outbox: asyncio.Queue[dict[str, Any]] = asyncio.Queue(maxsize=outbox_size)
        self._writer_task: asyncio.Task[None] | None = None

    @property
    def pending(self) -> int:
        """Number of queued, not yet written messages."""
        return self._outbox.qsize()

    def push(self, message: dict[str, Any]) -> bool:
        """Queue a message without waiting.

        Returns:
            False if the connection is closed or its outbox is full.
        """
        if self.state is ConnectionState.CLOSED:
            return False
        try:
            self._outbox.put_nowait(message)
        except asyncio.QueueFull:
            logger.warning(
                f"Outbox full for connection {self.connection_id} (user {self.user_id}), "
                f"dropping {message.get('type')} message"
            )
            return False
        return True

    def start_writer(self) -> None:
        """Start the task that writes queued messages to the websocket."""
        if self._writer_task is None or self._writer_task.done():
            self._writer_task = asyncio.create_task(self._drain_outbox())

    async def stop_writer(self) -> None:
        """Stop the writer task and discard undelivered messages."""
        if self._writer_task is not None:
            self._writer_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._writer_task
            self._writer_task = None

        discarded = 0
        while not self._outbox.empty():
            self._outbox.get_nowait()
            discarded += 1
        if discarded:
            logger.debug(f"Discarded {discarded} queued messages for {self.connection_id}")

    async def close(self, code: int = 1012) -> None:
        """Close the underlying websocket, e.g. on an admin reset."""
        try:
            await self._websocket.close(code=code)
        except Exception as e:
            logger.debug(f"Closing connection {self.connection_id} failed: {e}")

    async def _drain_outbox(self) -> None:
        while True:
            message = await self._outbox.get()
            try:
                await self._websocket.send_json(message)
            except Exception as e:
                logger.warning(
                    f"Failed to send to connection {self.connection_id}, stopping writer: {e}"
                )
                # Nothing queued from now on could be written.
                self.state = ConnectionState.CLOSED
                return

    def __repr__(self) -> str:
        return (
            f"LiveConnection(id={self.connection_id!r}, user={self.user_id!r}, "
            f"state={self.state.value})"
        )
