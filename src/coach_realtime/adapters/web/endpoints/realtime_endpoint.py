"""Websocket endpoint carrying registration and change pushes."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

from starlette.websockets import WebSocketDisconnect

from coach_realtime.adapters.web.connections.live_connection import LiveConnection
from coach_realtime.domain.models import WireMessageType

if TYPE_CHECKING:
    from starlette.websockets import WebSocket

    from coach_realtime.adapters.config import AppConfig
    from coach_realtime.adapters.web.connections.lifecycle_handler import (
        ConnectionLifecycleHandler,
    )
    from coach_realtime.domain.models import RegistrationResult

logger = logging.getLogger(__name__)

# Policy violation
CLOSE_UNAUTHENTICATED = 1008


def registration_reply(result: RegistrationResult) -> dict[str, Any]:
    """Build the acknowledgement sent back for a ``register_user`` message."""
    if result.accepted:
        return {
            "type": WireMessageType.REGISTERED.value,
            "userId": result.user_id,
            "connectionId": result.connection_id,
        }
    return {"type": WireMessageType.REGISTRATION_REJECTED.value, "reason": result.reason}


def error_reply(reason: str) -> dict[str, Any]:
    return {"type": WireMessageType.ERROR.value, "reason": reason}


class RealtimeEndpoint:
    """Serves one websocket per browser tab.

    Every outbound message, replies included, goes through the connection's
    outbox so that replies and change pushes are written in order.
    """

    def __init__(self, config: AppConfig, handler: ConnectionLifecycleHandler) -> None:
        self._config = config
        self._handler = handler

    def _authenticated_user_id(self, websocket: WebSocket) -> str | None:
        user = websocket.scope.get("user")
        if user is not None and user.is_authenticated:
            return str(user.identity)
        return None

    async def handle(self, websocket: WebSocket) -> None:
        """Run a connection from handshake to close."""
        authenticated_user_id = self._authenticated_user_id(websocket)
        if authenticated_user_id is None and self._config.ws_require_token:
            logger.info("Refusing websocket without a valid token")
            await websocket.close(code=CLOSE_UNAUTHENTICATED)
            return

        await websocket.accept()
        connection = LiveConnection(
            websocket,
            outbox_size=self._config.outbox_max_size,
            authenticated_user_id=authenticated_user_id,
        )
        self._handler.on_open(connection)
        connection.start_writer()

        try:
            while True:
                frame = await websocket.receive()
                if frame["type"] == "websocket.disconnect":
                    logger.debug(
                        f"Connection {connection.connection_id} disconnected "
                        f"({frame.get('code', 1000)})"
                    )
                    break
                raw = frame.get("text")
                if raw is None:
                    connection.push(error_reply("messages must be text frames"))
                    continue
                self._dispatch(connection, raw)
        except WebSocketDisconnect as e:
            logger.debug(f"Connection {connection.connection_id} disconnected ({e.code})")
        finally:
            self._handler.on_close(connection)
            await connection.stop_writer()

    def _dispatch(self, connection: LiveConnection, raw: str) -> None:
        try:
            message = json.loads(raw)
        except json.JSONDecodeError:
            connection.push(error_reply("message is not valid JSON"))
            return
        if not isinstance(message, dict):
            connection.push(error_reply("message must be a JSON object"))
            return

        message_type = message.get("type")
        if message_type == WireMessageType.REGISTER_USER:
            result = self._handler.on_register(connection, message)
            connection.push(registration_reply(result))
        elif message_type == WireMessageType.PING:
            connection.push({"type": WireMessageType.PONG.value})
        else:
            logger.debug(f"Unknown message type {message_type!r} on {connection.connection_id}")
            connection.push(error_reply(f"unknown message type: {message_type}"))
