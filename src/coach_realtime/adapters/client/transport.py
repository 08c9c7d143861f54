"""aiohttp websocket transport for the client library."""

from __future__ import annotations

import json
import logging
from typing import TYPE_CHECKING, Any

import aiohttp

from coach_realtime.domain.contracts.client_transport import ClientTransportProtocol

if TYPE_CHECKING:
    from coach_realtime.adapters.config import ClientConfig

logger = logging.getLogger(__name__)

# Message types that end the receive loop
_TERMINAL_TYPES = (
    aiohttp.WSMsgType.CLOSE,
    aiohttp.WSMsgType.CLOSING,
    aiohttp.WSMsgType.CLOSED,
    aiohttp.WSMsgType.ERROR,
)


class AiohttpTransport(ClientTransportProtocol):
    """Carries JSON objects over an aiohttp client websocket."""

    def __init__(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        self._ws = ws

    @property
    def closed(self) -> bool:
        return self._ws.closed

    async def send_json(self, message: dict[str, Any]) -> None:
        await self._ws.send_json(message)

    async def receive_json(self) -> dict[str, Any] | None:
        """Wait for the next JSON object, skipping frames that are not one.

        Returns:
            The decoded object, or None once the websocket is closed.
        """
        while True:
            msg = await self._ws.receive()
            if msg.type in _TERMINAL_TYPES:
                if msg.type == aiohttp.WSMsgType.ERROR:
                    logger.warning(f"Websocket error: {self._ws.exception()}")
                return None
            if msg.type != aiohttp.WSMsgType.TEXT:
                continue
            try:
                data = json.loads(msg.data)
            except json.JSONDecodeError:
                logger.warning("Ignoring websocket frame that is not valid JSON")
                continue
            if isinstance(data, dict):
                return data
            logger.warning(f"Ignoring websocket message of type {type(data).__name__}")

    async def close(self) -> None:
        if not self._ws.closed:
            await self._ws.close()


class AiohttpConnector:
    """Opens websocket transports to the configured server."""

    def __init__(self, session: aiohttp.ClientSession, config: ClientConfig) -> None:
        """Initialize the connector.

        Args:
            session: Shared aiohttp session.
            config: Client configuration providing the websocket URL.
        """
        self._session = session
        self._config = config

    async def __call__(self, token: str | None) -> AiohttpTransport:
        params = {"token": token} if token else None
        ws = await self._session.ws_connect(
            self._config.ws_url,
            params=params,
            heartbeat=self._config.heartbeat_seconds,
        )
        logger.debug(f"Connected websocket to {self._config.ws_url}")
        return AiohttpTransport(ws)
