"""Protocol for the client side of a live connection."""

from collections.abc import Awaitable, Callable
from typing import Any, Protocol


class ClientTransportProtocol(Protocol):
    """A connected client transport carrying JSON messages."""

    @property
    def closed(self) -> bool:
        """Whether the transport has been closed."""
        ...

    async def send_json(self, message: dict[str, Any]) -> None:
        """Send one JSON message to the server."""
        ...

    async def receive_json(self) -> dict[str, Any] | None:
        """Wait for the next JSON object from the server.

        Returns:
            The decoded message, or None once the connection is closed.
        """
        ...

    async def close(self) -> None:
        """Close the connection. Safe to call more than once."""
        ...


# Opens a transport, authenticating with the optional bearer token.
ClientConnector = Callable[[str | None], Awaitable[ClientTransportProtocol]]
