"""Client-side owner of the live connection for the signed-in identity."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any

import aiohttp
from pydantic import ValidationError

from coach_realtime.adapters.config import ClientConfig
from coach_realtime.domain.models import (
    ChangeEvent,
    ClientConnectionState,
    EntityType,
    WireMessageType,
)

if TYPE_CHECKING:
    from coach_realtime.domain.contracts import ClientConnector, ClientTransportProtocol

logger = logging.getLogger(__name__)

ChangeHandler = Callable[[ChangeEvent], None]
# Called with True when the registration follows a reconnect
RegisteredCallback = Callable[[bool], None]


class Subscription:
    """A handler attached to the manager for one entity type."""

    def __init__(
        self,
        manager: ClientConnectionManager,
        entity_type: EntityType,
        handler: ChangeHandler,
        on_registered: RegisteredCallback | None = None,
    ) -> None:
        self.entity_type = entity_type
        self.handler = handler
        self.on_registered = on_registered
        self.active = True
        self._manager = manager

    def unsubscribe(self) -> None:
        """Detach the handler. Takes effect before this call returns."""
        if self.active:
            self.active = False
            self._manager._detach(self)


class ClientConnectionManager:
    """Keeps exactly one live connection for the current identity.

    The connection registers its identity every time the transport connects,
    including reconnects. Changing or clearing the identity tears the old
    connection down completely before anything else happens, so no event for
    the previous identity can reach a handler afterwards.
    """

    def __init__(self, connector: ClientConnector, config: ClientConfig | None = None) -> None:
        """Initialize the manager.

        Args:
            connector: Opens a transport, given the bearer token.
            config: Reconnect settings; defaults to ClientConfig from the environment.
        """
        self._connector = connector
        self._config = config or ClientConfig()
        self._state = ClientConnectionState.DISCONNECTED
        self._identity: str | None = None
        self._token: str | None = None
        self._generation = 0
        self._task: asyncio.Task[None] | None = None
        self._transport: ClientTransportProtocol | None = None
        self._subscriptions: dict[EntityType, list[Subscription]] = {}
        self.connection_id: str | None = None
        self.superseded = False
        self.rejection_reason: str | None = None
        self.registered = asyncio.Event()
        # Held for a whole identity switch so only one connection is ever live.
        self._lock = asyncio.Lock()

    @property
    def state(self) -> ClientConnectionState:
        return self._state

    @property
    def identity(self) -> str | None:
        return self._identity

    @property
    def is_running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def set_identity(self, user_id: str | None, token: str | None = None) -> None:
        """Connect for the given identity, or disconnect when it is empty.

        Calling again with the identity already in use is a no-op apart from
        picking up a new token for later reconnects. Overlapping calls run one
        after the other, in call order.
        """
        async with self._lock:
            if not user_id:
                await self._close_unlocked()
                return

            if user_id == self._identity:
                if token:
                    self._token = token
                if self.is_running:
                    return
                # Same identity after a rejection or a failure; keep subscriptions.
                await self._teardown(drop_subscriptions=False)
            else:
                await self._teardown(drop_subscriptions=True)
                self._identity = user_id
                self._token = token

            self.rejection_reason = None
            generation = self._generation
            self._task = asyncio.create_task(self._run(generation))
            logger.info(f"Connecting live updates for {user_id}")

    async def close(self) -> None:
        """Tear down the connection and forget the identity."""
        async with self._lock:
            await self._close_unlocked()

    async def _close_unlocked(self) -> None:
        previous = self._identity
        await self._teardown(drop_subscriptions=True)
        self._identity = None
        self._token = None
        if previous is not None:
            logger.info(f"Disconnected live updates for {previous}")

    def subscribe(
        self,
        entity_type: EntityType | str,
        handler: ChangeHandler,
        on_registered: RegisteredCallback | None = None,
    ) -> Subscription:
        """Attach a handler for change events of one entity type.

        Raises:
            RuntimeError: If no identity is set.
        """
        if self._identity is None:
            raise RuntimeError("cannot subscribe without an identity")
        subscription = Subscription(self, EntityType(entity_type), handler, on_registered)
        self._subscriptions.setdefault(subscription.entity_type, []).append(subscription)
        return subscription

    def subscription_count(self, entity_type: EntityType | str | None = None) -> int:
        if entity_type is None:
            return sum(len(subs) for subs in self._subscriptions.values())
        return len(self._subscriptions.get(EntityType(entity_type), []))

    def _detach(self, subscription: Subscription) -> None:
        subs = self._subscriptions.get(subscription.entity_type, [])
        if subscription in subs:
            subs.remove(subscription)

    async def _teardown(self, drop_subscriptions: bool) -> None:
        # Anything still in flight from the old connection is now stale.
        self._generation += 1

        if drop_subscriptions:
            for subs in self._subscriptions.values():
                for subscription in subs:
                    subscription.active = False
            self._subscriptions.clear()

        task, self._task = self._task, None
        if task is not None:
            task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await task

        transport, self._transport = self._transport, None
        if transport is not None:
            await transport.close()

        self._state = ClientConnectionState.DISCONNECTED
        self.connection_id = None
        self.superseded = False
        self.registered.clear()

    def _next_delay(self, delay: float) -> float:
        return min(delay * self._config.reconnect_multiplier, self._config.reconnect_max_delay)

    async def _run(self, generation: int) -> None:
        """Connect, register and receive until torn down or rejected."""
        delay = self._config.reconnect_initial_delay
        reconnect = False

        while generation == self._generation:
            self._state = ClientConnectionState.CONNECTING
            try:
                transport = await self._connector(self._token)
            except (aiohttp.ClientError, OSError) as e:
                logger.warning(f"Live connection failed, retrying in {delay:.1f}s: {e}")
                self._state = ClientConnectionState.DISCONNECTED
                await asyncio.sleep(delay)
                delay = self._next_delay(delay)
                continue

            if generation != self._generation:
                await transport.close()
                return

            self._transport = transport
            keep_running = True
            try:
                await transport.send_json(
                    {"type": WireMessageType.REGISTER_USER.value, "userId": self._identity}
                )
                self._state = ClientConnectionState.CONNECTED_REGISTERED
                delay = self._config.reconnect_initial_delay
                keep_running = await self._receive(transport, generation, reconnect)
            except (aiohttp.ClientError, OSError) as e:
                logger.warning(f"Live connection lost: {e}")
            finally:
                if self._transport is transport:
                    self._transport = None
                await transport.close()

            self._state = ClientConnectionState.DISCONNECTED
            self.connection_id = None
            self.registered.clear()
            if not keep_running or generation != self._generation:
                return

            reconnect = True
            logger.info(f"Live connection closed, reconnecting in {delay:.1f}s")
            await asyncio.sleep(delay)
            delay = self._next_delay(delay)

    async def _receive(
        self, transport: ClientTransportProtocol, generation: int, reconnect: bool
    ) -> bool:
        """Dispatch messages until the transport closes.

        Returns:
            False when the connection must not be re-established.
        """
        while True:
            message = await transport.receive_json()
            if message is None:
                return True
            if generation != self._generation:
                return False
            if not self._dispatch(message, reconnect):
                return False

    def _dispatch(self, message: dict[str, Any], reconnect: bool) -> bool:
        message_type = message.get("type")

        if message_type == WireMessageType.CHANGE:
            self._deliver_change(message)
        elif message_type == WireMessageType.REGISTERED:
            self.connection_id = message.get("connectionId")
            self.registered.set()
            logger.info(f"Registered {self._identity} on connection {self.connection_id}")
            self._notify_registered(reconnect)
        elif message_type == WireMessageType.REGISTRATION_REJECTED:
            self.rejection_reason = message.get("reason")
            logger.error(
                f"Server rejected registration of {self._identity}: {self.rejection_reason}"
            )
            return False
        elif message_type == WireMessageType.SUPERSEDED:
            self.superseded = True
            logger.warning(
                f"Connection for {self._identity} superseded by {message.get('connectionId')}"
            )
        elif message_type == WireMessageType.ERROR:
            logger.warning(f"Server reported an error: {message.get('reason')}")
        elif message_type != WireMessageType.PONG:
            logger.debug(f"Ignoring message of type {message_type!r}")
        return True

    def _deliver_change(self, message: dict[str, Any]) -> None:
        try:
            event = ChangeEvent.from_wire(message)
        except ValidationError as e:
            logger.warning(f"Dropping malformed change event: {e}")
            return

        for subscription in list(self._subscriptions.get(event.entity_type, [])):
            if not subscription.active:
                continue
            try:
                subscription.handler(event)
            except Exception as e:
                logger.error(f"Change handler failed for {event.entity_type}: {e}", exc_info=True)

    def _notify_registered(self, reconnect: bool) -> None:
        for subs in list(self._subscriptions.values()):
            for subscription in list(subs):
                if subscription.active and subscription.on_registered is not None:
                    try:
                        subscription.on_registered(reconnect)
                    except Exception as e:
                        logger.error(f"Registration callback failed: {e}", exc_info=True)
