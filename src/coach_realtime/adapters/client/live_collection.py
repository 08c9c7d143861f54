"""A reusable live view: subscribe, fetch, then keep the list in sync."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING, Generic, TypeVar

from coach_realtime.domain.models import SharedEntity

if TYPE_CHECKING:
    from coach_realtime.adapters.client.connection_manager import (
        ClientConnectionManager,
        Subscription,
    )
    from coach_realtime.adapters.client.reconciliation_store import ReconciliationStore
    from coach_realtime.domain.models import ChangeEvent

logger = logging.getLogger(__name__)

EntityT = TypeVar("EntityT", bound=SharedEntity)

Fetcher = Callable[[], Awaitable[list[EntityT]]]
ChangeCallback = Callable[[list[EntityT]], None]


class LiveCollection(Generic[EntityT]):
    """Binds a ReconciliationStore to the connection manager for one view.

    ``mount`` subscribes before fetching, so no push can slip between the
    fetch and the subscription. After every re-registration that follows a
    reconnect the list is fetched again, which repairs anything missed while
    the connection was down.
    """

    def __init__(
        self,
        manager: ClientConnectionManager,
        fetcher: Fetcher[EntityT],
        store: ReconciliationStore[EntityT],
        on_change: ChangeCallback[EntityT] | None = None,
    ) -> None:
        self._manager = manager
        self._fetcher = fetcher
        self._store = store
        self._on_change = on_change
        self._subscription: Subscription | None = None
        self._refresh_task: asyncio.Task[None] | None = None
        self._refetch_on_register = False

    @property
    def mounted(self) -> bool:
        return self._subscription is not None and self._subscription.active

    @property
    def items(self) -> list[EntityT]:
        return self._store.items

    async def mount(self) -> None:
        """Subscribe, then fetch and seed the store.

        Raises:
            RuntimeError: If the manager has no identity.
            Exception: Whatever the fetcher raises; the subscription stays
                attached and the next registration triggers another fetch.
        """
        if self.mounted:
            return
        # Pushes may be missed until the connection has registered.
        self._refetch_on_register = not self._manager.registered.is_set()
        self._subscription = self._manager.subscribe(
            self._store.entity_type, self._on_event, on_registered=self._on_registered
        )
        await self.refresh()

    def unmount(self) -> None:
        """Detach from the manager and forget the list.

        No handler runs after this returns. A later ``mount`` starts from an
        empty store, tombstones included.
        """
        if self._subscription is not None:
            self._subscription.unsubscribe()
            self._subscription = None
        if self._refresh_task is not None and not self._refresh_task.done():
            self._refresh_task.cancel()
        self._refresh_task = None
        self._store.reset()

    async def refresh(self) -> None:
        """Fetch the list again; pushes arriving meanwhile are replayed on top."""
        self._store.begin_refresh()
        try:
            entities = await self._fetcher()
        except BaseException:
            self._store.abort_refresh()
            self._notify()
            raise
        self._store.seed(entities)
        self._notify()

    def _on_event(self, event: ChangeEvent) -> None:
        if not self.mounted:
            return
        if self._store.apply(event):
            self._notify()

    def _on_registered(self, reconnect: bool) -> None:
        if not (reconnect or self._refetch_on_register):
            return
        self._refetch_on_register = False
        self._refresh_task = asyncio.create_task(self._refresh_in_background())

    async def _refresh_in_background(self) -> None:
        try:
            await self.refresh()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.warning(f"Refetch of {self._store.entity_type} list failed: {e}")

    def _notify(self) -> None:
        if self._on_change is not None and self.mounted:
            self._on_change(self._store.items)
