"""Change-driven refresh of the canonical set.

Any insert, update or delete on the contacts table triggers a full refetch
instead of an incremental patch, since notifications carry no row identity or
sequence information to patch against.
"""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Callable, Optional

from core.coordinator import ViewCoordinator
from core.models import ChangeNotification, DashboardState, OperationResult
from core.ports import ChangeChannelPort

LOGGER = logging.getLogger(__name__)


class ChangeListener:
    """Subscribes to the change channel and refetches on notifications.

    Notifications never start parallel fetches:
    - while a fetch is pending or running, they are coalesced into it
    - while a clear or trigger is running, or wins the race against a queued
      refetch, one fetch is deferred until the coordinator leaves loading

    A channel that gives up reconnecting is reported as the coordinator's
    error status as soon as no operation is in flight.
    """

    def __init__(self, coordinator: ViewCoordinator, channel: ChangeChannelPort) -> None:
        self._coordinator = coordinator
        self._channel = channel
        self._started = False
        self._closed = False
        self._deferred = False
        self._pending: Optional[asyncio.Task] = None
        self._lost_message: Optional[str] = None
        self._unsubscribe_state: Optional[Callable[[], None]] = None
        self.notifications_received = 0
        self.notifications_coalesced = 0

    @property
    def is_active(self) -> bool:
        return self._started and not self._closed

    async def start(self) -> None:
        """Subscribe once for the lifetime of this listener."""

        if self._started:
            raise RuntimeError("Change listener already started")
        self._started = True
        self._unsubscribe_state = self._coordinator.subscribe(self._on_state)
        await self._channel.subscribe(self._on_change, self._on_lost)
        LOGGER.info("Listening for contact changes")

    async def stop(self) -> None:
        """Unsubscribe and drop anything delivered afterwards. Safe to call twice."""

        if self._closed:
            return
        self._closed = True
        self._deferred = False
        try:
            if self._unsubscribe_state is not None:
                self._unsubscribe_state()
                self._unsubscribe_state = None
            if self._started:
                await self._channel.unsubscribe()
        finally:
            pending = self._pending
            self._pending = None
            if pending is not None and not pending.done():
                pending.cancel()
                with contextlib.suppress(asyncio.CancelledError):
                    await pending
        LOGGER.info("Stopped listening for contact changes")

    async def __aenter__(self) -> "ChangeListener":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def _on_change(self, notification: ChangeNotification) -> None:
        if self._closed:
            return
        self.notifications_received += 1

        if self._has_pending() or self._coordinator.current_operation == "fetch":
            self.notifications_coalesced += 1
            LOGGER.debug("Coalesced %s notification into in-flight fetch", notification.event_type)
            return
        if self._coordinator.is_busy:
            self.notifications_coalesced += 1
            self._deferred = True
            LOGGER.debug(
                "Deferred refresh for %s notification until %s completes",
                notification.event_type,
                self._coordinator.current_operation,
            )
            return

        LOGGER.debug("Change %s on %s, refreshing", notification.event_type, notification.table)
        self._schedule_fetch()

    def _on_state(self, state: DashboardState) -> None:
        if self._closed or state.is_loading:
            return
        if self._deferred:
            self._deferred = False
            if not self._has_pending():
                self._schedule_fetch()
            return
        self._flush_lost()

    def _on_lost(self, message: str) -> None:
        if self._closed:
            return
        LOGGER.error("Live updates lost: %s", message)
        self._lost_message = message
        self._flush_lost()

    def _flush_lost(self) -> None:
        # A refetch that is queued but not started would clear the error again.
        if self._lost_message is None or self._deferred or self._coordinator.is_busy:
            return
        if self._has_pending() and asyncio.current_task() is not self._pending:
            return
        message, self._lost_message = self._lost_message, None
        self._coordinator.report_error(message)

    def _has_pending(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def _schedule_fetch(self) -> None:
        self._pending = asyncio.get_running_loop().create_task(self._refetch())

    async def _refetch(self) -> None:
        result = await self._coordinator.fetch()
        if result is OperationResult.REJECTED and not self._closed:
            # A user operation won the race to loading; refetch once it ends.
            LOGGER.debug("Refresh rejected by %s, deferring", self._coordinator.current_operation)
            self._deferred = True
