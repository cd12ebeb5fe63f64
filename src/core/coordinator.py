"""View coordination state machine.

The coordinator owns records, filters, view and status, and is the only place
where remote operations are started. It enforces a strict order:
1) Reject the request while another remote operation is in flight
2) Enter loading and publish the new state
3) Await the port call
4) Apply the result (or leave records untouched on failure)
5) Re-derive the view and publish idle or error(message)

Filter toggles are synchronous and may run between any two of these steps,
because they only read the canonical set that currently exists.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Type

from core.automation import AutomationTrigger
from core.errors import DashboardError, DeleteError, FetchError, TriggerError
from core.filters import FilterEngine
from core.models import DashboardState, OperationResult, Status
from core.ports import ConfirmPort, RecordSourcePort
from core.record_store import RecordStore

LOGGER = logging.getLogger(__name__)

StateObserver = Callable[[DashboardState], None]


class ViewCoordinator:
    """Orchestrates fetch, clear, and trigger against one in-memory model."""

    def __init__(
        self,
        source: RecordSourcePort,
        automation: AutomationTrigger,
        engine: Optional[FilterEngine] = None,
        store: Optional[RecordStore] = None,
    ) -> None:
        self._source = source
        self._automation = automation
        self._engine = engine or FilterEngine()
        self._store = store or RecordStore()
        self._filters = self._engine.default_filter_set()
        self._view = self._engine.apply(self._store.records, self._filters)
        self._status = Status.IDLE
        self._error: Optional[str] = None
        self._operation: Optional[str] = None
        self._observers: list[StateObserver] = []

    @property
    def state(self) -> DashboardState:
        return DashboardState(
            records=self._store.records,
            view=self._view,
            filters=dict(self._filters),
            status=self._status,
            error=self._error,
        )

    @property
    def is_busy(self) -> bool:
        return self._status is Status.LOADING

    @property
    def current_operation(self) -> Optional[str]:
        """Name of the remote operation in flight, if any."""

        return self._operation

    @property
    def engine(self) -> FilterEngine:
        return self._engine

    def subscribe(self, observer: StateObserver) -> Callable[[], None]:
        """Register a state observer and return a callable that removes it."""

        self._observers.append(observer)

        def _unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return _unsubscribe

    async def fetch(self) -> OperationResult:
        """Replace the canonical set with the authoritative store contents."""

        return await self._run_exclusive("fetch", self._fetch_records, FetchError)

    async def clear(self, confirm: ConfirmPort) -> OperationResult:
        """Delete every remote record after an explicit confirmation."""

        if self.is_busy:
            LOGGER.debug("Clear rejected: another operation is in flight")
            return OperationResult.REJECTED
        if not await confirm():
            LOGGER.info("Clear declined by user")
            return OperationResult.DECLINED
        # Something may have started while the confirmation was pending.
        result = await self._run_exclusive("clear", self._delete_records, DeleteError)
        if result is OperationResult.COMPLETED:
            await self.fetch()
        return result

    async def trigger_automation(self, text: str) -> OperationResult:
        """Start the external scraping workflow for the given input."""

        if not text or not text.strip():
            return OperationResult.SKIPPED
        return await self._run_exclusive(
            "trigger", lambda: self._automation.trigger(text), TriggerError
        )

    def toggle_filter(self, name: str) -> DashboardState:
        if name not in self._filters:
            raise KeyError(f"Unknown filter: {name}")
        self._filters[name] = not self._filters[name]
        self._rederive()
        self._publish()
        return self.state

    def show_all(self) -> DashboardState:
        self._filters = self._engine.default_filter_set()
        self._rederive()
        self._publish()
        return self.state

    def report_error(self, message: str) -> bool:
        """Show a failure that happened outside any operation, such as a lost change channel.

        Returns False without changing anything while an operation is in flight.
        """

        if self.is_busy:
            return False
        LOGGER.warning("Reported error: %s", message)
        self._set_status(Status.ERROR, message)
        return True

    async def _fetch_records(self) -> None:
        records = tuple(await self._source.fetch_all())
        # Derive first so a failing filter leaves records and view untouched.
        view = self._engine.apply(records, self._filters)
        self._store.replace(records)
        self._view = view
        LOGGER.info("Fetched %s contacts (%s in view)", len(self._store), len(self._view))

    async def _delete_records(self) -> None:
        await self._source.delete_all()
        self._store.clear()
        self._rederive()
        LOGGER.info("Cleared all contacts")

    async def _run_exclusive(
        self,
        name: str,
        operation: Callable[[], Awaitable[None]],
        error_type: Type[DashboardError],
    ) -> OperationResult:
        # The check and the switch to loading happen before the first await,
        # which makes them atomic on the event loop.
        if self._status is Status.LOADING:
            LOGGER.debug("%s rejected: another operation is in flight", name.capitalize())
            return OperationResult.REJECTED

        previous = (self._status, self._error)
        self._operation = name
        self._set_status(Status.LOADING)
        try:
            await operation()
        except asyncio.CancelledError:
            self._finish(*previous)
            raise
        except DashboardError as exc:
            LOGGER.warning("%s failed: %s", name.capitalize(), exc.message)
            self._finish(Status.ERROR, exc.message)
            return OperationResult.FAILED
        except Exception as exc:
            LOGGER.exception("Unexpected error during %s", name)
            self._finish(Status.ERROR, str(exc) or error_type.default_message)
            return OperationResult.FAILED

        self._finish(Status.IDLE)
        return OperationResult.COMPLETED

    def _finish(self, status: Status, error: Optional[str] = None) -> None:
        self._operation = None
        self._set_status(status, error)

    def _rederive(self) -> None:
        self._view = self._engine.apply(self._store.records, self._filters)

    def _set_status(self, status: Status, error: Optional[str] = None) -> None:
        self._status = status
        self._error = error if status is Status.ERROR else None
        self._publish()

    def _publish(self) -> None:
        snapshot = self.state
        for observer in list(self._observers):
            try:
                observer(snapshot)
            except Exception:
                LOGGER.exception("State observer failed")
