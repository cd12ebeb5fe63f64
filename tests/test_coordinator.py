from __future__ import annotations

import asyncio
from typing import Any, Mapping, Optional, Sequence

import pytest

from core.automation import AutomationTrigger
from core.coordinator import ViewCoordinator
from core.errors import DeleteError, FetchError, TriggerError
from core.filters import FieldFilter, FilterEngine
from core.models import ContactRecord, DashboardState, OperationResult, Status


class FakeSource:
    def __init__(self, records: Optional[Sequence[ContactRecord]] = None) -> None:
        self.records = list(records or [])
        self.fetch_calls = 0
        self.delete_calls = 0
        self.fetch_error: Optional[Exception] = None
        self.delete_error: Optional[Exception] = None
        self.gate: Optional[asyncio.Event] = None

    async def fetch_all(self) -> list[ContactRecord]:
        self.fetch_calls += 1
        if self.gate is not None:
            await self.gate.wait()
        if self.fetch_error is not None:
            raise self.fetch_error
        return list(self.records)

    async def delete_all(self) -> None:
        self.delete_calls += 1
        if self.delete_error is not None:
            raise self.delete_error
        self.records = []


class FakeWebhook:
    def __init__(self) -> None:
        self.payloads: list[Mapping[str, Any]] = []
        self.error: Optional[Exception] = None

    async def post(self, payload: Mapping[str, Any]) -> None:
        self.payloads.append(payload)
        if self.error is not None:
            raise self.error


class FakeConfirm:
    def __init__(self, answer: bool) -> None:
        self.answer = answer
        self.calls = 0

    async def __call__(self) -> bool:
        self.calls += 1
        return self.answer


def _two_records() -> list[ContactRecord]:
    return [
        ContactRecord(id=1, phone="", email="a@x.com"),
        ContactRecord(id=2, phone="555", email=""),
    ]


def _make(records: Optional[Sequence[ContactRecord]] = None):
    source = FakeSource(records if records is not None else _two_records())
    webhook = FakeWebhook()
    coordinator = ViewCoordinator(source=source, automation=AutomationTrigger(webhook))
    return coordinator, source, webhook


def test_starts_empty_and_idle() -> None:
    coordinator, _, _ = _make()
    state = coordinator.state

    assert state.records == ()
    assert state.view == ()
    assert state.filters == {"phone": False, "email": False}
    assert state.status is Status.IDLE
    assert state.error is None


def test_fetch_replaces_records_and_publishes_loading_then_idle() -> None:
    coordinator, source, _ = _make()
    published: list[DashboardState] = []
    coordinator.subscribe(published.append)

    result = asyncio.run(coordinator.fetch())

    assert result is OperationResult.COMPLETED
    assert coordinator.state.records == tuple(source.records)
    assert coordinator.state.view == tuple(source.records)
    assert [state.status for state in published] == [Status.LOADING, Status.IDLE]
    assert published[-1].records == tuple(source.records)


def test_toggle_filter_rederives_view_synchronously() -> None:
    coordinator, _, _ = _make()
    asyncio.run(coordinator.fetch())

    state = coordinator.toggle_filter("phone")

    assert [record.id for record in state.view] == [2]
    assert state.filters["phone"] is True
    assert state.status is Status.IDLE


def test_toggle_then_untoggle_narrows_and_widens() -> None:
    records = [
        ContactRecord(id=1, phone="1", email="a@x.com"),
        ContactRecord(id=2, phone="2", email=""),
        ContactRecord(id=3, phone="", email="c@x.com"),
    ]
    coordinator, _, _ = _make(records)
    asyncio.run(coordinator.fetch())

    coordinator.toggle_filter("phone")
    both = coordinator.toggle_filter("email")
    email_only = coordinator.toggle_filter("phone")

    assert [record.id for record in both.view] == [1]
    assert [record.id for record in email_only.view] == [1, 3]


def test_show_all_resets_every_filter() -> None:
    coordinator, _, _ = _make()
    asyncio.run(coordinator.fetch())
    coordinator.toggle_filter("phone")
    coordinator.toggle_filter("email")

    state = coordinator.show_all()

    assert state.filters == {"phone": False, "email": False}
    assert state.view == state.records


def test_toggle_unknown_filter_raises() -> None:
    coordinator, _, _ = _make()
    with pytest.raises(KeyError):
        coordinator.toggle_filter("fax")


def test_failed_fetch_keeps_records_and_reports_message() -> None:
    coordinator, source, _ = _make()
    asyncio.run(coordinator.fetch())
    coordinator.toggle_filter("phone")
    before = coordinator.state

    source.fetch_error = FetchError("network down")
    source.records = []
    result = asyncio.run(coordinator.fetch())

    after = coordinator.state
    assert result is OperationResult.FAILED
    assert after.status is Status.ERROR
    assert after.error == "network down"
    assert after.records == before.records
    assert after.view == before.view
    assert len(after.records) == 2


def test_unexpected_exception_becomes_error_status() -> None:
    coordinator, source, _ = _make()
    source.fetch_error = RuntimeError("boom")

    result = asyncio.run(coordinator.fetch())

    assert result is OperationResult.FAILED
    assert coordinator.state.error == "boom"


class ExplodingFilter(FieldFilter):
    def matches(self, record: ContactRecord) -> bool:
        raise RuntimeError("filter broke")


def test_failing_filter_leaves_records_and_view_in_step() -> None:
    source = FakeSource([])
    engine = FilterEngine([ExplodingFilter(name="phone", field="phone", label="Phones")])
    coordinator = ViewCoordinator(source=source, automation=AutomationTrigger(FakeWebhook()), engine=engine)
    coordinator.toggle_filter("phone")

    source.records = [ContactRecord(id=9, phone="999")]
    result = asyncio.run(coordinator.fetch())

    assert result is OperationResult.FAILED
    assert coordinator.state.error == "filter broke"
    assert coordinator.state.records == ()
    assert coordinator.state.view == ()


def test_successful_fetch_clears_previous_error() -> None:
    coordinator, source, _ = _make()
    source.fetch_error = FetchError("network down")
    asyncio.run(coordinator.fetch())

    source.fetch_error = None
    asyncio.run(coordinator.fetch())

    assert coordinator.state.status is Status.IDLE
    assert coordinator.state.error is None


def test_operations_are_rejected_while_loading() -> None:
    coordinator, source, webhook = _make()
    confirm = FakeConfirm(True)

    async def scenario() -> tuple[OperationResult, ...]:
        source.gate = asyncio.Event()
        first = asyncio.create_task(coordinator.fetch())
        await asyncio.sleep(0)
        assert coordinator.is_busy
        assert coordinator.current_operation == "fetch"

        second = await coordinator.fetch()
        cleared = await coordinator.clear(confirm)
        triggered = await coordinator.trigger_automation("plumbers in manchester")

        source.gate.set()
        return await first, second, cleared, triggered

    first, second, cleared, triggered = asyncio.run(scenario())

    assert first is OperationResult.COMPLETED
    assert (second, cleared, triggered) == (OperationResult.REJECTED,) * 3
    assert source.fetch_calls == 1
    assert source.delete_calls == 0
    assert confirm.calls == 0
    assert webhook.payloads == []
    assert coordinator.current_operation is None


def test_toggle_during_fetch_uses_existing_records() -> None:
    coordinator, source, _ = _make()
    asyncio.run(coordinator.fetch())

    async def scenario() -> DashboardState:
        source.gate = asyncio.Event()
        source.records = [ContactRecord(id=9, phone="999")]
        pending = asyncio.create_task(coordinator.fetch())
        await asyncio.sleep(0)
        during = coordinator.toggle_filter("phone")
        source.gate.set()
        await pending
        return during

    during = asyncio.run(scenario())

    assert during.status is Status.LOADING
    assert [record.id for record in during.view] == [2]
    assert [record.id for record in coordinator.state.view] == [9]


def test_blank_trigger_input_is_a_no_op() -> None:
    coordinator, source, webhook = _make()
    source.fetch_error = FetchError("network down")
    asyncio.run(coordinator.fetch())
    published: list[DashboardState] = []
    coordinator.subscribe(published.append)

    result = asyncio.run(coordinator.trigger_automation("  "))

    assert result is OperationResult.SKIPPED
    assert webhook.payloads == []
    assert published == []
    assert coordinator.state.status is Status.ERROR


def test_trigger_posts_trimmed_input_and_leaves_records() -> None:
    coordinator, _, webhook = _make()
    asyncio.run(coordinator.fetch())
    records = coordinator.state.records

    result = asyncio.run(coordinator.trigger_automation("  plumbers in manchester "))

    assert result is OperationResult.COMPLETED
    assert webhook.payloads == [{"chatInput": "plumbers in manchester"}]
    assert coordinator.state.status is Status.IDLE
    assert coordinator.state.records == records


def test_trigger_failure_surfaces_remote_message() -> None:
    coordinator, _, webhook = _make()
    webhook.error = TriggerError("Workflow is not active")

    result = asyncio.run(coordinator.trigger_automation("roofers in leeds"))

    assert result is OperationResult.FAILED
    assert coordinator.state.status is Status.ERROR
    assert coordinator.state.error == "Workflow is not active"


def test_declined_clear_changes_nothing() -> None:
    coordinator, source, _ = _make()
    asyncio.run(coordinator.fetch())
    before = coordinator.state
    confirm = FakeConfirm(False)

    result = asyncio.run(coordinator.clear(confirm))

    assert result is OperationResult.DECLINED
    assert confirm.calls == 1
    assert source.delete_calls == 0
    assert coordinator.state == before


def test_confirmed_clear_deletes_and_refetches() -> None:
    coordinator, source, _ = _make()
    asyncio.run(coordinator.fetch())

    result = asyncio.run(coordinator.clear(FakeConfirm(True)))

    assert result is OperationResult.COMPLETED
    assert source.delete_calls == 1
    assert source.fetch_calls == 2
    assert coordinator.state.records == ()
    assert coordinator.state.view == ()
    assert coordinator.state.status is Status.IDLE


def test_failed_clear_keeps_records() -> None:
    coordinator, source, _ = _make()
    asyncio.run(coordinator.fetch())
    source.delete_error = DeleteError("permission denied for table contacts")

    result = asyncio.run(coordinator.clear(FakeConfirm(True)))

    assert result is OperationResult.FAILED
    assert coordinator.state.error == "permission denied for table contacts"
    assert len(coordinator.state.records) == 2
    assert source.fetch_calls == 1


def test_cancelled_operation_restores_previous_status() -> None:
    coordinator, source, _ = _make()
    source.fetch_error = FetchError("network down")
    asyncio.run(coordinator.fetch())
    source.fetch_error = None

    async def scenario() -> None:
        source.gate = asyncio.Event()
        task = asyncio.create_task(coordinator.fetch())
        await asyncio.sleep(0)
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task

    asyncio.run(scenario())

    assert coordinator.state.status is Status.ERROR
    assert coordinator.state.error == "network down"
    assert coordinator.current_operation is None


def test_unsubscribed_observer_stops_receiving() -> None:
    coordinator, _, _ = _make()
    published: list[DashboardState] = []
    unsubscribe = coordinator.subscribe(published.append)

    coordinator.toggle_filter("email")
    unsubscribe()
    unsubscribe()
    coordinator.toggle_filter("email")

    assert len(published) == 1
