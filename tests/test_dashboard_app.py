from __future__ import annotations

import asyncio
from pathlib import Path
from typing import Any, Mapping

from core.automation import AutomationTrigger
from core.coordinator import ViewCoordinator
from core.export import ContactExporter
from core.filters import FilterEngine
from core.listener import ChangeListener
from core.models import ContactRecord
from frontend.app import DashboardApp
from services import DashboardServices


class GatedSource:
    def __init__(self) -> None:
        self.gate = asyncio.Event()
        self.delete_calls = 0

    async def fetch_all(self) -> list[ContactRecord]:
        await self.gate.wait()
        return [ContactRecord(id=1, phone="555")]

    async def delete_all(self) -> None:
        self.delete_calls += 1


class NullWebhook:
    def __init__(self) -> None:
        self.payloads: list[Mapping[str, Any]] = []

    async def post(self, payload: Mapping[str, Any]) -> None:
        self.payloads.append(payload)


class NullChannel:
    async def subscribe(self, handler, on_lost=None) -> None:
        return None

    async def unsubscribe(self) -> None:
        return None


class NullWriter:
    def write(self, rows, columns, path, sheet_name) -> None:
        return None


def _build(source: GatedSource, webhook: NullWebhook):
    engine = FilterEngine()
    coordinator = ViewCoordinator(source=source, automation=AutomationTrigger(webhook), engine=engine)
    services = DashboardServices(
        coordinator=coordinator,
        listener=ChangeListener(coordinator, NullChannel()),
        exporter=ContactExporter(NullWriter()),
        export_dir=Path("exports"),
    )
    app = DashboardApp(services, engine.filters)
    notes: list[tuple[str, str]] = []
    app.notify = lambda message, severity="information", **kwargs: notes.append((message, severity))
    return coordinator, app, notes


def test_clear_while_busy_tells_the_user_nothing_was_deleted() -> None:
    source = GatedSource()
    webhook = NullWebhook()

    async def scenario() -> list[tuple[str, str]]:
        coordinator, app, notes = _build(source, webhook)
        refresh = asyncio.create_task(coordinator.fetch())
        await asyncio.sleep(0)

        await app._clear()

        source.gate.set()
        await refresh
        return notes

    notes = asyncio.run(scenario())

    assert source.delete_calls == 0
    assert notes == [("Nothing was deleted: fetch in progress, try again when it finishes.", "warning")]


def test_trigger_while_busy_is_reported() -> None:
    source = GatedSource()
    webhook = NullWebhook()

    async def scenario() -> list[tuple[str, str]]:
        coordinator, app, notes = _build(source, webhook)
        refresh = asyncio.create_task(coordinator.fetch())
        await asyncio.sleep(0)

        await app._trigger("plumbers in manchester")

        source.gate.set()
        await refresh
        return notes

    notes = asyncio.run(scenario())

    assert webhook.payloads == []
    assert notes == [("Workflow not triggered: fetch in progress, try again when it finishes.", "warning")]
