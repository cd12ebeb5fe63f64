"""Main Textual app for the Pathfinder dashboard."""

from __future__ import annotations

from typing import Any, Callable, Optional, Sequence

from rich.text import Text
from textual import on
from textual.app import App, ComposeResult
from textual.containers import Container, Horizontal, Vertical
from textual.screen import Screen
from textual.widgets import Button, Footer, Input, Static

from core.filters import FieldFilter
from core.models import DashboardState, OperationResult, Status
from services import DashboardServices

from .constants import SUPABASE_GREEN, TRIGGER_PLACEHOLDER
from .contacts_table import ContactsTable
from .modals import ClearDataScreen


class DashboardApp(App):
    """Single-page dashboard bound to a ViewCoordinator.

    The app never keeps its own copy of the data: every widget is redrawn from
    the DashboardState snapshots the coordinator publishes.
    """

    def __init__(
        self,
        services: DashboardServices,
        filters: Sequence[FieldFilter],
        **kwargs: Any,
    ) -> None:
        super().__init__(**kwargs)
        self._services = services
        self._coordinator = services.coordinator
        self._filters = list(filters)
        self._unsubscribe: Optional[Callable[[], None]] = None
        self._main_screen: Optional[Screen] = None

    BINDINGS = [
        ("ctrl+r", "refresh", "Refresh"),
        ("ctrl+e", "export", "Download Excel"),
        ("ctrl+a", "show_all", "Show All"),
        ("ctrl+q", "quit", "Quit"),
    ]

    CSS_PATH = "app.tcss"

    def compose(self) -> ComposeResult:
        with Container(id="header"):
            with Horizontal(id="header-row"):
                with Vertical(id="header-left"):
                    yield Static(self._title_text(), id="title")
                    yield Static("scraped contacts, live", classes="subtle")
                with Vertical(id="header-right"):
                    yield Static("", id="header-status")
                    yield Static("", id="header-counts", classes="subtle")

        with Vertical(id="automation"):
            yield Static("Trigger Automation", classes="section-title")
            with Horizontal(id="automation-row"):
                yield Input(placeholder=TRIGGER_PLACEHOLDER, id="chat-input")
                yield Button("Trigger", id="trigger-btn", variant="primary")

        with Vertical(id="data-panel"):
            yield Static("Data from Supabase", classes="section-title")
            yield Static("", id="error-line")
            yield Static("", id="loading-line")
            with Horizontal(id="controls"):
                yield Button("Refresh Data", id="refresh-btn")
                for item in self._filters:
                    yield Button(self._filter_label(item, False), id=f"filter-{item.name}")
                yield Button("Show All", id="show-all-btn")
                yield Button("Clear All Data", id="clear-btn", variant="error")
                yield Button("Download Excel", id="export-btn", variant="success")
            yield ContactsTable(id="contacts-table")
        yield Footer()

    def on_mount(self) -> None:
        # Modal screens sit on top of this one; widgets are always looked up here.
        self._main_screen = self.screen
        self._unsubscribe = self._coordinator.subscribe(self._render_state)
        self._render_state(self._coordinator.state)
        self.run_worker(self._coordinator.fetch(), group="operations")

    def on_unmount(self) -> None:
        self.detach()

    def detach(self) -> None:
        """Stop receiving state updates. Safe to call twice."""

        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def on_button_pressed(self, event: Button.Pressed) -> None:
        button_id = event.button.id or ""
        if button_id == "refresh-btn":
            self.action_refresh()
        elif button_id == "show-all-btn":
            self.action_show_all()
        elif button_id == "clear-btn":
            self.run_worker(self._clear(), group="operations")
        elif button_id == "export-btn":
            self.action_export()
        elif button_id == "trigger-btn":
            self._submit_trigger()
        elif button_id.startswith("filter-"):
            self._coordinator.toggle_filter(button_id[len("filter-") :])

    @on(Input.Submitted, "#chat-input")
    def _on_chat_submitted(self) -> None:
        self._submit_trigger()

    def action_refresh(self) -> None:
        self.run_worker(self._coordinator.fetch(), group="operations")

    def action_show_all(self) -> None:
        self._coordinator.show_all()

    def action_export(self) -> None:
        state = self._coordinator.state
        if not state.can_export:
            self.notify("Nothing to export", severity="warning")
            return
        try:
            path = self._services.exporter.export(state.view, self._services.export_dir)
        except OSError as exc:
            self.notify(f"Export failed: {exc.strerror or exc}", severity="error")
            return
        self.notify(f"Exported {len(state.view)} contacts to {path}")

    def _submit_trigger(self) -> None:
        text = self._chat_input().value
        if not text.strip():
            return
        self.run_worker(self._trigger(text), group="operations")

    async def _trigger(self, text: str) -> None:
        result = await self._coordinator.trigger_automation(text)
        if result is OperationResult.COMPLETED:
            self._chat_input().value = ""
            self.notify("Workflow triggered successfully!")
        elif result is OperationResult.REJECTED:
            self._notify_busy("Workflow not triggered")

    async def _clear(self) -> None:
        result = await self._coordinator.clear(self._confirm_clear)
        if result is OperationResult.REJECTED:
            self._notify_busy("Nothing was deleted")

    def _notify_busy(self, outcome: str) -> None:
        operation = self._coordinator.current_operation or "another operation"
        self.notify(f"{outcome}: {operation} in progress, try again when it finishes.", severity="warning")

    async def _confirm_clear(self) -> bool:
        # Runs inside the clear worker, which push_screen_wait requires.
        record_count = len(self._coordinator.state.records)
        return bool(await self.push_screen_wait(ClearDataScreen(record_count)))

    def _render_state(self, state: DashboardState) -> None:
        screen = self._main_screen
        if screen is None:
            return
        status = screen.query_one("#header-status", Static)
        status.remove_class("status-idle", "status-loading", "status-error")
        status.update(f"status: {state.status.value}")
        status.add_class(f"status-{state.status.value}")

        screen.query_one("#header-counts", Static).update(
            f"showing {len(state.view)} of {len(state.records)} contacts"
        )
        error_text = f"Error: {state.error}" if state.status is Status.ERROR else ""
        screen.query_one("#error-line", Static).update(error_text)
        screen.query_one("#loading-line", Static).update("Loading..." if state.is_loading else "")

        # Everything is disabled while loading, mirroring the single-flight rule.
        for button in screen.query("#controls Button").results(Button):
            button.disabled = state.is_loading
        screen.query_one("#export-btn", Button).disabled = not state.can_export
        screen.query_one("#trigger-btn", Button).disabled = state.is_loading
        screen.query_one("#chat-input", Input).disabled = state.is_loading
        for item in self._filters:
            button = screen.query_one(f"#filter-{item.name}", Button)
            button.label = self._filter_label(item, state.filters.get(item.name, False))

        screen.query_one("#contacts-table", ContactsTable).show(state.view)

    def _chat_input(self) -> Input:
        screen = self._main_screen or self.screen
        return screen.query_one("#chat-input", Input)

    @staticmethod
    def _filter_label(item: FieldFilter, active: bool) -> str:
        if active:
            return f"Remove {item.label} Filter"
        return f"Filter Non-Empty {item.label}"

    @staticmethod
    def _title_text() -> Text:
        return Text.assemble(
            ("PATH", SUPABASE_GREEN),
            ("FINDER > Dashboard", "bold"),
        )
