"""Modal dialogs for the Textual dashboard."""

from __future__ import annotations

from textual.app import ComposeResult
from textual.containers import Container, Horizontal
from textual.screen import ModalScreen
from textual.widgets import Button, Static


class ClearDataScreen(ModalScreen[bool]):
    """Ask before deleting every contact in the store. Escape counts as no."""

    BINDINGS = [("escape", "cancel", "Cancel")]

    def __init__(self, record_count: int) -> None:
        super().__init__()
        self._record_count = record_count

    def _body_text(self) -> str:
        noun = "contact" if self._record_count == 1 else "contacts"
        return (
            "Are you sure you want to delete all data? "
            f"{self._record_count} {noun} will be removed from Supabase."
        )

    def compose(self) -> ComposeResult:
        with Container(classes="modal-dialog"):
            yield Static("Clear all data", classes="modal-title")
            yield Static(self._body_text(), classes="modal-body")
            with Horizontal(classes="modal-actions"):
                yield Button("Delete", id="clear-confirm", variant="error")
                yield Button("Cancel", id="clear-cancel")

    def on_button_pressed(self, event: Button.Pressed) -> None:
        self.dismiss(event.button.id == "clear-confirm")

    def action_cancel(self) -> None:
        self.dismiss(False)
