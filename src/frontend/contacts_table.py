"""Contacts table widget."""

from __future__ import annotations

from typing import Any, Sequence

from rich.style import Style
from rich.text import Text
from textual.widgets import DataTable

from adapters.record_formatting import DISPLAY_COLUMNS, format_cell, link_target
from core.models import ContactRecord


class ContactsTable(DataTable):
    """Read-only table of the current view, one row per contact."""

    def __init__(self, **kwargs: Any) -> None:
        super().__init__(cursor_type="row", zebra_stripes=True, **kwargs)
        self._shown: tuple[ContactRecord, ...] | None = None

    def on_mount(self) -> None:
        self._ensure_columns()

    def _ensure_columns(self) -> None:
        if self.columns:
            return
        for field, title in DISPLAY_COLUMNS:
            self.add_column(title, key=field)

    def show(self, view: Sequence[ContactRecord]) -> None:
        """Render the view; a no-op when the same snapshot is already shown."""

        snapshot = tuple(view)
        if self._shown is not None and snapshot == self._shown:
            return
        self._shown = snapshot
        self._ensure_columns()
        self.clear()
        for index, record in enumerate(snapshot):
            self.add_row(*self._cells(record), key=str(index))

    @staticmethod
    def _cells(record: ContactRecord) -> list[Any]:
        cells: list[Any] = []
        for field, _ in DISPLAY_COLUMNS:
            text = format_cell(record, field)
            url = link_target(record, field)
            if url:
                cells.append(Text(text, style=Style(link=url, underline=True)))
            else:
                cells.append(text)
        return cells
