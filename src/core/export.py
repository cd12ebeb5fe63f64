"""Spreadsheet export of the current view (core domain)."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Sequence

from core.config import ExportConfig
from core.models import CONTACT_FIELDS, ContactRecord
from core.ports import SpreadsheetWriterPort

LOGGER = logging.getLogger(__name__)


def records_to_rows(records: Sequence[ContactRecord]) -> list[dict[str, Any]]:
    """Flatten records into rows, keeping their order and field values."""

    return [record.to_row() for record in records]


class ContactExporter:
    """Writes a view snapshot to a single-sheet spreadsheet.

    Callers pass the view, never the canonical set, so the file matches what
    is on screen including active filters.
    """

    def __init__(self, writer: SpreadsheetWriterPort, config: ExportConfig | None = None) -> None:
        self._writer = writer
        self._config = config or ExportConfig()

    def export(self, view: Sequence[ContactRecord], directory: Path) -> Path:
        path = Path(directory) / self._config.filename
        rows = records_to_rows(view)
        self._writer.write(rows, CONTACT_FIELDS, path, self._config.sheet_name)
        LOGGER.info("Exported %s contacts to %s", len(rows), path)
        return path
