"""Spreadsheet writer adapter.

Implements the core SpreadsheetWriterPort with pandas; the .xlsx output is
produced by the openpyxl engine.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping, Sequence

import pandas as pd


class PandasSpreadsheetWriter:
    """Writes rows to a single-sheet workbook, one row per record."""

    def write(
        self,
        rows: Sequence[Mapping[str, Any]],
        columns: Sequence[str],
        path: Path,
        sheet_name: str,
    ) -> None:
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        frame = pd.DataFrame(list(rows), columns=list(columns))
        frame.to_excel(path, sheet_name=sheet_name, index=False, engine="openpyxl")
