"""Canonical contact set (core domain)."""

from __future__ import annotations

from typing import Iterable

from core.models import ContactRecord


class RecordStore:
    """Owns the canonical records from the latest successful fetch.

    Only whole-collection swaps are exposed; callers cannot patch a subset of
    records, so local state cannot drift from what the store returned.
    """

    def __init__(self) -> None:
        self._records: tuple[ContactRecord, ...] = ()

    @property
    def records(self) -> tuple[ContactRecord, ...]:
        return self._records

    def replace(self, records: Iterable[ContactRecord]) -> None:
        self._records = tuple(records)

    def clear(self) -> None:
        self._records = ()

    def __len__(self) -> int:
        return len(self._records)
