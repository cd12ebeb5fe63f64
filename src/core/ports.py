"""Ports (interfaces) used by the core.

Ports define the minimal contracts for the record source, change channel,
webhook, and spreadsheet adapters so that the core can be reused with
different backends and exercised with test doubles.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, Awaitable, Callable, Mapping, Optional, Protocol, Sequence

from core.models import ChangeNotification, ContactRecord

ChangeHandler = Callable[[ChangeNotification], None]

# Called with a readable message once a change channel gives up reconnecting.
ChannelLostHandler = Callable[[str], None]

# Confirmation gate used before destructive operations.
ConfirmPort = Callable[[], Awaitable[bool]]


class RecordSourcePort(Protocol):
    """Remote store operations required by the coordinator."""

    async def fetch_all(self) -> Sequence[ContactRecord]:
        ...

    async def delete_all(self) -> None:
        ...


class ChangeChannelPort(Protocol):
    """Change-notification channel scoped to the contacts dataset."""

    async def subscribe(
        self,
        handler: ChangeHandler,
        on_lost: Optional[ChannelLostHandler] = None,
    ) -> None:
        """Start delivering notifications; connection problems go to on_lost, not the caller."""

        ...

    async def unsubscribe(self) -> None:
        ...


class WebhookPort(Protocol):
    """Outbound job request to the automation endpoint."""

    async def post(self, payload: Mapping[str, Any]) -> None:
        ...


class SpreadsheetWriterPort(Protocol):
    """Writes flat rows to a single-sheet spreadsheet file."""

    def write(
        self,
        rows: Sequence[Mapping[str, Any]],
        columns: Sequence[str],
        path: Path,
        sheet_name: str,
    ) -> None:
        ...
