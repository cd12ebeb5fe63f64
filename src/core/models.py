"""Core domain models.

These dataclasses are shared across the core and adapters to avoid tight
coupling to any store-specific row types.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Mapping, Optional, Union

CONTACT_FIELDS = (
    "id",
    "business_name",
    "email",
    "phone",
    "website",
    "address",
    "source_url",
    "last_scraped_at",
)

# Optional free-text columns; the only ones a non-blank filter can test.
TEXT_FIELDS = (
    "business_name",
    "email",
    "phone",
    "website",
    "address",
    "source_url",
)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse an ISO-8601 timestamp from the store, assuming UTC when naive."""

    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        parsed = value
    else:
        text = str(value).strip()
        # fromisoformat only accepts a trailing Z from Python 3.11 onwards.
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _optional_text(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, str):
        return value
    return str(value)


@dataclass(frozen=True)
class ContactRecord:
    """Snapshot of one scraped business contact."""

    id: Union[int, str]
    business_name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    website: Optional[str] = None
    address: Optional[str] = None
    source_url: Optional[str] = None
    last_scraped_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Mapping[str, Any]) -> "ContactRecord":
        """Build a record from a store row; unknown columns are ignored."""

        return cls(
            id=row["id"],
            business_name=_optional_text(row.get("business_name")),
            email=_optional_text(row.get("email")),
            phone=_optional_text(row.get("phone")),
            website=_optional_text(row.get("website")),
            address=_optional_text(row.get("address")),
            source_url=_optional_text(row.get("source_url")),
            last_scraped_at=parse_timestamp(row.get("last_scraped_at")),
        )

    def to_row(self) -> dict[str, Any]:
        """Return a flat row in CONTACT_FIELDS order."""

        row: dict[str, Any] = {}
        for name in CONTACT_FIELDS:
            value = getattr(self, name)
            if isinstance(value, datetime):
                value = value.isoformat()
            row[name] = value
        return row


class Status(str, Enum):
    IDLE = "idle"
    LOADING = "loading"
    ERROR = "error"


class OperationResult(str, Enum):
    """Outcome of a coordinator operation, as seen by the caller."""

    COMPLETED = "completed"
    FAILED = "failed"
    REJECTED = "rejected"
    DECLINED = "declined"
    SKIPPED = "skipped"


@dataclass(frozen=True)
class DashboardState:
    """Immutable snapshot published to state observers."""

    records: tuple[ContactRecord, ...] = ()
    view: tuple[ContactRecord, ...] = ()
    filters: Mapping[str, bool] = field(default_factory=dict)
    status: Status = Status.IDLE
    error: Optional[str] = None

    @property
    def is_loading(self) -> bool:
        return self.status is Status.LOADING

    @property
    def can_export(self) -> bool:
        return bool(self.view) and not self.is_loading


@dataclass(frozen=True)
class ChangeNotification:
    """Signal from the backing store that the dataset may have changed."""

    event_type: str = "*"
    table: Optional[str] = None
    commit_timestamp: Optional[str] = None
