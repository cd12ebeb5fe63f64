"""Shared display formatting for contact records.

Keeping formatting here prevents drift between the dashboard table and the
headless CLI output.
"""

from __future__ import annotations

from datetime import datetime
from typing import Optional

from core.models import ContactRecord

PLACEHOLDER = "-"

# Column order shown to the user; id is internal and not displayed.
DISPLAY_COLUMNS = (
    ("business_name", "Business Name"),
    ("email", "Email"),
    ("phone", "Phone"),
    ("website", "Website"),
    ("address", "Address"),
    ("source_url", "Source URL"),
    ("last_scraped_at", "Last Scraped At"),
)

LINK_FIELDS = {"website", "source_url"}


def format_text(value: Optional[str]) -> str:
    """Return the value, or the placeholder when missing or blank."""

    if value is None or not value.strip():
        return PLACEHOLDER
    return value


def format_timestamp(value: Optional[datetime]) -> str:
    """Render a timestamp in local time using the locale's date/time format."""

    if value is None:
        return PLACEHOLDER
    return value.astimezone().strftime("%x %X")


def link_target(record: ContactRecord, field: str) -> Optional[str]:
    """Return the URL to open for a link column, if one is present."""

    if field not in LINK_FIELDS:
        return None
    value = getattr(record, field)
    if value is None or not value.strip():
        return None
    return value.strip()


def format_cell(record: ContactRecord, field: str) -> str:
    if field == "last_scraped_at":
        return format_timestamp(record.last_scraped_at)
    return format_text(getattr(record, field))


def format_row(record: ContactRecord) -> tuple[str, ...]:
    """Return display strings for every column in DISPLAY_COLUMNS order."""

    return tuple(format_cell(record, field) for field, _ in DISPLAY_COLUMNS)
