"""Core configuration dataclasses.

We keep config parsing outside the core, but these dataclasses define the
shape the core and adapters expect so the app layer can build them safely.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class StoreConfig:
    """Location of the contacts table and its change channel."""

    table: str = "contacts"
    schema: str = "public"
    order_column: str = "last_scraped_at"
    channel: str = "contacts-changes"
    request_timeout_seconds: float = 30.0


@dataclass(frozen=True)
class ExportConfig:
    """Spreadsheet export settings."""

    filename: str = "contacts.xlsx"
    sheet_name: str = "Contacts"


@dataclass(frozen=True)
class AutomationConfig:
    """Webhook call settings for the scraping workflow."""

    timeout_seconds: float = 30.0
