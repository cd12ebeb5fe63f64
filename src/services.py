"""Wiring of adapters into the core for one dashboard session.

Everything is built explicitly from settings and credentials and torn down
together when the context exits, so no adapter outlives the HTTP session.
"""

from __future__ import annotations

import contextlib
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import AsyncIterator, Iterable, Optional

import settings
from adapters.n8n_webhook import N8nWebhookClient
from adapters.supabase_realtime import SupabaseRealtimeChannel
from adapters.supabase_rest import SupabaseContactSource
from adapters.xlsx_writer import PandasSpreadsheetWriter
from client import StoreCredentials, build_session
from core.automation import AutomationTrigger
from core.config import AutomationConfig, ExportConfig, StoreConfig
from core.coordinator import ViewCoordinator
from core.export import ContactExporter
from core.filters import FieldFilter, FilterEngine, build_filters
from core.listener import ChangeListener

LOGGER = logging.getLogger(__name__)


@dataclass
class DashboardServices:
    coordinator: ViewCoordinator
    listener: ChangeListener
    exporter: ContactExporter
    export_dir: Path


def store_config_from_settings() -> StoreConfig:
    return StoreConfig(
        table=settings.STORE_TABLE,
        schema=settings.STORE_SCHEMA,
        order_column=settings.STORE_ORDER_COLUMN,
        channel=settings.STORE_CHANNEL,
        request_timeout_seconds=settings.STORE_TIMEOUT_SECONDS,
    )


def export_config_from_settings() -> ExportConfig:
    return ExportConfig(filename=settings.EXPORT_FILENAME, sheet_name=settings.EXPORT_SHEET_NAME)


@contextlib.asynccontextmanager
async def open_services(
    credentials: StoreCredentials,
    webhook_url: str,
    filters: Optional[Iterable[FieldFilter]] = None,
) -> AsyncIterator[DashboardServices]:
    """Yield wired services; the listener is left for the caller to start."""

    store_config = store_config_from_settings()
    if filters is None:
        filters = build_filters(settings.FILTERS_CONFIG)

    async with build_session() as session:
        source = SupabaseContactSource(session, credentials.url, credentials.key, store_config)
        channel = SupabaseRealtimeChannel(session, credentials.url, credentials.key, store_config)
        webhook = N8nWebhookClient(
            session,
            webhook_url,
            AutomationConfig(timeout_seconds=settings.AUTOMATION_TIMEOUT_SECONDS),
        )
        coordinator = ViewCoordinator(
            source=source,
            automation=AutomationTrigger(webhook),
            engine=FilterEngine(filters),
        )
        services = DashboardServices(
            coordinator=coordinator,
            listener=ChangeListener(coordinator, channel),
            exporter=ContactExporter(PandasSpreadsheetWriter(), export_config_from_settings()),
            export_dir=Path(settings.EXPORT_DIR),
        )
        LOGGER.info("Services ready for table %s", store_config.table)
        try:
            yield services
        finally:
            # No-op when the caller already stopped the listener.
            await services.listener.stop()
