"""Supabase record source adapter.

Implements the core RecordSourcePort against the PostgREST endpoint that
Supabase exposes for each table.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Type

import aiohttp

from adapters.http_errors import extract_error_message, status_message
from core.config import StoreConfig
from core.errors import DashboardError, DeleteError, FetchError
from core.models import ContactRecord

LOGGER = logging.getLogger(__name__)


class SupabaseContactSource:
    """Thin PostgREST client that satisfies the RecordSourcePort contract."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        base_url: str,
        api_key: str,
        config: StoreConfig | None = None,
    ) -> None:
        self._session = session
        self._base_url = base_url.rstrip("/")
        self._api_key = api_key
        self._config = config or StoreConfig()

    def _endpoint(self) -> str:
        return f"{self._base_url}/rest/v1/{self._config.table}"

    def _headers(self) -> dict[str, str]:
        # Credentials go on each request rather than the session, which is
        # shared with the webhook adapter.
        return {
            "apikey": self._api_key,
            "Authorization": f"Bearer {self._api_key}",
            "Accept-Profile": self._config.schema,
            "Content-Profile": self._config.schema,
        }

    def _timeout(self) -> aiohttp.ClientTimeout:
        return aiohttp.ClientTimeout(total=self._config.request_timeout_seconds)

    async def fetch_all(self) -> list[ContactRecord]:
        """Return every contact, most recently scraped first."""

        params = {"select": "*", "order": f"{self._config.order_column}.desc"}
        rows = await self._request("GET", params, FetchError)
        if not isinstance(rows, list):
            raise FetchError("Unexpected response from store")
        try:
            return [ContactRecord.from_row(row) for row in rows]
        except (KeyError, TypeError, ValueError) as exc:
            raise FetchError(f"Malformed contact row: {exc}") from exc

    async def delete_all(self) -> None:
        """Delete every contact.

        PostgREST refuses unfiltered deletes, so an always-true filter on the
        id column selects the whole table.
        """

        await self._request("DELETE", {"id": "neq.0"}, DeleteError, prefer="return=minimal")

    async def _request(
        self,
        method: str,
        params: dict[str, str],
        error_type: Type[DashboardError],
        prefer: str | None = None,
    ) -> Any:
        headers = self._headers()
        if prefer:
            headers["Prefer"] = prefer
        try:
            async with self._session.request(
                method,
                self._endpoint(),
                params=params,
                headers=headers,
                timeout=self._timeout(),
            ) as response:
                body = await response.text()
                if response.status >= 400:
                    raise error_type(extract_error_message(body) or status_message(response.status))
                LOGGER.debug("%s %s -> %s", method, self._config.table, response.status)
                if not body:
                    return None
                try:
                    return json.loads(body)
                except ValueError as exc:
                    raise error_type("Invalid JSON in store response") from exc
        except asyncio.TimeoutError as exc:
            raise error_type(f"Timed out after {self._config.request_timeout_seconds:g}s") from exc
        except aiohttp.ClientError as exc:
            raise error_type(str(exc) or None) from exc
