"""n8n webhook adapter.

Posts job requests to the scraping workflow's webhook so the core trigger
stays independent from the HTTP client.
"""

from __future__ import annotations

import asyncio
from typing import Any, Mapping

import aiohttp

from adapters.http_errors import extract_error_message, status_message
from core.config import AutomationConfig
from core.errors import TriggerError


class N8nWebhookClient:
    """Webhook adapter that satisfies the WebhookPort contract."""

    def __init__(
        self,
        session: aiohttp.ClientSession,
        url: str,
        config: AutomationConfig | None = None,
    ) -> None:
        self._session = session
        self._url = url
        self._config = config or AutomationConfig()

    async def post(self, payload: Mapping[str, Any]) -> None:
        """Send the payload; any failure is raised as TriggerError."""

        timeout = aiohttp.ClientTimeout(total=self._config.timeout_seconds)
        try:
            async with self._session.post(self._url, json=dict(payload), timeout=timeout) as response:
                if response.status >= 400:
                    body = await response.text()
                    raise TriggerError(extract_error_message(body) or status_message(response.status))
        except asyncio.TimeoutError as exc:
            raise TriggerError(f"Timed out after {self._config.timeout_seconds:g}s") from exc
        except aiohttp.ClientError as exc:
            raise TriggerError(str(exc) or None) from exc
