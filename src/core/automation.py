"""Automation workflow trigger (core domain)."""

from __future__ import annotations

import logging

from core.ports import WebhookPort

LOGGER = logging.getLogger(__name__)


class AutomationTrigger:
    """Sends a scraping job request to the automation webhook.

    Does not touch the record store; new rows arrive later through the change
    channel once the workflow writes them.
    """

    def __init__(self, webhook: WebhookPort) -> None:
        self._webhook = webhook

    async def trigger(self, text: str) -> None:
        chat_input = text.strip()
        if not chat_input:
            raise ValueError("Automation input must not be blank")
        await self._webhook.post({"chatInput": chat_input})
        LOGGER.info("Automation triggered for %r", chat_input)
