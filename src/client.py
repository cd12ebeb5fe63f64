"""Connection factory for pathfinder.

The Supabase credentials and webhook URL are read once and handed to the
adapters explicitly, so nothing reaches for a module-level client and tests
can substitute their own doubles.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass

import aiohttp
from dotenv import load_dotenv


@dataclass(frozen=True)
class StoreCredentials:
    url: str
    key: str


def load_store_credentials() -> StoreCredentials:
    """Read SUPABASE_URL/SUPABASE_KEY via python-dotenv to keep secrets out of the repo."""

    load_dotenv()

    url = os.getenv("SUPABASE_URL")
    key = os.getenv("SUPABASE_KEY")

    # Fail fast on missing credentials to avoid an ambiguous connection error.
    if not url or not key:
        raise RuntimeError("Missing SUPABASE_URL or SUPABASE_KEY in environment")

    return StoreCredentials(url=url, key=key)


def load_webhook_url() -> str:
    load_dotenv()

    url = os.getenv("N8N_WEBHOOK_URL")
    if not url:
        raise RuntimeError("Missing N8N_WEBHOOK_URL in environment")
    return url


def build_session() -> aiohttp.ClientSession:
    """Create the HTTP session shared by the store, realtime and webhook adapters.

    Must be called from a running event loop; the caller owns closing it.
    """

    logging.getLogger(__name__).info("Initializing HTTP session")
    return aiohttp.ClientSession()
