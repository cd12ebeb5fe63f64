"""Shared helpers for turning HTTP failures into readable messages.

Supabase (PostgREST) and n8n both answer errors with a JSON object carrying a
`message` field, so one extractor serves every adapter.
"""

from __future__ import annotations

import json
from typing import Optional


def extract_error_message(body: str) -> Optional[str]:
    """Return the structured `message` field of an error body, if any."""

    if not body:
        return None
    try:
        payload = json.loads(body)
    except ValueError:
        return None
    if not isinstance(payload, dict):
        return None
    message = payload.get("message")
    if isinstance(message, str) and message.strip():
        return message.strip()
    return None


def status_message(status: int) -> str:
    """Fallback message when the body carries nothing useful."""

    return f"Request failed with status code {status}"
