"""Shared constants for the Textual UI."""

from __future__ import annotations

SUPABASE_GREEN = "#3ECF8E"
TRIGGER_PLACEHOLDER = "Enter profession and location (e.g., plumbers in manchester)"
