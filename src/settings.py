"""Static configuration for pathfinder.

All user-editable settings (store, filters, export, automation, logging) live
in a single JSON file for quick edits without touching Python. Secrets stay
in the environment and are read by client.py.
"""

import json
import os

PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))

CONFIG_PATH = os.path.join(PROJECT_ROOT, "config.json")


def _load_json_config() -> dict:
    """Load config.json with a flat, user-friendly schema."""

    if not os.path.exists(CONFIG_PATH):
        raise FileNotFoundError(f"Config file not found: {CONFIG_PATH}")

    with open(CONFIG_PATH, "r", encoding="utf-8") as handle:
        return json.load(handle)


def _resolve_path(path: str) -> str:
    if os.path.isabs(path):
        return path
    return os.path.join(PROJECT_ROOT, path)


_CONFIG = _load_json_config()

# Expose the raw config for modules that need structured access.
CONFIG = _CONFIG

# Remote table, ordering, and the realtime channel name used to watch it.
_store = _CONFIG.get("store", {})
STORE_TABLE = _store.get("table", "contacts")
STORE_SCHEMA = _store.get("schema", "public")
STORE_ORDER_COLUMN = _store.get("order_column", "last_scraped_at")
STORE_CHANNEL = _store.get("channel", "contacts-changes")
STORE_TIMEOUT_SECONDS = float(_store.get("request_timeout_seconds", 30))

# Filters are registered from config; each one keeps rows with a non-blank field.
FILTERS_CONFIG = _CONFIG.get(
    "filters",
    [
        {"name": "phone", "field": "phone", "label": "Phones"},
        {"name": "email", "field": "email", "label": "Emails"},
    ],
)

# Export target. The file name stays fixed so repeated downloads overwrite.
_export = _CONFIG.get("export", {})
EXPORT_DIR = _resolve_path(_export.get("directory", "exports"))
EXPORT_FILENAME = _export.get("filename", "contacts.xlsx")
EXPORT_SHEET_NAME = _export.get("sheet_name", "Contacts")

# Webhook call budget for the scraping workflow.
_automation = _CONFIG.get("automation", {})
AUTOMATION_TIMEOUT_SECONDS = float(_automation.get("timeout_seconds", 30))

# Logging configuration (optional).
LOGGING = _CONFIG.get("logging", {})
