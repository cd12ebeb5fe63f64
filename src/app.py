"""Application entry point for the pathfinder dashboard."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

from art import tprint
from dotenv import load_dotenv

import settings
from client import StoreCredentials, load_store_credentials, load_webhook_url
from core.filters import build_filters
from core.models import OperationResult
from services import open_services

NAME = "PATHFINDER"
FONT = "tarty-1"

LOGGER = logging.getLogger(__name__)


def _print_banner() -> None:
    tprint(NAME, FONT, space=1)


class _RedactingFormatter(logging.Formatter):
    """Masks secret values (API key, webhook URL) wherever they appear in a line."""

    def __init__(self, secrets: list[str], fmt: str, datefmt: Optional[str] = None) -> None:
        super().__init__(fmt=fmt, datefmt=datefmt)
        # Longest first, so a URL containing the key is masked as a whole.
        self._secrets = sorted({secret for secret in secrets if secret}, key=len, reverse=True)

    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        for secret in self._secrets:
            line = line.replace(secret, "***")
        return line


def _collect_redaction_values(config: dict) -> list[str]:
    redact = (config or {}).get("redact", {})
    if not redact.get("enabled", False):
        return []
    return [os.environ[name] for name in redact.get("patterns", []) if os.environ.get(name)]


def _file_handler(file_cfg: dict) -> logging.Handler:
    path = Path(file_cfg.get("path", "logs/pathfinder.log"))
    if not path.is_absolute():
        path = Path(settings.PROJECT_ROOT) / path
    path.parent.mkdir(parents=True, exist_ok=True)
    return RotatingFileHandler(
        path,
        maxBytes=int(file_cfg.get("max_bytes", 5 * 1024 * 1024)),
        backupCount=int(file_cfg.get("backup_count", 5)),
        encoding="utf-8",
    )


def _configure_logging(allow_console: bool = True) -> None:
    config = settings.LOGGING or {}
    if not config.get("enabled", False):
        return

    # Secrets to redact live in .env, which may not be loaded yet.
    load_dotenv()
    level = getattr(logging, str(config.get("level", "INFO")).upper(), logging.INFO)
    formatter = _RedactingFormatter(
        _collect_redaction_values(config),
        fmt="%(asctime)s %(levelname)s %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    handlers: list[logging.Handler] = []
    # The dashboard owns the terminal, so console output is only for headless commands.
    if allow_console and config.get("console", True):
        handlers.append(logging.StreamHandler())
    file_cfg = config.get("file", {})
    if file_cfg.get("enabled", False):
        handlers.append(_file_handler(file_cfg))
    if not handlers:
        return

    for handler in handlers:
        handler.setLevel(level)
        handler.setFormatter(formatter)
    logging.basicConfig(level=level, handlers=handlers)


async def _confirm_in_terminal() -> bool:
    answer = await asyncio.to_thread(input, "Are you sure you want to delete all data? [y/N] ")
    return answer.strip().lower() in {"y", "yes"}


async def _assume_yes() -> bool:
    return True


async def _run_dashboard(credentials: StoreCredentials, webhook_url: str) -> None:
    from frontend.app import DashboardApp

    filters = build_filters(settings.FILTERS_CONFIG)
    async with open_services(credentials, webhook_url, filters) as services:
        # Subscribe before the first fetch so no change slips in between.
        async with services.listener:
            app = DashboardApp(services, filters)
            try:
                await app.run_async()
            finally:
                app.detach()


async def _run_export(
    credentials: StoreCredentials,
    webhook_url: str,
    filter_names: list[str],
    output: Optional[str],
) -> int:
    async with open_services(credentials, webhook_url) as services:
        coordinator = services.coordinator
        if await coordinator.fetch() is not OperationResult.COMPLETED:
            print(f"Error fetching data: {coordinator.state.error}")
            return 1
        for name in dict.fromkeys(filter_names):
            coordinator.toggle_filter(name)
        view = coordinator.state.view
        directory = Path(output) if output else services.export_dir
        path = services.exporter.export(view, directory)
        print(f"Exported {len(view)} of {len(coordinator.state.records)} contacts to {path}")
    return 0


async def _run_trigger(credentials: StoreCredentials, webhook_url: str, text: str) -> int:
    async with open_services(credentials, webhook_url) as services:
        coordinator = services.coordinator
        result = await coordinator.trigger_automation(text)
        if result is OperationResult.SKIPPED:
            print("Nothing to trigger: input is blank.")
            return 1
        if result is not OperationResult.COMPLETED:
            print(f"Error triggering workflow: {coordinator.state.error}")
            return 1
        print("Workflow triggered successfully!")
    return 0


async def _run_clear(credentials: StoreCredentials, webhook_url: str, assume_yes: bool) -> int:
    confirm = _assume_yes if assume_yes else _confirm_in_terminal
    async with open_services(credentials, webhook_url) as services:
        coordinator = services.coordinator
        result = await coordinator.clear(confirm)
        if result is OperationResult.DECLINED:
            print("Nothing deleted.")
            return 0
        if result is not OperationResult.COMPLETED:
            print(f"Error clearing data: {coordinator.state.error}")
            return 1
        print(f"All data cleared; {len(coordinator.state.records)} contacts remain.")
    return 0


def main(argv: Optional[list[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="pathfinder")
    subparsers = parser.add_subparsers(dest="command")

    subparsers.add_parser("run", help="Start the live dashboard")

    filter_names = [entry["name"] for entry in settings.FILTERS_CONFIG if entry.get("enabled", True)]
    export_parser = subparsers.add_parser("export", help="Export contacts to a spreadsheet")
    export_parser.add_argument(
        "--filter",
        dest="filters",
        action="append",
        default=[],
        choices=filter_names,
        help="Only export contacts with a non-empty field (repeatable)",
    )
    export_parser.add_argument("--output", help="Directory for the exported file")

    trigger_parser = subparsers.add_parser("trigger", help="Trigger the scraping workflow")
    trigger_parser.add_argument("text", help="Profession and location, e.g. 'plumbers in manchester'")

    clear_parser = subparsers.add_parser("clear", help="Delete all contacts")
    clear_parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt")

    args = parser.parse_args(argv)
    _print_banner()

    # Fail fast on configuration before touching the network or the terminal UI.
    credentials = load_store_credentials()
    webhook_url = load_webhook_url()

    if args.command == "export":
        _configure_logging()
        raise SystemExit(asyncio.run(_run_export(credentials, webhook_url, args.filters, args.output)))
    if args.command == "trigger":
        _configure_logging()
        raise SystemExit(asyncio.run(_run_trigger(credentials, webhook_url, args.text)))
    if args.command == "clear":
        _configure_logging()
        raise SystemExit(asyncio.run(_run_clear(credentials, webhook_url, args.yes)))

    _configure_logging(allow_console=False)
    LOGGER.info("Starting pathfinder dashboard")
    asyncio.run(_run_dashboard(credentials, webhook_url))


if __name__ == "__main__":
    main()
