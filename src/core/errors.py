"""Error taxonomy for remote operations.

Every error carries a human-readable message; the coordinator surfaces it
verbatim as the dashboard status.
"""

from __future__ import annotations


class DashboardError(Exception):
    """Base class for failures of remote dashboard operations."""

    default_message = "Operation failed"

    def __init__(self, message: str | None = None) -> None:
        self.message = message or self.default_message
        super().__init__(self.message)


class FetchError(DashboardError):
    default_message = "Failed to fetch contacts"


class DeleteError(DashboardError):
    default_message = "Failed to delete contacts"


class TriggerError(DashboardError):
    default_message = "Failed to trigger automation"
