"""Exception types shared across clients, sync and CLI."""

from typing import Optional


class QuoteSyncError(Exception):
    """Base class for errors raised by quote-sync."""


class ConfigError(QuoteSyncError):
    """Required configuration is missing or invalid."""


class RemoteAPIError(QuoteSyncError):
    """A remote service answered with a non-success status."""

    def __init__(self, service: str, status_code: int, body: str = "", path: Optional[str] = None):
        self.service = service
        self.status_code = status_code
        self.body = body
        self.path = path
        location = f" {path}" if path else ""
        super().__init__(f"{service} API error{location}: {status_code} - {body[:200]}")


class NotFoundError(RemoteAPIError):
    """The remote record does not exist (HTTP 404)."""
