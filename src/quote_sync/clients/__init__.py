"""HTTP clients for the Simpro and HubSpot APIs."""

from quote_sync.clients.base import RemoteClient
from quote_sync.clients.hubspot import HubSpotClient
from quote_sync.clients.rate_limit import RateLimiter
from quote_sync.clients.simpro import SimproClient

__all__ = ["HubSpotClient", "RateLimiter", "RemoteClient", "SimproClient"]
