"""HubSpot CRM client: objects, property search, line-item batches and associations."""

import logging
from typing import Any, Iterator, Optional, Sequence

import httpx

from quote_sync.clients.base import RemoteClient
from quote_sync.clients.rate_limit import RateLimiter
from quote_sync.config import Settings
from quote_sync.models.records import DealRecord

logger = logging.getLogger(__name__)

DEAL_PROPERTIES = ("dealname", "simpro_quote_id", "dealstage", "closed_lost_reason", "pipeline")

# HubSpot batch endpoints accept at most 100 inputs
BATCH_SIZE = 100


def _chunks(items: Sequence[Any], size: int = BATCH_SIZE) -> Iterator[Sequence[Any]]:
    for start in range(0, len(items), size):
        yield items[start : start + size]


class HubSpotClient(RemoteClient):
    """Client for the HubSpot CRM v3/v4 object APIs."""

    service = "HubSpot"

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[httpx.Client] = None) -> "HubSpotClient":
        return cls(
            settings.hubspot_base_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {settings.hubspot_token}",
            },
            rate_limiter=RateLimiter(settings.rate_limit_hubspot),
            max_attempts=settings.max_retries,
            retry_delay=settings.retry_delay,
            timeout=settings.request_timeout,
            client=client,
        )

    # --- objects -----------------------------------------------------------

    def get_deal(self, deal_id: str, properties: Sequence[str] = DEAL_PROPERTIES) -> DealRecord:
        """Raises NotFoundError when the deal does not exist."""
        data = self.get_object("deals", deal_id, properties)
        return DealRecord(id=str(data.get("id", deal_id)), properties=data.get("properties") or {})

    def get_object(self, object_type: str, object_id: str, properties: Sequence[str] = ()) -> dict[str, Any]:
        params = {"properties": ",".join(properties)} if properties else None
        return self.get_json(f"/crm/v3/objects/{object_type}/{object_id}", params=params)

    def create_object(self, object_type: str, properties: dict[str, Any]) -> str:
        data = self.send_json("POST", f"/crm/v3/objects/{object_type}", {"properties": properties})
        return str(data["id"])

    def update_object(self, object_type: str, object_id: str, properties: dict[str, Any]) -> None:
        self.send_json("PATCH", f"/crm/v3/objects/{object_type}/{object_id}", {"properties": properties})

    def search_ids(self, object_type: str, property_name: str, value: Any, *, limit: int = 10) -> list[str]:
        """IDs of records whose property equals value (single EQ filter)."""
        body = {
            "filterGroups": [
                {"filters": [{"propertyName": property_name, "operator": "EQ", "value": str(value)}]}
            ],
            "limit": limit,
        }
        data = self.send_json("POST", f"/crm/v3/objects/{object_type}/search", body) or {}
        return [str(r["id"]) for r in data.get("results") or []]

    def search_first(self, object_type: str, property_name: str, value: Any) -> Optional[str]:
        ids = self.search_ids(object_type, property_name, value, limit=1)
        return ids[0] if ids else None

    # --- line items --------------------------------------------------------

    def list_associated_ids(self, from_type: str, from_id: str, to_type: str) -> list[str]:
        """All IDs associated to one record, following v4 paging."""
        ids: list[str] = []
        params: dict[str, Any] = {"limit": 500}
        path = f"/crm/v4/objects/{from_type}/{from_id}/associations/{to_type}"
        while True:
            data = self.get_json(path, params=params) or {}
            ids.extend(str(r["toObjectId"]) for r in data.get("results") or [])
            after = ((data.get("paging") or {}).get("next") or {}).get("after")
            if not after:
                return ids
            params = {"limit": 500, "after": after}

    def batch_create(self, object_type: str, properties_list: Sequence[dict[str, Any]]) -> list[str]:
        """Create records in chunks of 100, returning IDs in input order."""
        ids: list[str] = []
        for chunk in _chunks(properties_list):
            body = {"inputs": [{"properties": props} for props in chunk]}
            data = self.send_json("POST", f"/crm/v3/objects/{object_type}/batch/create", body) or {}
            ids.extend(str(r["id"]) for r in data.get("results") or [])
        return ids

    def batch_archive(self, object_type: str, ids: Sequence[str]) -> None:
        for chunk in _chunks(ids):
            body = {"inputs": [{"id": i} for i in chunk]}
            self.send_json("POST", f"/crm/v3/objects/{object_type}/batch/archive", body)

    # --- associations ------------------------------------------------------

    def batch_associate_default(self, from_type: str, from_id: str, to_type: str, to_ids: Sequence[str]) -> None:
        for chunk in _chunks(to_ids):
            body = {"inputs": [{"from": {"id": from_id}, "to": {"id": to_id}} for to_id in chunk]}
            self.send_json("POST", f"/crm/v4/associations/{from_type}/{to_type}/batch/associate/default", body)

    def associate_default(self, from_type: str, from_id: str, to_type: str, to_id: str) -> None:
        self.send_json(
            "PUT",
            f"/crm/v4/objects/{from_type}/{from_id}/associations/default/{to_type}/{to_id}",
        )
