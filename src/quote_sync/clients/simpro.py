"""Simpro REST client: quotes, jobs, customers, sites, labour rates and custom fields."""

import logging
from typing import Any, Optional

import httpx

from quote_sync.clients.base import RemoteClient
from quote_sync.clients.rate_limit import RateLimiter
from quote_sync.config import Settings
from quote_sync.errors import NotFoundError
from quote_sync.models.job import Job
from quote_sync.models.party import CustomerDetail, SiteDetail
from quote_sync.models.quote import LaborRate, Quote

logger = logging.getLogger(__name__)


class SimproClient(RemoteClient):
    """
    Client for one Simpro company API root, e.g.
    ``https://acme.simprosuite.com/api/v1.0/companies/0``.
    """

    service = "Simpro"

    @classmethod
    def from_settings(cls, settings: Settings, client: Optional[httpx.Client] = None) -> "SimproClient":
        return cls(
            settings.simpro_url,
            headers={
                "Content-Type": "application/json",
                "Authorization": f"Bearer {settings.simpro_api_key}",
            },
            rate_limiter=RateLimiter(settings.rate_limit_simpro),
            max_attempts=settings.max_retries,
            retry_delay=settings.retry_delay,
            timeout=settings.request_timeout,
            client=client,
        )

    def get_quote(self, quote_id: str | int) -> Quote:
        """
        Fetch a quote with its whole Section/CostCenter/Item tree in one call.
        Raises NotFoundError when the quote does not exist.
        """
        data = self.get_json(f"/quotes/{quote_id}", params={"display": "all"})
        return Quote.model_validate(data)

    def get_quote_timeline(self, quote_id: str | int) -> list[dict[str, Any]]:
        data = self.get_json(f"/quotes/{quote_id}/timelines/")
        return data if isinstance(data, list) else []

    def get_job(self, job_id: str | int) -> Job:
        return Job.model_validate(self.get_json(f"/jobs/{job_id}"))

    def get_customer(self, customer_id: str | int, *, is_company: Optional[bool] = None) -> CustomerDetail:
        """
        Fetch a customer. Falls back to the typed individuals/companies
        endpoint when the generic one 404s and the customer type is known.
        """
        try:
            data = self.get_json(f"/customers/{customer_id}")
        except NotFoundError:
            if is_company is None:
                raise
            kind = "companies" if is_company else "individuals"
            data = self.get_json(f"/customers/{kind}/{customer_id}")
        return CustomerDetail.model_validate(data)

    def get_site(self, site_id: str | int) -> SiteDetail:
        return SiteDetail.model_validate(self.get_json(f"/sites/{site_id}"))

    def list_labor_rates(self) -> list[LaborRate]:
        data = self.get_json("/setup/labor/laborRates/")
        return [LaborRate.model_validate(r) for r in (data or [])]

    def set_quote_custom_field(self, quote_id: str | int, field_id: int, value: Any) -> None:
        self.send_json("PATCH", f"/quotes/{quote_id}/customFields/{field_id}", {"Value": value})
        logger.info("Set custom field %s on quote %s", field_id, quote_id)

    def set_job_custom_field(self, job_id: str | int, field_id: int, value: Any) -> None:
        self.send_json("PATCH", f"/jobs/{job_id}/customFields/{field_id}", {"Value": value})
        logger.info("Set custom field %s on job %s", field_id, job_id)
