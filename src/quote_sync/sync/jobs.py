"""Mirror Simpro jobs onto the HubSpot job custom object."""

import logging
import time
from typing import Any, Optional

from quote_sync.dates import to_hubspot_date
from quote_sync.errors import NotFoundError
from quote_sync.identity import IdentityResolver
from quote_sync.models.job import Job
from quote_sync.models.records import SyncOutcome, SyncResult
from quote_sync.sync.orchestrator import failure_result

logger = logging.getLogger(__name__)


def _present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    return True


def build_job_properties(job: Job, pipeline_id: Optional[str] = None) -> dict[str, Any]:
    """HubSpot job properties for a Simpro job. Blank values are left out."""
    converted = job.converted_from_quote
    technicians = ", ".join(t.name for t in job.technicians if t.name)
    if not technicians and job.technician:
        technicians = job.technician.name

    values: dict[str, Any] = {
        "jobs": job.display_name,
        "simpro_job_id": str(job.id),
        "stage": job.stage,
        "job_status": job.status.name if job.status else None,
        "salesperson": job.salesperson.name if job.salesperson else None,
        "project_manager": job.project_manager.name if job.project_manager else None,
        "assigned_technicians": technicians,
        "primary_contact_name": job.customer_contact.full_name if job.customer_contact else None,
        "site_contact_name": job.site_contact.full_name if job.site_contact else None,
        "simpro_customer_id": str(job.customer.id) if job.customer and job.customer.id else None,
        "site": job.site.name if job.site else None,
        "site_id": str(job.site.id) if job.site and job.site.id else None,
        "total_price_ex_tax": job.total.ex_tax,
        "total_price_inc_tax": job.total.inc_tax,
        "invoiced_value": job.totals.invoiced_value,
        "invoice_percentage": job.invoice_fraction,
        "actual_gross_margin": job.gross_margin_fraction,
        "converted_quote_id": str(converted.id) if converted and converted.id else None,
        "job_cost_centres": "; ".join(cc.name for cc in job.cost_centers if cc.name),
    }
    if values["job_status"]:
        values["status"] = values["job_status"]
    if pipeline_id:
        values["hs_pipeline"] = pipeline_id

    dates = {
        "date_issued": job.date_issued,
        "completed_date": job.completed_date,
        "last_modified_date": job.date_modified,
        "date_converted_quote": converted.date_converted if converted else None,
    }
    for name, value in dates.items():
        values[name] = to_hubspot_date(value)

    return {k: v for k, v in values.items() if _present(v)}


class JobSynchronizer:
    """
    Creates or updates the HubSpot job for a Simpro job and links it to the
    customer, the site and the deal of the quote it was converted from.
    """

    def __init__(
        self,
        simpro,
        hubspot,
        identity: IdentityResolver,
        *,
        job_field_id: int = 262,
        job_object: str = "p_jobs",
        pipeline_id: Optional[str] = None,
    ):
        self._simpro = simpro
        self._hubspot = hubspot
        self._identity = identity
        self.job_field_id = job_field_id
        self.job_object = job_object
        self.pipeline_id = pipeline_id

    def sync_job(self, job_id: str) -> SyncResult:
        started = time.monotonic()
        ids = {"source_id": str(job_id)}
        try:
            result = self._sync_job(str(job_id), ids)
        except Exception as e:
            logger.error("Job %s failed: %s: %s", job_id, type(e).__name__, e)
            result = failure_result(e, **ids)
        return result.model_copy(update={"duration": round(time.monotonic() - started, 3)})

    def _sync_job(self, job_id: str, ids: dict[str, Any]) -> SyncResult:
        try:
            job = self._simpro.get_job(job_id)
        except NotFoundError:
            logger.warning("Job %s not found in Simpro", job_id)
            return SyncResult(outcome=SyncOutcome.NOT_FOUND, reason="job_not_found", **ids)

        properties = build_job_properties(job, self.pipeline_id)
        hubspot_id, action = self._upsert(job, properties)
        associations = self._associate(hubspot_id, job)
        return SyncResult(
            outcome=SyncOutcome.SYNCED,
            record_id=hubspot_id,
            name=job.display_name,
            reason=action,
            associations=associations,
            **ids,
        )

    def _upsert(self, job: Job, properties: dict[str, Any]) -> tuple[str, str]:
        existing = job.custom_field_value(self.job_field_id)
        existing = str(existing).strip() if existing is not None else ""
        if existing:
            try:
                self._hubspot.update_object(self.job_object, existing, properties)
                logger.info("Updated HubSpot job %s for Simpro job %s", existing, job.id)
                return existing, "updated"
            except NotFoundError:
                logger.warning("HubSpot job %s referenced by Simpro job %s is gone, recreating", existing, job.id)

        hubspot_id = self._hubspot.create_object(self.job_object, properties)
        logger.info("Created HubSpot job %s for Simpro job %s", hubspot_id, job.id)
        self._simpro.set_job_custom_field(job.id, self.job_field_id, hubspot_id)
        return hubspot_id, "created"

    def _associate(self, hubspot_id: str, job: Job) -> int:
        targets: list[tuple[str, Optional[str]]] = []
        customer = self._identity.resolve_customer(job.customer)
        if customer is not None:
            targets.append(customer)
        targets.append((self._identity.site_object, self._identity.resolve_site(job.site)))
        if job.converted_from_quote and job.converted_from_quote.id:
            targets.append(("deals", self._find_deal(job.converted_from_quote.id)))

        linked = 0
        for to_type, to_id in targets:
            if not to_id:
                continue
            try:
                self._hubspot.associate_default(self.job_object, hubspot_id, to_type, to_id)
                linked += 1
            except Exception as e:
                logger.warning("Could not associate job %s with %s %s: %s", hubspot_id, to_type, to_id, e)
        return linked

    def _find_deal(self, quote_id: int) -> Optional[str]:
        try:
            return self._hubspot.search_first("deals", "simpro_quote_id", quote_id)
        except Exception as e:
            logger.warning("Deal lookup for quote %s failed: %s", quote_id, e)
            return None
