"""Sync one HubSpot deal from its Simpro quote.

Per deal, in order, stopping at the first terminal outcome:

- deal missing in HubSpot (404)             -> not_found
- deal outside the configured pipeline      -> skipped
- deal closed as a merged duplicate         -> skipped
- quote missing in Simpro (404)             -> not_found
- otherwise: decompose, replace line items, update deal properties,
  associate customer and site, write the deal ID back to the quote -> synced

Any other exception becomes a failed result. Nothing is rolled back: the
next run recomputes and replaces everything, so re-running is safe.
"""

import logging
import time
import traceback
from dataclasses import dataclass, field
from typing import Any, Optional

from quote_sync.dates import to_hubspot_date
from quote_sync.decompose import LaborRateCache, decompose_quote
from quote_sync.errors import NotFoundError
from quote_sync.identity import IdentityResolver
from quote_sync.models.line_item import LineItem
from quote_sync.models.quote import Quote
from quote_sync.models.records import DealRow, SyncOutcome, SyncResult

logger = logging.getLogger(__name__)

# Frames kept from a failure's traceback for the report
TRACEBACK_DEPTH = 5


@dataclass
class SyncOptions:
    """Per-run switches for the deal sync."""

    pipeline_filter: Optional[str] = None
    dry_run: bool = False
    skip_line_items: bool = False
    skip_associations: bool = False
    quote_field_id: int = 229
    # Simpro quote custom field ID -> HubSpot deal property
    custom_field_properties: dict[int, str] = field(default_factory=dict)


def failure_result(exc: BaseException, **kwargs: Any) -> SyncResult:
    """SyncResult capturing an exception's class, message and last frames."""
    frames = traceback.format_tb(exc.__traceback__)[-TRACEBACK_DEPTH:]
    return SyncResult(
        outcome=SyncOutcome.FAILED,
        error_class=type(exc).__name__,
        error_message=str(exc),
        traceback=[f.rstrip() for f in frames],
        **kwargs,
    )


class SyncOrchestrator:
    """Applies one quote's state onto its HubSpot deal."""

    def __init__(
        self,
        simpro,
        hubspot,
        identity: IdentityResolver,
        labor_rates: LaborRateCache,
        options: Optional[SyncOptions] = None,
    ):
        self._simpro = simpro
        self._hubspot = hubspot
        self._identity = identity
        self._labor_rates = labor_rates
        self.options = options or SyncOptions()

    def sync_deal(self, row: DealRow) -> SyncResult:
        """Run the full sync for one deal/quote pair. Never raises."""
        started = time.monotonic()
        ids = {"record_id": row.record_id, "source_id": row.quote_id, "name": row.deal_name}
        try:
            result = self._sync_deal(row, started, ids)
        except Exception as e:
            logger.error("Deal %s / quote %s failed: %s: %s", row.record_id, row.quote_id, type(e).__name__, e)
            result = failure_result(e, **ids)
        return result.model_copy(update={"duration": round(time.monotonic() - started, 3)})

    def _sync_deal(self, row: DealRow, started: float, ids: dict[str, Any]) -> SyncResult:
        try:
            deal = self._hubspot.get_deal(row.record_id)
        except NotFoundError:
            logger.warning("Deal %s not found in HubSpot", row.record_id)
            return SyncResult(outcome=SyncOutcome.NOT_FOUND, reason="deal_not_found", **ids)

        pipeline_filter = self.options.pipeline_filter
        if pipeline_filter and deal.pipeline != pipeline_filter:
            logger.info("Deal %s in pipeline %s, filter is %s", deal.id, deal.pipeline, pipeline_filter)
            return SyncResult(outcome=SyncOutcome.SKIPPED, reason="pipeline_mismatch", **ids)

        if deal.is_archived_duplicate:
            logger.info("Deal %s is an archived duplicate", deal.id)
            return SyncResult(outcome=SyncOutcome.SKIPPED, reason="archived_duplicate", **ids)

        try:
            quote = self._simpro.get_quote(row.quote_id)
        except NotFoundError:
            logger.warning("Quote %s not found in Simpro", row.quote_id)
            return SyncResult(outcome=SyncOutcome.NOT_FOUND, reason="quote_not_found", **ids)

        timeline = self._fetch_timeline(row.quote_id)
        line_items = decompose_quote(quote, self._labor_rates)

        if self.options.dry_run:
            logger.info("Dry run: deal %s would get %d line items", deal.id, len(line_items))
            return SyncResult(
                outcome=SyncOutcome.SKIPPED,
                reason="dry_run",
                line_items=len(line_items),
                **ids,
            )

        if not self.options.skip_line_items:
            self.replace_line_items(deal.id, line_items)

        self._update_deal(deal.id, quote, timeline, time.monotonic() - started)

        associations = 0
        if not self.options.skip_associations:
            associations = self.associate_parties(deal.id, quote)

        self._write_back(quote, deal.id)

        return SyncResult(
            outcome=SyncOutcome.SYNCED,
            line_items=0 if self.options.skip_line_items else len(line_items),
            associations=associations,
            **ids,
        )

    def _fetch_timeline(self, quote_id: str) -> list[dict[str, Any]]:
        try:
            return self._simpro.get_quote_timeline(quote_id)
        except Exception as e:
            logger.debug("Could not fetch timeline for quote %s: %s", quote_id, e)
            return []

    def replace_line_items(self, deal_id: str, line_items: list[LineItem]) -> list[str]:
        """
        Archive every line item on the deal, then create and associate the
        fresh set. Returns the new line item IDs.
        """
        existing = self._hubspot.list_associated_ids("deals", deal_id, "line_items")
        if existing:
            self._hubspot.batch_archive("line_items", existing)
            logger.debug("Archived %d line items on deal %s", len(existing), deal_id)
        if not line_items:
            return []
        new_ids = self._hubspot.batch_create("line_items", [li.to_hubspot_properties() for li in line_items])
        self._hubspot.batch_associate_default("deals", deal_id, "line_items", new_ids)
        return new_ids

    def deal_properties(
        self,
        quote: Quote,
        timeline: list[dict[str, Any]],
        sync_seconds: float,
    ) -> dict[str, Any]:
        """Scalar deal properties derived from the quote."""
        properties: dict[str, Any] = {
            "amount": round(quote.total.ex_tax, 2),
            "total_inc_tax": round(quote.total.inc_tax, 2),
            "simpro_quote_id": str(quote.id),
            "last_synced": int(time.time() * 1000),
            "sync_time": f"{sync_seconds:.2f} seconds",
        }
        if quote.status and quote.status.name:
            properties["quote_status"] = quote.status.name
        if quote.salesperson and quote.salesperson.name:
            properties["salesperson"] = quote.salesperson.name
        if quote.project_manager and quote.project_manager.name:
            properties["project_manager"] = quote.project_manager.name

        dates = {
            "date_issued": quote.date_issued,
            "quote_due_date": quote.due_date,
            "date_approved": quote.date_approved,
            "quote_last_modified": quote.date_modified,
        }
        last_activity = max(
            (to_hubspot_date(entry.get("Date")) or 0 for entry in timeline if isinstance(entry, dict)),
            default=0,
        )
        for name, value in dates.items():
            normalized = to_hubspot_date(value)
            if normalized is not None:
                properties[name] = normalized
        if last_activity:
            properties["last_quote_activity_date"] = last_activity

        for field_id, prop in self.options.custom_field_properties.items():
            value = quote.custom_field_value(field_id)
            if value not in (None, ""):
                properties[prop] = value
        return properties

    def _update_deal(self, deal_id: str, quote: Quote, timeline: list[dict[str, Any]], sync_seconds: float) -> None:
        self._hubspot.update_object("deals", deal_id, self.deal_properties(quote, timeline, sync_seconds))

    def associate_parties(self, deal_id: str, quote: Quote) -> int:
        """Associate the quote's customer and site to the deal. Returns how many were linked."""
        linked = 0
        customer = self._identity.resolve_customer(quote.customer)
        if customer is not None and self._associate("deals", deal_id, *customer):
            linked += 1
        site_id = self._identity.resolve_site(quote.site)
        if site_id and self._associate("deals", deal_id, self._identity.site_object, site_id):
            linked += 1
        return linked

    def _associate(self, from_type: str, from_id: str, to_type: str, to_id: str) -> bool:
        try:
            self._hubspot.associate_default(from_type, from_id, to_type, to_id)
            return True
        except Exception as e:
            logger.warning("Could not associate %s %s with %s %s: %s", from_type, from_id, to_type, to_id, e)
            return False

    def _write_back(self, quote: Quote, deal_id: str) -> None:
        field_id = self.options.quote_field_id
        current = quote.custom_field_value(field_id)
        if current not in (None, "") and str(current).strip():
            return
        self._simpro.set_quote_custom_field(quote.id, field_id, deal_id)
