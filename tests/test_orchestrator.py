"""Tests for SyncOrchestrator.sync_deal against in-memory fakes."""

from unittest.mock import patch

import pytest

from quote_sync.decompose import LaborRateCache
from quote_sync.identity import IdentityResolver
from quote_sync.models import DealRow, SyncOutcome
from quote_sync.sync import SyncOptions, SyncOrchestrator

ROW = DealRow(record_id="9876", quote_id="41273", deal_name="Citizen - Solar")


def make_orchestrator(simpro, hubspot, labor_rates, **options) -> SyncOrchestrator:
    return SyncOrchestrator(
        simpro,
        hubspot,
        IdentityResolver(hubspot, simpro),
        labor_rates,
        SyncOptions(**options),
    )


@pytest.fixture
def orchestrator(fake_simpro, fake_hubspot, labor_rates: LaborRateCache) -> SyncOrchestrator:
    return make_orchestrator(fake_simpro, fake_hubspot, labor_rates)


class TestTerminalOutcomes:
    """Early exits issue no writes to either system."""

    def test_deal_not_found(self, orchestrator, fake_simpro, fake_hubspot) -> None:
        """Deal 404 -> not_found and no mutating call anywhere."""
        result = orchestrator.sync_deal(DealRow(record_id="404", quote_id="41273"))
        assert result.outcome == SyncOutcome.NOT_FOUND
        assert result.reason == "deal_not_found"
        assert fake_hubspot.writes == []
        assert fake_simpro.calls == []

    def test_archived_duplicate_skipped(self, orchestrator, fake_simpro, fake_hubspot) -> None:
        """closedlost + Duplicate - Merged -> skipped with zero writes."""
        fake_hubspot.objects["deals"]["9876"].update(
            {"dealstage": "closedlost", "closed_lost_reason": "Duplicate - Merged"}
        )
        result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.SKIPPED
        assert result.reason == "archived_duplicate"
        assert fake_hubspot.writes == []
        assert fake_simpro.writes == []

    def test_closedlost_other_reason_is_synced(self, orchestrator, fake_hubspot) -> None:
        fake_hubspot.objects["deals"]["9876"].update({"dealstage": "closedlost", "closed_lost_reason": "Price"})
        assert orchestrator.sync_deal(ROW).outcome == SyncOutcome.SYNCED

    def test_pipeline_mismatch_skipped(self, fake_simpro, fake_hubspot, labor_rates) -> None:
        orchestrator = make_orchestrator(fake_simpro, fake_hubspot, labor_rates, pipeline_filter="residential")
        result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.SKIPPED
        assert result.reason == "pipeline_mismatch"
        assert fake_hubspot.writes == []

    def test_quote_not_found(self, orchestrator, fake_simpro, fake_hubspot) -> None:
        fake_simpro.quotes.clear()
        result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.NOT_FOUND
        assert result.reason == "quote_not_found"
        assert fake_hubspot.writes == []


class TestSuccessPath:
    """A full sync replaces line items and updates the deal."""

    def test_synced_result(self, orchestrator, fake_hubspot) -> None:
        result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.SYNCED
        assert result.ok
        assert result.line_items == 2
        assert result.associations == 2
        assert result.record_id == "9876"
        assert result.source_id == "41273"
        assert result.duration >= 0

    def test_line_items_created_and_associated(self, orchestrator, fake_hubspot) -> None:
        orchestrator.sync_deal(ROW)
        items = fake_hubspot.line_items_on("9876")
        assert [li["name"] for li in items] == ["Panel 440W", "Electrician"]
        assert items[1]["markup__"] == 0.35

    def test_no_archive_call_when_deal_has_no_line_items(self, orchestrator, fake_hubspot) -> None:
        orchestrator.sync_deal(ROW)
        assert fake_hubspot.count("batch_archive") == 0

    def test_idempotent_rerun(self, orchestrator, fake_hubspot) -> None:
        """Two runs give the same line items and the deal keeps only the latest set."""
        orchestrator.sync_deal(ROW)
        first = fake_hubspot.line_items_on("9876")
        orchestrator.sync_deal(ROW)
        second = fake_hubspot.line_items_on("9876")
        assert second == first
        assert len(fake_hubspot.objects["line_items"]) == 2
        assert fake_hubspot.count("batch_archive") == 1

    def test_deal_properties_updated(self, orchestrator, fake_hubspot) -> None:
        orchestrator.sync_deal(ROW)
        deal = fake_hubspot.objects["deals"]["9876"]
        assert deal["amount"] == 575.0
        assert deal["total_inc_tax"] == 632.5
        assert deal["quote_status"] == "Quote: Sent"
        assert deal["date_issued"] == 1741910400000
        assert "quote_due_date" not in deal
        assert deal["sync_time"].endswith(" seconds")
        assert isinstance(deal["last_synced"], int)

    def test_customer_and_site_associated(self, orchestrator, fake_hubspot) -> None:
        orchestrator.sync_deal(ROW)
        assert len(fake_hubspot.associations[("deals", "9876", "contacts")]) == 1
        assert len(fake_hubspot.associations[("deals", "9876", "p_sites")]) == 1

    def test_deal_id_written_back_once(self, orchestrator, fake_simpro) -> None:
        """The deal ID goes into quote custom field 229 only while it is unset."""
        orchestrator.sync_deal(ROW)
        orchestrator.sync_deal(ROW)
        assert fake_simpro.writes == [("set_quote_custom_field", "41273", 229, "9876")]

    def test_custom_field_properties(self, fake_simpro, fake_hubspot, labor_rates) -> None:
        fake_simpro.quotes["41273"]["CustomFields"] = [{"CustomField": {"ID": 52, "Name": "Financing"}, "Value": "Yes"}]
        orchestrator = make_orchestrator(
            fake_simpro, fake_hubspot, labor_rates, custom_field_properties={52: "financing"}
        )
        orchestrator.sync_deal(ROW)
        assert fake_hubspot.objects["deals"]["9876"]["financing"] == "Yes"


class TestModes:
    def test_dry_run_reads_only(self, fake_simpro, fake_hubspot, labor_rates) -> None:
        orchestrator = make_orchestrator(fake_simpro, fake_hubspot, labor_rates, dry_run=True)
        result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.SKIPPED
        assert result.reason == "dry_run"
        assert result.line_items == 2
        assert fake_hubspot.writes == []
        assert fake_simpro.writes == []

    def test_skip_line_items(self, fake_simpro, fake_hubspot, labor_rates) -> None:
        orchestrator = make_orchestrator(fake_simpro, fake_hubspot, labor_rates, skip_line_items=True)
        result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.SYNCED
        assert result.line_items == 0
        assert fake_hubspot.count("batch_create") == 0

    def test_skip_associations(self, fake_simpro, fake_hubspot, labor_rates) -> None:
        orchestrator = make_orchestrator(fake_simpro, fake_hubspot, labor_rates, skip_associations=True)
        result = orchestrator.sync_deal(ROW)
        assert result.associations == 0
        assert fake_hubspot.count("associate_default") == 0


class TestFailures:
    """Unexpected errors become failed results, never exceptions."""

    def test_exception_becomes_failed(self, orchestrator, fake_hubspot) -> None:
        with patch.object(fake_hubspot, "batch_create", side_effect=RuntimeError("HubSpot exploded")):
            result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.FAILED
        assert result.error_class == "RuntimeError"
        assert result.error_message == "HubSpot exploded"
        assert 0 < len(result.traceback) <= 5

    def test_association_errors_swallowed(self, orchestrator, fake_hubspot) -> None:
        with patch.object(fake_hubspot, "associate_default", side_effect=RuntimeError("nope")):
            result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.SYNCED
        assert result.associations == 0

    def test_timeline_failure_is_ignored(self, orchestrator, fake_simpro) -> None:
        with patch.object(fake_simpro, "get_quote_timeline", side_effect=RuntimeError("timeline down")):
            result = orchestrator.sync_deal(ROW)
        assert result.outcome == SyncOutcome.SYNCED
