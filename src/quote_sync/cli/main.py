"""Main CLI entry point."""

import argparse
import json
import logging
import sys
from pathlib import Path
from typing import Optional

import httpx

from quote_sync.errors import ConfigError, QuoteSyncError

logger = logging.getLogger("quote_sync")

LOG_FORMAT = "%(asctime)s %(levelname)-7s %(name)s: %(message)s"


def main(argv: Optional[list[str]] = None) -> None:
    """Parse args and dispatch to subcommands."""
    parser = argparse.ArgumentParser(prog="quote-sync", description="Simpro quote to HubSpot line item sync")
    subparsers = parser.add_subparsers(dest="command", required=True)

    # deals
    deals_parser = subparsers.add_parser("deals", help="Sync line items for deals listed in a HubSpot export")
    deals_parser.add_argument(
        "--csv",
        type=Path,
        required=True,
        help="HubSpot deals export (Record ID, Deal Name, Simpro Quote Id, Pipeline, Amount)",
    )
    deals_parser.add_argument("--start-index", type=int, default=0, help="First row to process (0-based)")
    deals_parser.add_argument("--end-index", type=int, default=None, help="Last row to process (0-based, inclusive)")
    deals_parser.add_argument("--limit", type=int, default=None, help="Process at most N rows")
    deals_parser.add_argument(
        "--pipeline",
        type=str,
        default=None,
        help="Only sync deals in this HubSpot pipeline ID",
    )
    deals_parser.add_argument(
        "--duplicates",
        default="first",
        choices=["first", "all", "skip"],
        help="Deals sharing a quote: sync the first, all of them, or none (default: first)",
    )
    deals_parser.add_argument("--workers", type=int, default=1, help="Concurrent workers (default: 1)")
    deals_parser.add_argument(
        "--dry-run",
        action="store_true",
        help="Read and decompose only; write nothing to HubSpot or Simpro",
    )
    deals_parser.add_argument("--skip-line-items", action="store_true", help="Do not replace line items")
    deals_parser.add_argument("--skip-associations", action="store_true", help="Do not associate contacts/sites")
    deals_parser.add_argument("--report", type=Path, default=None, help="Append per-deal results to this CSV")
    deals_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    # jobs
    jobs_parser = subparsers.add_parser("jobs", help="Sync Simpro jobs to the HubSpot jobs object")
    jobs_parser.add_argument("job_ids", nargs="+", metavar="JOB_ID", help="Simpro job IDs")
    jobs_parser.add_argument("--report", type=Path, default=None, help="Append per-job results to this CSV")
    jobs_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    # quote
    quote_parser = subparsers.add_parser("quote", help="Decompose one quote and print its line items")
    quote_parser.add_argument("quote_id", metavar="QUOTE_ID", help="Simpro quote ID")
    quote_parser.add_argument("--verbose", "-v", action="store_true", help="Debug logging")

    args = parser.parse_args(argv)
    _configure_logging(args.verbose)

    try:
        if args.command == "deals":
            _run_deals(args)
        elif args.command == "jobs":
            _run_jobs(args)
        elif args.command == "quote":
            _run_quote(args)
        else:
            parser.print_help()
    except ConfigError as e:
        logger.error("Configuration error: %s", e)
        raise SystemExit(1)
    except KeyboardInterrupt:
        logger.warning("Interrupted")
        raise SystemExit(1)
    except (QuoteSyncError, httpx.HTTPError, OSError) as e:
        logger.error("Fatal: %s: %s", type(e).__name__, e)
        raise SystemExit(1)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=LOG_FORMAT,
    )
    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if verbose else logging.WARNING)


def _build_clients(settings):
    from quote_sync.clients import HubSpotClient, SimproClient
    from quote_sync.identity import IdentityResolver

    simpro = SimproClient.from_settings(settings)
    hubspot = HubSpotClient.from_settings(settings)
    identity = IdentityResolver(
        hubspot,
        simpro,
        placeholder_email_domain=settings.placeholder_email_domain,
        site_object=settings.hubspot_site_object,
    )
    return simpro, hubspot, identity


def _open_report(path: Optional[Path]):
    from quote_sync.batch import ReportWriter

    return ReportWriter(path).open() if path is not None else None


def _run_deals(args: argparse.Namespace) -> None:
    """Run deals command."""
    from quote_sync.batch import BatchDriver, DuplicateMode, load_deal_rows, select_rows
    from quote_sync.config import Settings
    from quote_sync.decompose import LaborRateCache
    from quote_sync.sync import SyncOptions, SyncOrchestrator

    settings = Settings.from_env()
    rows = load_deal_rows(args.csv, DuplicateMode(args.duplicates))
    rows = select_rows(rows, start_index=args.start_index, end_index=args.end_index, limit=args.limit)
    if not rows:
        logger.warning("No deals to sync in %s", args.csv)
        return

    simpro, hubspot, identity = _build_clients(settings)
    report = _open_report(args.report)
    try:
        orchestrator = SyncOrchestrator(
            simpro,
            hubspot,
            identity,
            LaborRateCache.fetch(simpro),
            SyncOptions(
                pipeline_filter=args.pipeline,
                dry_run=args.dry_run,
                skip_line_items=args.skip_line_items,
                skip_associations=args.skip_associations,
                quote_field_id=settings.quote_hubspot_field_id,
            ),
        )
        driver = BatchDriver(
            orchestrator.sync_deal,
            workers=args.workers,
            report=report,
            label=lambda row: row.record_id,
        )
        driver.run(rows)
    finally:
        if report is not None:
            report.close()
        simpro.close()
        hubspot.close()


def _run_jobs(args: argparse.Namespace) -> None:
    """Run jobs command."""
    from quote_sync.batch import BatchDriver
    from quote_sync.config import Settings
    from quote_sync.sync import JobSynchronizer

    settings = Settings.from_env()
    simpro, hubspot, identity = _build_clients(settings)
    report = _open_report(args.report)
    try:
        synchronizer = JobSynchronizer(
            simpro,
            hubspot,
            identity,
            job_field_id=settings.job_hubspot_field_id,
            job_object=settings.hubspot_job_object,
            pipeline_id=settings.hubspot_job_pipeline_id,
        )
        BatchDriver(synchronizer.sync_job, report=report).run(args.job_ids)
    finally:
        if report is not None:
            report.close()
        simpro.close()
        hubspot.close()


def _run_quote(args: argparse.Namespace) -> None:
    """Run quote command: print the line items a sync would create."""
    from quote_sync.clients import SimproClient
    from quote_sync.config import Settings
    from quote_sync.decompose import LaborRateCache, decompose_quote

    settings = Settings.from_env()
    simpro = SimproClient.from_settings(settings)
    try:
        quote = simpro.get_quote(args.quote_id)
        line_items = decompose_quote(quote, LaborRateCache.fetch(simpro))
    finally:
        simpro.close()

    output = json.dumps(
        [li.model_dump(mode="json") for li in line_items],
        indent=2,
        default=str,
    )
    print(output)
    print(f"{len(line_items)} line items from quote {quote.id} ({quote.item_count()} items)", file=sys.stderr)


if __name__ == "__main__":
    main()
