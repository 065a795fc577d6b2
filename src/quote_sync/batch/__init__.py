"""Batch execution, run statistics and CSV reporting."""

from quote_sync.batch.driver import BatchDriver, DuplicateMode, load_deal_rows, select_rows
from quote_sync.batch.report import ReportWriter
from quote_sync.batch.stats import RunStats, RunSummary

__all__ = [
    "BatchDriver",
    "DuplicateMode",
    "ReportWriter",
    "RunStats",
    "RunSummary",
    "load_deal_rows",
    "select_rows",
]
