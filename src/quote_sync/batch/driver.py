"""Batch driver: load deal rows, run a sync callable over them, collect stats."""

import csv
import logging
import time
from collections import Counter
from concurrent.futures import ThreadPoolExecutor, as_completed
from enum import Enum
from pathlib import Path
from typing import Callable, Generic, Optional, Sequence, TypeVar

from quote_sync.batch.report import ReportWriter
from quote_sync.batch.stats import RunStats, RunSummary
from quote_sync.models.records import DealRow, SyncResult
from quote_sync.sync.orchestrator import failure_result

logger = logging.getLogger(__name__)

T = TypeVar("T")

# Deals export column headers
RECORD_ID_COLUMN = "Record ID"
DEAL_NAME_COLUMN = "Deal Name"
QUOTE_ID_COLUMN = "Simpro Quote Id"
PIPELINE_COLUMN = "Pipeline"
AMOUNT_COLUMN = "Amount"


class DuplicateMode(str, Enum):
    """How to treat several deals that point at the same quote."""

    FIRST = "first"
    ALL = "all"
    SKIP = "skip"


def _cell(row: dict[str, Optional[str]], column: str) -> str:
    return (row.get(column) or "").strip()


def load_deal_rows(path: Path, duplicates: DuplicateMode = DuplicateMode.FIRST) -> list[DealRow]:
    """
    Read a HubSpot deals export. Rows without a quote ID are dropped.
    Duplicate quote IDs are kept once (first), kept every time (all) or
    kept once with each later deal logged as skipped (skip).
    """
    duplicates = DuplicateMode(duplicates)
    rows: list[DealRow] = []
    dropped = 0
    with Path(path).open(newline="", encoding="utf-8-sig") as f:
        for raw in csv.DictReader(f):
            quote_id = _cell(raw, QUOTE_ID_COLUMN)
            record_id = _cell(raw, RECORD_ID_COLUMN)
            if not quote_id or not record_id:
                dropped += 1
                continue
            rows.append(
                DealRow(
                    record_id=record_id,
                    quote_id=quote_id,
                    deal_name=_cell(raw, DEAL_NAME_COLUMN),
                    pipeline=_cell(raw, PIPELINE_COLUMN) or None,
                    amount=_cell(raw, AMOUNT_COLUMN) or None,
                )
            )
    if dropped:
        logger.info("Dropped %d rows without a record or quote ID", dropped)

    counts = Counter(r.quote_id for r in rows)
    duplicated = {q for q, n in counts.items() if n > 1}
    if not duplicated:
        return rows
    logger.info("%d quotes are referenced by more than one deal (mode: %s)", len(duplicated), duplicates.value)

    if duplicates is DuplicateMode.ALL:
        logger.warning("Duplicate mode 'all': each referenced quote is synced once per deal")
        return rows
    seen: set[str] = set()
    first: list[DealRow] = []
    for r in rows:
        if r.quote_id in seen:
            if duplicates is DuplicateMode.SKIP:
                logger.info("Skipping deal %s: quote %s already queued", r.record_id, r.quote_id)
            continue
        seen.add(r.quote_id)
        first.append(r)
    return first


def select_rows(
    rows: Sequence[T],
    *,
    start_index: int = 0,
    end_index: Optional[int] = None,
    limit: Optional[int] = None,
) -> list[T]:
    """Rows start_index..end_index (both inclusive), then at most limit of them."""
    stop = None if end_index is None else end_index + 1
    selected = list(rows[start_index:stop])
    if limit is not None:
        selected = selected[: max(limit, 0)]
    return selected


class BatchDriver(Generic[T]):
    """
    Runs sync_one over every item, sequentially (workers=1) or on a thread
    pool. A record's exception never stops the batch. On KeyboardInterrupt,
    pending work is cancelled, the summary so far is logged and the
    interrupt is re-raised.
    """

    def __init__(
        self,
        sync_one: Callable[[T], SyncResult],
        *,
        workers: int = 1,
        report: Optional[ReportWriter] = None,
        stats: Optional[RunStats] = None,
        label: Callable[[T], str] = str,
    ):
        if workers < 1:
            raise ValueError("workers must be >= 1")
        self._sync_one = sync_one
        self.workers = workers
        self._report = report
        self.stats = stats or RunStats()
        self._label = label
        self._done = 0

    def run(self, items: Sequence[T]) -> RunSummary:
        started = time.monotonic()
        self._done = 0
        total = len(items)
        logger.info("Syncing %d records with %d worker(s)", total, self.workers)
        try:
            if self.workers == 1:
                for item in items:
                    self._record(self._safe_sync(item), total)
            else:
                self._run_pool(items, total)
        except KeyboardInterrupt:
            logger.warning("Interrupted after %d of %d records", self._done, total)
            self.log_summary(self.stats.summary(time.monotonic() - started))
            raise
        summary = self.stats.summary(time.monotonic() - started)
        self.log_summary(summary)
        return summary

    def _run_pool(self, items: Sequence[T], total: int) -> None:
        executor = ThreadPoolExecutor(max_workers=self.workers)
        try:
            futures = [executor.submit(self._safe_sync, item) for item in items]
            for future in as_completed(futures):
                self._record(future.result(), total)
        except KeyboardInterrupt:
            executor.shutdown(wait=False, cancel_futures=True)
            raise
        executor.shutdown(wait=True)

    def _safe_sync(self, item: T) -> SyncResult:
        try:
            return self._sync_one(item)
        except Exception as e:
            logger.error("Unhandled error for %s: %s: %s", self._label(item), type(e).__name__, e)
            return failure_result(e, source_id=self._label(item))

    def _record(self, result: SyncResult, total: int) -> None:
        self._done += 1
        self.stats.record(result)
        if self._report is not None:
            self._report.write(result)
        logger.info(
            "[%d/%d] %s %s -> %s%s (%.2fs)",
            self._done,
            total,
            result.record_id or "-",
            result.source_id or "-",
            result.outcome.value,
            f" ({result.reason})" if result.reason else "",
            result.duration,
        )

    @staticmethod
    def log_summary(summary: RunSummary) -> None:
        for line in summary.lines():
            logger.info(line)
