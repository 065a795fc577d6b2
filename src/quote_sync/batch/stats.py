"""Thread-safe run statistics and the end-of-run summary."""

import math
import threading
from collections import Counter, defaultdict
from typing import Optional

from pydantic import BaseModel, Field

from quote_sync.models.records import SyncOutcome, SyncResult

# Example errors kept per exception class
ERROR_SAMPLES = 3


def percentile(values: list[float], pct: float) -> float:
    """Nearest-rank percentile of values (0 for an empty list)."""
    if not values:
        return 0.0
    ordered = sorted(values)
    rank = max(1, math.ceil(pct / 100.0 * len(ordered)))
    return ordered[min(rank, len(ordered)) - 1]


class TimingSummary(BaseModel):
    count: int = 0
    mean: float = 0.0
    min: float = 0.0
    max: float = 0.0
    p50: float = 0.0
    p90: float = 0.0
    p99: float = 0.0


class ErrorGroup(BaseModel):
    error_class: str
    count: int = 0
    samples: list[str] = Field(default_factory=list)


class RunSummary(BaseModel):
    """Immutable snapshot of a run's statistics."""

    total: int = 0
    outcomes: dict[str, int] = Field(default_factory=dict)
    line_items: int = 0
    associations: int = 0
    timing: TimingSummary = Field(default_factory=TimingSummary)
    errors: list[ErrorGroup] = Field(default_factory=list)
    elapsed: float = 0.0

    def count(self, outcome: SyncOutcome) -> int:
        return self.outcomes.get(outcome.value, 0)

    def lines(self) -> list[str]:
        """Human-readable summary, one line per entry."""
        out = [
            f"Processed {self.total} records in {self.elapsed:.1f}s",
            "  " + ", ".join(f"{o.value}: {self.count(o)}" for o in SyncOutcome),
            f"  line items created: {self.line_items}, associations created: {self.associations}",
        ]
        t = self.timing
        if t.count:
            out.append(
                f"  timing (s): mean {t.mean:.2f}, min {t.min:.2f}, max {t.max:.2f}, "
                f"p50 {t.p50:.2f}, p90 {t.p90:.2f}, p99 {t.p99:.2f}"
            )
        for group in self.errors:
            out.append(f"  {group.error_class}: {group.count}")
            for sample in group.samples:
                out.append(f"    - {sample}")
        return out


class RunStats:
    """
    Accumulates SyncResults from any number of worker threads.
    Every mutation and every snapshot happens under a single lock.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._outcomes: Counter[str] = Counter()
        self._durations: list[float] = []
        self._line_items = 0
        self._associations = 0
        self._errors: dict[str, list[str]] = defaultdict(list)
        self._error_counts: Counter[str] = Counter()

    def record(self, result: SyncResult) -> None:
        with self._lock:
            self._outcomes[result.outcome.value] += 1
            self._durations.append(result.duration)
            if result.outcome == SyncOutcome.SYNCED:
                self._line_items += result.line_items
                self._associations += result.associations
            if result.outcome == SyncOutcome.FAILED:
                error_class = result.error_class or "Exception"
                self._error_counts[error_class] += 1
                samples = self._errors[error_class]
                if len(samples) < ERROR_SAMPLES:
                    samples.append(f"{result.record_id or result.source_id}: {result.error_message}")

    def summary(self, elapsed: Optional[float] = None) -> RunSummary:
        with self._lock:
            durations = list(self._durations)
            timing = TimingSummary()
            if durations:
                timing = TimingSummary(
                    count=len(durations),
                    mean=sum(durations) / len(durations),
                    min=min(durations),
                    max=max(durations),
                    p50=percentile(durations, 50),
                    p90=percentile(durations, 90),
                    p99=percentile(durations, 99),
                )
            errors = [
                ErrorGroup(error_class=name, count=count, samples=list(self._errors[name]))
                for name, count in self._error_counts.most_common()
            ]
            return RunSummary(
                total=sum(self._outcomes.values()),
                outcomes=dict(self._outcomes),
                line_items=self._line_items,
                associations=self._associations,
                timing=timing,
                errors=errors,
                elapsed=elapsed if elapsed is not None else sum(durations),
            )
