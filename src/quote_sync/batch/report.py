"""Per-record CSV report, appended and flushed one row at a time."""

import csv
import threading
from pathlib import Path
from typing import Optional, TextIO

from quote_sync.models.records import SyncResult

REPORT_FIELDS = [
    "record_id",
    "source_id",
    "name",
    "outcome",
    "reason",
    "line_items",
    "associations",
    "duration",
    "error_class",
    "error_message",
    "traceback",
]


class ReportWriter:
    """
    Writes one CSV row per SyncResult. The header is written only when the
    file is new or empty, so re-runs append to the same report.
    """

    def __init__(self, path: Path):
        self.path = Path(path)
        self._lock = threading.Lock()
        self._file: Optional[TextIO] = None
        self._writer: Optional[csv.DictWriter] = None

    def open(self) -> "ReportWriter":
        needs_header = not self.path.exists() or self.path.stat().st_size == 0
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._file = self.path.open("a", newline="", encoding="utf-8")
        self._writer = csv.DictWriter(self._file, fieldnames=REPORT_FIELDS)
        if needs_header:
            self._writer.writeheader()
            self._file.flush()
        return self

    def write(self, result: SyncResult) -> None:
        if self._writer is None or self._file is None:
            raise RuntimeError("ReportWriter is not open")
        row = result.model_dump(mode="json", include=set(REPORT_FIELDS))
        row["traceback"] = "\n".join(result.traceback)
        with self._lock:
            self._writer.writerow({k: "" if row.get(k) is None else row[k] for k in REPORT_FIELDS})
            self._file.flush()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
            self._writer = None

    def __enter__(self) -> "ReportWriter":
        return self.open()

    def __exit__(self, *exc) -> None:
        self.close()
