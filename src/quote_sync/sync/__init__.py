"""Per-record sync of deals (from quotes) and jobs."""

from quote_sync.sync.jobs import JobSynchronizer, build_job_properties
from quote_sync.sync.orchestrator import SyncOptions, SyncOrchestrator, failure_result

__all__ = [
    "JobSynchronizer",
    "SyncOptions",
    "SyncOrchestrator",
    "build_job_properties",
    "failure_result",
]
