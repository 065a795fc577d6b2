"""Batch input rows, HubSpot deal snapshots and per-record sync results."""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field

ARCHIVED_STAGE = "closedlost"
ARCHIVED_REASON = "Duplicate - Merged"


class DealRow(BaseModel):
    """One row of the HubSpot deals export: which deal mirrors which quote."""

    record_id: str
    quote_id: str
    deal_name: str = ""
    pipeline: Optional[str] = None
    amount: Optional[str] = None


class DealRecord(BaseModel):
    """HubSpot deal as returned by ``GET /crm/v3/objects/deals/{id}``."""

    id: str
    properties: dict[str, Any] = Field(default_factory=dict)

    def prop(self, name: str) -> Any:
        return self.properties.get(name)

    @property
    def pipeline(self) -> Optional[str]:
        return self.prop("pipeline")

    @property
    def is_archived_duplicate(self) -> bool:
        """True for deals closed as merged duplicates of another deal."""
        return (
            self.prop("dealstage") == ARCHIVED_STAGE
            and self.prop("closed_lost_reason") == ARCHIVED_REASON
        )


class SyncOutcome(str, Enum):
    SYNCED = "synced"
    SKIPPED = "skipped"
    NOT_FOUND = "not_found"
    FAILED = "failed"


class SyncResult(BaseModel):
    """Terminal outcome of syncing one deal/quote pair or one job."""

    outcome: SyncOutcome
    record_id: Optional[str] = None
    source_id: Optional[str] = None
    name: str = ""
    reason: Optional[str] = None
    line_items: int = 0
    associations: int = 0
    duration: float = 0.0
    error_class: Optional[str] = None
    error_message: Optional[str] = None
    traceback: list[str] = Field(default_factory=list)

    @property
    def ok(self) -> bool:
        return self.outcome == SyncOutcome.SYNCED
