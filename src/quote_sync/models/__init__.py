"""Data models for Simpro documents, HubSpot projections and sync results."""

from quote_sync.models.job import Job
from quote_sync.models.line_item import LaborRateEntry, LineItem
from quote_sync.models.party import CustomerDetail, SiteDetail
from quote_sync.models.quote import (
    CostCenter,
    CustomerRef,
    ItemKind,
    LaborRate,
    Quote,
    QuoteItem,
    Section,
    SiteRef,
)
from quote_sync.models.records import DealRecord, DealRow, SyncOutcome, SyncResult

__all__ = [
    "CostCenter",
    "CustomerDetail",
    "CustomerRef",
    "DealRecord",
    "DealRow",
    "ItemKind",
    "Job",
    "LaborRate",
    "LaborRateEntry",
    "LineItem",
    "Quote",
    "QuoteItem",
    "Section",
    "SiteDetail",
    "SiteRef",
    "SyncOutcome",
    "SyncResult",
]
