"""Quote decomposition into HubSpot line items."""

from quote_sync.decompose.decomposer import build_line_item, decompose_quote, is_excluded
from quote_sync.decompose.pricing import LaborRateCache, Pricing, resolve_pricing

__all__ = [
    "LaborRateCache",
    "Pricing",
    "build_line_item",
    "decompose_quote",
    "is_excluded",
    "resolve_pricing",
]
