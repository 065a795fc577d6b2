"""Cost price and markup resolution per quote item."""

import logging
from typing import Iterable, Mapping, NamedTuple, Optional

from quote_sync.models.line_item import LaborRateEntry
from quote_sync.models.quote import ItemKind, LaborRate, QuoteItem

logger = logging.getLogger(__name__)


class Pricing(NamedTuple):
    cost_price: float
    markup: float


class LaborRateCache:
    """
    Labour rates keyed by labour-type name, fetched once per batch run.
    Read-only after construction, so workers share it without locking.
    Two rates with the same name collapse to the last one listed.
    """

    def __init__(self, entries: Optional[Mapping[str, LaborRateEntry]] = None):
        self._entries: dict[str, LaborRateEntry] = dict(entries or {})

    @classmethod
    def from_rates(cls, rates: Iterable[LaborRate]) -> "LaborRateCache":
        entries: dict[str, LaborRateEntry] = {}
        for rate in rates:
            entries[rate.name] = LaborRateEntry(
                name=rate.name,
                cost_rate=round(rate.cost_rate, 2),
                markup=round(rate.markup, 4),
            )
        return cls(entries)

    @classmethod
    def fetch(cls, simpro) -> "LaborRateCache":
        """Build the cache from ``GET /setup/labor/laborRates/``."""
        cache = cls.from_rates(simpro.list_labor_rates())
        logger.info("Labour rates cached (%d rates)", len(cache))
        return cache

    def get(self, name: str) -> Optional[LaborRateEntry]:
        return self._entries.get(name)

    def __contains__(self, name: object) -> bool:
        return name in self._entries

    def __len__(self) -> int:
        return len(self._entries)


def resolve_pricing(item: QuoteItem, labor_rates: LaborRateCache) -> Pricing:
    """
    Cost price and markup fraction for one item.
    Labour items take both from the rate cache (zero when the labour type is
    unknown); every other kind uses its own BasePrice and Markup percent.
    """
    if item.kind is ItemKind.LABOR:
        entry = labor_rates.get(item.display_name)
        if entry is None:
            logger.debug("No labour rate for %r; syncing with zero margin", item.display_name)
            return Pricing(cost_price=0.0, markup=0.0)
        return Pricing(cost_price=entry.cost_rate, markup=entry.markup)
    return Pricing(cost_price=item.base_price, markup=item.markup / 100)
