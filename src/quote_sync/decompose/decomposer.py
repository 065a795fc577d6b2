"""Flatten a quote's Section -> CostCenter -> Item tree into priced line items."""

from typing import Iterator, Optional

from quote_sync.decompose.pricing import LaborRateCache, resolve_pricing
from quote_sync.models.line_item import LineItem
from quote_sync.models.quote import ITEM_TYPE_LABELS, CostCenter, PrebuildItem, Quote, QuoteItem


def is_excluded(item: QuoteItem) -> bool:
    """Negative sell prices and rebate prebuilds are never synced."""
    if round(item.sell_price.ex_tax, 2) < 0:
        return True
    return isinstance(item, PrebuildItem) and item.is_rebate


def build_line_item(
    item: QuoteItem,
    *,
    section_name: str,
    cost_center: CostCenter,
    labor_rates: LaborRateCache,
) -> LineItem:
    """Project one quote item onto the HubSpot line item property set."""
    pricing = resolve_pricing(item, labor_rates)
    price = round(item.sell_price.ex_tax, 2)
    original = item.sell_price.ex_discount_ex_tax
    primary_optional = cost_center.primary_optional
    default_billable = "Billable" if primary_optional == "Primary" else "Non-Billable"

    return LineItem(
        name=item.display_name,
        price=price,
        quantity=round(item.total.qty, 2),
        cost_center=cost_center.display_name,
        cost_center_description=cost_center.description,
        primary_optional=primary_optional,
        section=section_name,
        type=ITEM_TYPE_LABELS[item.kind],
        markup=pricing.markup,
        cost_price=pricing.cost_price,
        sku=item.sku,
        discount=item.discount,
        line_total_ex_tax=round(item.total.amount.ex_tax, 2),
        line_total_inc_tax=round(item.total.amount.inc_tax, 2),
        original_price=round(original, 2) if original is not None else price,
        source_id=str(item.id) if item.id is not None else None,
        billable_status=item.billable_status or default_billable,
    )


def iter_line_items(quote: Quote, labor_rates: Optional[LaborRateCache] = None) -> Iterator[LineItem]:
    labor_rates = labor_rates if labor_rates is not None else LaborRateCache()
    for section in quote.sections:
        for cost_center in section.cost_centers:
            for item in cost_center.items.in_sync_order():
                if is_excluded(item):
                    continue
                yield build_line_item(
                    item,
                    section_name=section.name,
                    cost_center=cost_center,
                    labor_rates=labor_rates,
                )


def decompose_quote(quote: Quote, labor_rates: Optional[LaborRateCache] = None) -> list[LineItem]:
    """
    Line items for every syncable item of the quote, in Section -> CostCenter
    -> item type (catalog, one-off, prebuild, service fee, labour) -> item order.
    Deterministic for a given quote and rate cache.
    """
    return list(iter_line_items(quote, labor_rates))
