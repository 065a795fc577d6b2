"""HubSpot line item projection and the labour-rate cache entry."""

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class LaborRateEntry(BaseModel):
    """Cost rate and markup fraction for one Simpro labour type."""

    model_config = ConfigDict(frozen=True)

    name: str
    cost_rate: float = 0.0
    markup: float = Field(default=0.0, description="Fraction, e.g. 0.35")


class LineItem(BaseModel):
    """One priced quote item, flattened for HubSpot."""

    model_config = ConfigDict(frozen=True)

    name: str
    price: float
    quantity: float
    cost_center: str = ""
    cost_center_description: str = ""
    primary_optional: str = "Primary"
    section: str = ""
    type: str
    markup: float = 0.0
    cost_price: float = 0.0
    sku: str = ""
    discount: float = 0.0
    line_total_ex_tax: float = 0.0
    line_total_inc_tax: float = 0.0
    original_price: float = 0.0
    source_id: Optional[str] = None
    billable_status: str = "Billable"

    def to_hubspot_properties(self) -> dict[str, Any]:
        """Property map keyed by the HubSpot line_items internal names."""
        return {
            "name": self.name,
            "price": self.price,
            "quantity": self.quantity,
            "costcenter": self.cost_center,
            "costcenter_description": self.cost_center_description,
            "primary_optional_cost_centre": self.primary_optional,
            "section": self.section,
            "type": self.type,
            "markup__": self.markup,
            "cost_price": self.cost_price,
            "hs_sku": self.sku,
            "item_discount": self.discount,
            "line_total__ex_tax_": self.line_total_ex_tax,
            "line_total__inc_tax_": self.line_total_inc_tax,
            "original_price_before_discount": self.original_price,
            "simpro_catalogue_id": self.source_id,
            "billable_status": self.billable_status,
        }
