"""Typed snapshots of Simpro quote documents (``GET /quotes/{id}?display=all``).

Field names follow the Simpro JSON payload via aliases. Every nested field is
optional: Simpro omits or nulls whole branches depending on item type and
quote state, so models default instead of failing.
"""

from abc import ABC, abstractmethod
from enum import Enum
from typing import Annotated, Any, ClassVar, Iterator, Optional, Union

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, model_validator


def _zero_if_none(value: Any) -> Any:
    return 0.0 if value is None or value == "" else value


def _blank_if_none(value: Any) -> Any:
    return "" if value is None else value


Number = Annotated[float, BeforeValidator(_zero_if_none)]
Text = Annotated[str, BeforeValidator(_blank_if_none)]


class SimproModel(BaseModel):
    """Base for read-only Simpro payload models."""

    model_config = ConfigDict(extra="ignore", frozen=True, populate_by_name=True)

    @model_validator(mode="before")
    @classmethod
    def _drop_nulls(cls, data: Any) -> Any:
        # null branches fall back to field defaults
        if isinstance(data, dict):
            return {k: v for k, v in data.items() if v is not None}
        return data


class Money(SimproModel):
    ex_tax: Number = Field(default=0.0, alias="ExTax")
    inc_tax: Number = Field(default=0.0, alias="IncTax")


class SellPrice(SimproModel):
    ex_tax: Number = Field(default=0.0, alias="ExTax")
    inc_tax: Number = Field(default=0.0, alias="IncTax")
    ex_discount_ex_tax: Optional[float] = Field(default=None, alias="ExDiscountExTax")


class ItemTotal(SimproModel):
    qty: Number = Field(default=0.0, alias="Qty")
    amount: Money = Field(default_factory=Money, alias="Amount")


class NamedRef(SimproModel):
    """``{ID, Name}`` reference used for statuses, staff and cost centres."""

    id: Optional[int] = Field(default=None, alias="ID")
    name: Text = Field(default="", alias="Name")


class PartRef(NamedRef):
    """Catalogue-style reference carrying a part number."""

    part_no: Text = Field(default="", alias="PartNo")


class PrebuildRef(PartRef):
    type: Optional[str] = Field(default=None, alias="Type")


class ItemKind(str, Enum):
    """The five typed item collections of a cost centre, in sync order."""

    CATALOG = "catalog"
    ONE_OFF = "one_off"
    PREBUILD = "prebuild"
    SERVICE_FEE = "service_fee"
    LABOR = "labor"


# HubSpot ``type`` property value per item kind
ITEM_TYPE_LABELS: dict[ItemKind, str] = {
    ItemKind.CATALOG: "Catalogue",
    ItemKind.ONE_OFF: "One-Off",
    ItemKind.PREBUILD: "Pre-Builds",
    ItemKind.SERVICE_FEE: "Service",
    ItemKind.LABOR: "Labour",
}


class BaseItem(SimproModel, ABC):
    """Numeric fields shared by every quote item kind."""

    kind: ClassVar[ItemKind]

    id: Optional[int] = Field(default=None, alias="ID")
    sell_price: SellPrice = Field(default_factory=SellPrice, alias="SellPrice")
    total: ItemTotal = Field(default_factory=ItemTotal, alias="Total")
    discount: Number = Field(default=0.0, alias="Discount")
    base_price: Number = Field(default=0.0, alias="BasePrice")
    markup: Number = Field(default=0.0, alias="Markup", description="Percent, e.g. 35 for 35%")
    billable_status: Optional[str] = Field(default=None, alias="BillableStatus")

    @property
    @abstractmethod
    def display_name(self) -> str:
        """Line item name for this item kind."""
        pass

    @property
    def part_number(self) -> str:
        return ""

    @property
    def sku(self) -> str:
        """Part number, falling back to the Simpro item ID."""
        part_no = (self.part_number or "").strip()
        if part_no:
            return part_no
        return str(self.id) if self.id is not None else ""


class CatalogItem(BaseItem):
    kind: ClassVar[ItemKind] = ItemKind.CATALOG
    catalog: PartRef = Field(default_factory=PartRef, alias="Catalog")

    @property
    def display_name(self) -> str:
        return self.catalog.name

    @property
    def part_number(self) -> str:
        return self.catalog.part_no


class OneOffItem(BaseItem):
    kind: ClassVar[ItemKind] = ItemKind.ONE_OFF
    description: Text = Field(default="", alias="Description")
    part_no: Text = Field(default="", alias="PartNo")

    @property
    def display_name(self) -> str:
        return self.description

    @property
    def part_number(self) -> str:
        return self.part_no


class PrebuildItem(BaseItem):
    kind: ClassVar[ItemKind] = ItemKind.PREBUILD
    prebuild: PrebuildRef = Field(default_factory=PrebuildRef, alias="Prebuild")

    @property
    def display_name(self) -> str:
        return self.prebuild.name

    @property
    def part_number(self) -> str:
        return self.prebuild.part_no

    @property
    def is_rebate(self) -> bool:
        return self.prebuild.type == "Rebates"


class ServiceFeeItem(BaseItem):
    kind: ClassVar[ItemKind] = ItemKind.SERVICE_FEE
    service_fee: PartRef = Field(default_factory=PartRef, alias="ServiceFee")

    @property
    def display_name(self) -> str:
        return self.service_fee.name

    @property
    def part_number(self) -> str:
        return self.service_fee.part_no


class LaborItem(BaseItem):
    kind: ClassVar[ItemKind] = ItemKind.LABOR
    labor_type: PartRef = Field(default_factory=PartRef, alias="LaborType")

    @property
    def display_name(self) -> str:
        return self.labor_type.name

    @property
    def part_number(self) -> str:
        return self.labor_type.part_no


QuoteItem = Union[CatalogItem, OneOffItem, PrebuildItem, ServiceFeeItem, LaborItem]


class CostCenterItems(SimproModel):
    catalogs: list[CatalogItem] = Field(default_factory=list, alias="Catalogs")
    one_offs: list[OneOffItem] = Field(default_factory=list, alias="OneOffs")
    prebuilds: list[PrebuildItem] = Field(default_factory=list, alias="Prebuilds")
    service_fees: list[ServiceFeeItem] = Field(default_factory=list, alias="ServiceFees")
    labors: list[LaborItem] = Field(default_factory=list, alias="Labors")

    def in_sync_order(self) -> Iterator[QuoteItem]:
        """Yield items collection by collection: catalog, one-off, prebuild, service fee, labor."""
        yield from self.catalogs
        yield from self.one_offs
        yield from self.prebuilds
        yield from self.service_fees
        yield from self.labors

    def count(self) -> int:
        return (
            len(self.catalogs)
            + len(self.one_offs)
            + len(self.prebuilds)
            + len(self.service_fees)
            + len(self.labors)
        )


class CostCenter(SimproModel):
    id: Optional[int] = Field(default=None, alias="ID")
    name: Text = Field(default="", alias="Name")
    cost_center: Optional[NamedRef] = Field(default=None, alias="CostCenter")
    description: Text = Field(default="", alias="Description")
    optional_department: bool = Field(default=False, alias="OptionalDepartment")
    items: CostCenterItems = Field(default_factory=CostCenterItems, alias="Items")

    @property
    def display_name(self) -> str:
        """Name of the linked setup cost centre, else the quote cost centre's own name."""
        if self.cost_center is not None and self.cost_center.name:
            return self.cost_center.name
        return self.name

    @property
    def primary_optional(self) -> str:
        return "Optional" if self.optional_department else "Primary"


class Section(SimproModel):
    id: Optional[int] = Field(default=None, alias="ID")
    name: Text = Field(default="", alias="Name")
    cost_centers: list[CostCenter] = Field(default_factory=list, alias="CostCenters")


class CustomFieldValue(SimproModel):
    custom_field: NamedRef = Field(default_factory=NamedRef, alias="CustomField")
    value: Any = Field(default=None, alias="Value")


class CustomerRef(SimproModel):
    id: Optional[int] = Field(default=None, alias="ID")
    type: Optional[str] = Field(default=None, alias="Type")
    company_name: Text = Field(default="", alias="CompanyName")
    given_name: Text = Field(default="", alias="GivenName")
    family_name: Text = Field(default="", alias="FamilyName")

    @property
    def is_company(self) -> bool:
        return (self.type or "").lower() == "company"


class SiteRef(NamedRef):
    pass


class CustomFieldsMixin(SimproModel):
    custom_fields: list[CustomFieldValue] = Field(default_factory=list, alias="CustomFields")

    def custom_field_value(self, field_id: int) -> Any:
        """Value of the custom field with the given setup ID, or None."""
        for cf in self.custom_fields:
            if cf.custom_field.id == field_id:
                return cf.value
        return None


class Quote(CustomFieldsMixin):
    """A Simpro quote with its full Section / CostCenter / Item tree."""

    id: int = Field(..., alias="ID")
    name: Text = Field(default="", alias="Name")
    description: Text = Field(default="", alias="Description")
    customer: Optional[CustomerRef] = Field(default=None, alias="Customer")
    site: Optional[SiteRef] = Field(default=None, alias="Site")
    status: Optional[NamedRef] = Field(default=None, alias="Status")
    salesperson: Optional[NamedRef] = Field(default=None, alias="Salesperson")
    project_manager: Optional[NamedRef] = Field(default=None, alias="ProjectManager")
    total: Money = Field(default_factory=Money, alias="Total")
    sections: list[Section] = Field(default_factory=list, alias="Sections")

    date_issued: Any = Field(default=None, alias="DateIssued")
    due_date: Any = Field(default=None, alias="DueDate")
    date_approved: Any = Field(default=None, alias="DateApproved")
    date_modified: Any = Field(default=None, alias="DateModified")

    def item_count(self) -> int:
        """Total items across all sections and cost centres (before filtering)."""
        return sum(cc.items.count() for s in self.sections for cc in s.cost_centers)


class LaborRate(SimproModel):
    """Row of ``GET /setup/labor/laborRates/``."""

    id: Optional[int] = Field(default=None, alias="ID")
    name: Text = Field(default="", alias="Name")
    cost_rate: Number = Field(default=0.0, alias="CostRate")
    markup: Number = Field(default=0.0, alias="Markup")
