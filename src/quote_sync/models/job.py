"""Simpro job document (``GET /jobs/{id}``)."""

from typing import Any, Optional

from pydantic import Field

from quote_sync.models.quote import (
    CustomerRef,
    CustomFieldsMixin,
    Money,
    NamedRef,
    SimproModel,
    SiteRef,
    Text,
)


class PersonRef(SimproModel):
    id: Optional[int] = Field(default=None, alias="ID")
    given_name: Text = Field(default="", alias="GivenName")
    family_name: Text = Field(default="", alias="FamilyName")

    @property
    def full_name(self) -> str:
        return f"{self.given_name} {self.family_name}".strip()


class GrossMargin(SimproModel):
    percentage: Optional[float] = Field(default=None, alias="Percentage")
    estimate: Optional[float] = Field(default=None, alias="Estimate")
    revised: Optional[float] = Field(default=None, alias="Revised")


class JobTotals(SimproModel):
    invoiced_value: Optional[float] = Field(default=None, alias="InvoicedValue")
    gross_margin: Optional[GrossMargin] = Field(default=None, alias="GrossMargin")


class ConvertedQuote(SimproModel):
    id: Optional[int] = Field(default=None, alias="ID")
    date_converted: Any = Field(default=None, alias="DateConverted")
    total: Optional[Money] = Field(default=None, alias="Total")


class Job(CustomFieldsMixin):
    id: int = Field(..., alias="ID")
    name: Text = Field(default="", alias="Name")
    stage: Optional[str] = Field(default=None, alias="Stage")
    status: Optional[NamedRef] = Field(default=None, alias="Status")
    customer: Optional[CustomerRef] = Field(default=None, alias="Customer")
    customer_contact: Optional[PersonRef] = Field(default=None, alias="CustomerContact")
    site_contact: Optional[PersonRef] = Field(default=None, alias="SiteContact")
    site: Optional[SiteRef] = Field(default=None, alias="Site")
    salesperson: Optional[NamedRef] = Field(default=None, alias="Salesperson")
    project_manager: Optional[NamedRef] = Field(default=None, alias="ProjectManager")
    technicians: list[NamedRef] = Field(default_factory=list, alias="Technicians")
    technician: Optional[NamedRef] = Field(default=None, alias="Technician")
    total: Money = Field(default_factory=Money, alias="Total")
    totals: JobTotals = Field(default_factory=JobTotals, alias="Totals")
    converted_from_quote: Optional[ConvertedQuote] = Field(default=None, alias="ConvertedFromQuote")
    cost_centers: list[NamedRef] = Field(default_factory=list, alias="CostCenters")

    date_issued: Any = Field(default=None, alias="DateIssued")
    completed_date: Any = Field(default=None, alias="CompletedDate")
    date_modified: Any = Field(default=None, alias="DateModified")

    @property
    def display_name(self) -> str:
        """``[ID] - Name``, falling back to the site name, then ``Unnamed``."""
        label = self.name.strip() or (self.site.name.strip() if self.site else "") or "Unnamed"
        return f"[{self.id}] - {label}"

    @property
    def gross_margin_fraction(self) -> Optional[float]:
        """Gross margin as a fraction (29.42% -> 0.2942); Percentage, then Estimate, then Revised."""
        gm = self.totals.gross_margin
        if gm is None:
            return None
        for value in (gm.percentage, gm.estimate, gm.revised):
            if value is not None:
                return round(float(value) / 100.0, 4)
        return None

    @property
    def invoice_fraction(self) -> Optional[float]:
        """Invoiced value over the inc-tax total, as a fraction."""
        if self.totals.invoiced_value is None or self.total.inc_tax <= 0:
            return None
        return round(self.totals.invoiced_value / self.total.inc_tax, 4)
