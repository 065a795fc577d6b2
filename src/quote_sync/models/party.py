"""Full Simpro customer and site records, fetched when identity lookup misses."""

from typing import Optional

from pydantic import Field

from quote_sync.models.quote import SimproModel, Text


class ContactPerson(SimproModel):
    given_name: Text = Field(default="", alias="GivenName")
    family_name: Text = Field(default="", alias="FamilyName")
    email: Text = Field(default="", alias="Email")
    phone: Text = Field(default="", alias="Phone")
    cell_phone: Text = Field(default="", alias="CellPhone")


class CustomerDetail(SimproModel):
    """``GET /customers/{id}`` for individuals and companies alike."""

    id: int = Field(..., alias="ID")
    given_name: Text = Field(default="", alias="GivenName")
    family_name: Text = Field(default="", alias="FamilyName")
    company_name: Text = Field(default="", alias="CompanyName")
    email: Text = Field(default="", alias="Email")
    phone: Text = Field(default="", alias="Phone")
    cell_phone: Text = Field(default="", alias="CellPhone")
    website: Text = Field(default="", alias="Website")
    contact_person: Optional[ContactPerson] = Field(default=None, alias="ContactPerson")

    @property
    def best_email(self) -> str:
        """Contact person's email when present, else the customer's own."""
        if self.contact_person and self.contact_person.email.strip():
            return self.contact_person.email.strip()
        return self.email.strip()

    def _person_field(self, name: str) -> str:
        if self.contact_person is not None:
            value = getattr(self.contact_person, name)
            if value:
                return value
        return getattr(self, name)

    @property
    def first_name(self) -> str:
        return self._person_field("given_name")

    @property
    def last_name(self) -> str:
        return self._person_field("family_name")

    @property
    def best_phone(self) -> str:
        return self._person_field("phone")

    @property
    def mobile(self) -> str:
        return self._person_field("cell_phone")


class Address(SimproModel):
    address: Text = Field(default="", alias="Address")
    city: Text = Field(default="", alias="City")
    state: Text = Field(default="", alias="State")
    postal_code: Text = Field(default="", alias="PostalCode")
    country: Text = Field(default="", alias="Country")


class SiteDetail(SimproModel):
    """``GET /sites/{id}``."""

    id: int = Field(..., alias="ID")
    name: Text = Field(default="", alias="Name")
    address: Address = Field(default_factory=Address, alias="Address")
