"""Pytest fixtures for quote-sync tests."""

import copy
import itertools
import threading
from collections import defaultdict
from typing import Any, Optional

import pytest

from quote_sync.decompose import LaborRateCache
from quote_sync.errors import NotFoundError
from quote_sync.models import CustomerDetail, DealRecord, Job, LaborRate, Quote, SiteDetail

QUOTE_41273: dict[str, Any] = {
    "ID": 41273,
    "Name": "Residential solar 6.6kW",
    "Customer": {"ID": 501, "Type": "Customer", "GivenName": "Jane", "FamilyName": "Citizen"},
    "Site": {"ID": 77, "Name": "12 Example St"},
    "Status": {"ID": 3, "Name": "Quote: Sent"},
    "Salesperson": {"ID": 8, "Name": "Sam Seller"},
    "Total": {"ExTax": 575.0, "IncTax": 632.5},
    "DateIssued": "2025-03-14",
    "DueDate": None,
    "CustomFields": [],
    "Sections": [
        {
            "ID": 1,
            "Name": "Main",
            "CostCenters": [
                {
                    "ID": 10,
                    "Name": "Solar",
                    "CostCenter": {"ID": 4, "Name": "Solar PV"},
                    "Description": "Panels and install",
                    "OptionalDepartment": False,
                    "Items": {
                        "Catalogs": [
                            {
                                "ID": 9001,
                                "Catalog": {"ID": 300, "Name": "Panel 440W", "PartNo": "PNL-440"},
                                "SellPrice": {"ExTax": 100.0, "IncTax": 110.0},
                                "Total": {"Qty": 1, "Amount": {"ExTax": 100.0, "IncTax": 110.0}},
                                "BasePrice": 70.0,
                                "Markup": 50,
                                "Discount": 0,
                            },
                            {
                                "ID": 9002,
                                "Catalog": {"ID": 301, "Name": "Promo credit", "PartNo": None},
                                "SellPrice": {"ExTax": -5.0, "IncTax": -5.5},
                                "Total": {"Qty": 1, "Amount": {"ExTax": -5.0, "IncTax": -5.5}},
                            },
                        ],
                        "Labors": [
                            {
                                "ID": 9003,
                                "LaborType": {"ID": 2, "Name": "Electrician"},
                                "SellPrice": {"ExTax": 95.0, "IncTax": 104.5},
                                "Total": {"Qty": 5, "Amount": {"ExTax": 475.0, "IncTax": 522.5}},
                            }
                        ],
                    },
                }
            ],
        }
    ],
}

JOB_33784: dict[str, Any] = {
    "ID": 33784,
    "Name": "Battery install",
    "Stage": "Progress",
    "Status": {"ID": 12, "Name": "Job: Scheduled"},
    "Customer": {"ID": 501, "Type": "Customer", "GivenName": "Jane", "FamilyName": "Citizen"},
    "Site": {"ID": 77, "Name": "12 Example St"},
    "Technicians": [{"ID": 5, "Name": "Alex Sparks"}],
    "Total": {"ExTax": 10000.0, "IncTax": 11000.0},
    "Totals": {"InvoicedValue": 5500.0, "GrossMargin": {"Percentage": 29.42}},
    "ConvertedFromQuote": {"ID": 41273, "DateConverted": "2025-04-01T09:30:00+10:00"},
    "CostCenters": [{"ID": 4, "Name": "Solar PV"}, {"ID": 6, "Name": "Battery"}],
    "DateIssued": "2025-04-01",
    "CustomFields": [],
}


@pytest.fixture
def quote_payload() -> dict[str, Any]:
    """Simpro payload for quote 41273: two catalog items (one negative) and one labour item."""
    return copy.deepcopy(QUOTE_41273)


@pytest.fixture
def quote(quote_payload: dict[str, Any]) -> Quote:
    return Quote.model_validate(quote_payload)


@pytest.fixture
def job_payload() -> dict[str, Any]:
    return copy.deepcopy(JOB_33784)


@pytest.fixture
def labor_rates() -> LaborRateCache:
    """Rate cache holding the Electrician labour type at markup 0.35."""
    return LaborRateCache.from_rates(
        [LaborRate.model_validate({"ID": 2, "Name": "Electrician", "CostRate": 55.0, "Markup": 0.35})]
    )


class FakeSimpro:
    """In-memory Simpro keyed by raw payloads. Records every call."""

    def __init__(
        self,
        quotes: Optional[dict[str, dict]] = None,
        jobs: Optional[dict[str, dict]] = None,
        customers: Optional[dict[str, dict]] = None,
        sites: Optional[dict[str, dict]] = None,
        labor_rates: Optional[list[dict]] = None,
    ):
        self.quotes = {str(k): v for k, v in (quotes or {}).items()}
        self.jobs = {str(k): v for k, v in (jobs or {}).items()}
        self.customers = {str(k): v for k, v in (customers or {}).items()}
        self.sites = {str(k): v for k, v in (sites or {}).items()}
        self.labor_rates = labor_rates or []
        self.calls: list[tuple] = []
        self._lock = threading.Lock()

    def _log(self, *call: Any) -> None:
        with self._lock:
            self.calls.append(call)

    @property
    def writes(self) -> list[tuple]:
        return [c for c in self.calls if c[0].startswith("set_")]

    def _lookup(self, table: dict[str, dict], key: Any, path: str) -> dict:
        if str(key) not in table:
            raise NotFoundError("Simpro", 404, "", path)
        return table[str(key)]

    def get_quote(self, quote_id):
        self._log("get_quote", str(quote_id))
        return Quote.model_validate(self._lookup(self.quotes, quote_id, f"/quotes/{quote_id}"))

    def get_quote_timeline(self, quote_id):
        self._log("get_quote_timeline", str(quote_id))
        return []

    def get_job(self, job_id):
        self._log("get_job", str(job_id))
        return Job.model_validate(self._lookup(self.jobs, job_id, f"/jobs/{job_id}"))

    def get_customer(self, customer_id, *, is_company=None):
        self._log("get_customer", str(customer_id))
        return CustomerDetail.model_validate(self._lookup(self.customers, customer_id, f"/customers/{customer_id}"))

    def get_site(self, site_id):
        self._log("get_site", str(site_id))
        return SiteDetail.model_validate(self._lookup(self.sites, site_id, f"/sites/{site_id}"))

    def list_labor_rates(self):
        self._log("list_labor_rates")
        return [LaborRate.model_validate(r) for r in self.labor_rates]

    def _set_custom_field(self, payload: dict, field_id: int, value: Any) -> None:
        fields = payload.setdefault("CustomFields", [])
        for cf in fields:
            if cf["CustomField"]["ID"] == field_id:
                cf["Value"] = value
                return
        fields.append({"CustomField": {"ID": field_id, "Name": f"Field {field_id}"}, "Value": value})

    def set_quote_custom_field(self, quote_id, field_id, value):
        self._log("set_quote_custom_field", str(quote_id), field_id, value)
        self._set_custom_field(self.quotes[str(quote_id)], field_id, value)

    def set_job_custom_field(self, job_id, field_id, value):
        self._log("set_job_custom_field", str(job_id), field_id, value)
        self._set_custom_field(self.jobs[str(job_id)], field_id, value)

    def close(self) -> None:
        self._log("close")


class FakeHubSpot:
    """In-memory HubSpot CRM. Records every call; mutating calls are listed in ``writes``."""

    MUTATING = {
        "create_object",
        "update_object",
        "batch_create",
        "batch_archive",
        "batch_associate_default",
        "associate_default",
    }

    def __init__(self, deals: Optional[dict[str, dict]] = None):
        self.objects: dict[str, dict[str, dict]] = defaultdict(dict)
        for deal_id, props in (deals or {}).items():
            self.objects["deals"][str(deal_id)] = dict(props)
        self.associations: dict[tuple[str, str, str], list[str]] = defaultdict(list)
        self.calls: list[tuple] = []
        self._ids = itertools.count(1000)
        self._lock = threading.Lock()

    def _log(self, *call: Any) -> None:
        with self._lock:
            self.calls.append(call)

    def _new_id(self) -> str:
        with self._lock:
            return str(next(self._ids))

    @property
    def writes(self) -> list[tuple]:
        return [c for c in self.calls if c[0] in self.MUTATING]

    def count(self, name: str) -> int:
        return sum(1 for c in self.calls if c[0] == name)

    def add(self, object_type: str, properties: dict) -> str:
        """Seed a record without logging a call."""
        object_id = self._new_id()
        self.objects[object_type][object_id] = dict(properties)
        return object_id

    def get_deal(self, deal_id, properties=()):
        self._log("get_deal", str(deal_id))
        if str(deal_id) not in self.objects["deals"]:
            raise NotFoundError("HubSpot", 404, "", f"/crm/v3/objects/deals/{deal_id}")
        return DealRecord(id=str(deal_id), properties=dict(self.objects["deals"][str(deal_id)]))

    def create_object(self, object_type, properties):
        self._log("create_object", object_type, dict(properties))
        object_id = self._new_id()
        self.objects[object_type][object_id] = dict(properties)
        return object_id

    def update_object(self, object_type, object_id, properties):
        self._log("update_object", object_type, str(object_id), dict(properties))
        if str(object_id) not in self.objects[object_type]:
            raise NotFoundError("HubSpot", 404, "", f"/crm/v3/objects/{object_type}/{object_id}")
        self.objects[object_type][str(object_id)].update(properties)

    def search_first(self, object_type, property_name, value):
        self._log("search_first", object_type, property_name, str(value))
        for object_id, props in self.objects[object_type].items():
            if str(props.get(property_name)) == str(value):
                return object_id
        return None

    def list_associated_ids(self, from_type, from_id, to_type):
        self._log("list_associated_ids", from_type, str(from_id), to_type)
        return list(self.associations[(from_type, str(from_id), to_type)])

    def batch_create(self, object_type, properties_list):
        self._log("batch_create", object_type, len(properties_list))
        ids = []
        for props in properties_list:
            object_id = self._new_id()
            self.objects[object_type][object_id] = dict(props)
            ids.append(object_id)
        return ids

    def batch_archive(self, object_type, ids):
        self._log("batch_archive", object_type, list(ids))
        for object_id in ids:
            self.objects[object_type].pop(object_id, None)
            for linked in self.associations.values():
                if object_id in linked:
                    linked.remove(object_id)

    def batch_associate_default(self, from_type, from_id, to_type, to_ids):
        self._log("batch_associate_default", from_type, str(from_id), to_type, list(to_ids))
        self.associations[(from_type, str(from_id), to_type)].extend(to_ids)

    def associate_default(self, from_type, from_id, to_type, to_id):
        self._log("associate_default", from_type, str(from_id), to_type, str(to_id))
        linked = self.associations[(from_type, str(from_id), to_type)]
        if str(to_id) not in linked:
            linked.append(str(to_id))

    def line_items_on(self, deal_id: str) -> list[dict]:
        ids = self.associations[("deals", str(deal_id), "line_items")]
        return [self.objects["line_items"][i] for i in ids]

    def close(self) -> None:
        self._log("close")


@pytest.fixture
def fake_simpro(quote_payload: dict[str, Any], job_payload: dict[str, Any]) -> FakeSimpro:
    return FakeSimpro(
        quotes={"41273": quote_payload},
        jobs={"33784": job_payload},
        customers={
            "501": {
                "ID": 501,
                "GivenName": "Jane",
                "FamilyName": "Citizen",
                "Email": "jane@example.com",
                "Phone": "07 3000 0000",
                "CellPhone": "0400 000 000",
            }
        },
        sites={
            "77": {
                "ID": 77,
                "Name": "12 Example St",
                "Address": {"Address": "12 Example St", "City": "Brisbane", "State": "QLD", "PostalCode": "4000"},
            }
        },
        labor_rates=[{"ID": 2, "Name": "Electrician", "CostRate": 55.0, "Markup": 0.35}],
    )


@pytest.fixture
def fake_hubspot() -> FakeHubSpot:
    """HubSpot holding deal 9876 (open, default pipeline) linked to quote 41273."""
    return FakeHubSpot(
        deals={
            "9876": {
                "dealname": "Citizen - Solar",
                "simpro_quote_id": "41273",
                "dealstage": "appointmentscheduled",
                "pipeline": "default",
            }
        }
    )
