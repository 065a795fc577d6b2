"""Find-or-create HubSpot contacts, companies and sites for Simpro customers and sites.

Lookup order, stopping at the first hit:

1. search HubSpot by the stored Simpro ID property;
2. for people only, fetch the Simpro customer, search contacts by email and
   backfill the Simpro ID onto the match;
3. create a new record from whatever Simpro fields are available.

Resolution is best-effort: any remote failure is logged and reported as
``None`` so a missing association never blocks a line item sync.
"""

import logging
import threading
from typing import Callable, Optional

from quote_sync.models.party import CustomerDetail, SiteDetail
from quote_sync.models.quote import CustomerRef, SiteRef

logger = logging.getLogger(__name__)

CUSTOMER_ID_PROPERTY = "simpro_customer_id"
SITE_ID_PROPERTY = "simpro_site_id"


class IdentityResolver:
    """
    Maps Simpro customers/sites to HubSpot record IDs.
    Resolved IDs are remembered for the life of the resolver (one batch run),
    so repeat encounters cost no API calls. Safe to share across workers.
    """

    def __init__(
        self,
        hubspot,
        simpro,
        *,
        placeholder_email_domain: str = "solarhub.com.au",
        site_object: str = "p_sites",
    ):
        self._hubspot = hubspot
        self._simpro = simpro
        self._placeholder_domain = placeholder_email_domain
        self.site_object = site_object
        self._resolved: dict[tuple[str, str], str] = {}
        self._key_locks: dict[tuple[str, str], threading.Lock] = {}
        self._lock = threading.Lock()

    # --- public API --------------------------------------------------------

    def resolve_customer(self, customer: Optional[CustomerRef]) -> Optional[tuple[str, str]]:
        """(object_type, id) for a quote/job customer: a company or a contact."""
        if customer is None or customer.id is None:
            return None
        if customer.is_company:
            company_id = self.resolve_company(customer)
            return ("companies", company_id) if company_id else None
        contact_id = self.resolve_contact(customer)
        return ("contacts", contact_id) if contact_id else None

    def resolve_contact(self, customer: Optional[CustomerRef]) -> Optional[str]:
        if customer is None or customer.id is None:
            return None
        return self._resolve("contacts", str(customer.id), lambda: self._find_or_create_contact(customer))

    def resolve_company(self, customer: Optional[CustomerRef]) -> Optional[str]:
        if customer is None or customer.id is None:
            return None
        return self._resolve("companies", str(customer.id), lambda: self._find_or_create_company(customer))

    def resolve_site(self, site: Optional[SiteRef]) -> Optional[str]:
        if site is None or site.id is None:
            return None
        return self._resolve(self.site_object, str(site.id), lambda: self._find_or_create_site(site))

    # --- internals ---------------------------------------------------------

    def _resolve(self, kind: str, source_id: str, find_or_create: Callable[[], Optional[str]]) -> Optional[str]:
        key = (kind, source_id)
        with self._lock:
            key_lock = self._key_locks.setdefault(key, threading.Lock())
        # One lookup per key at a time; other keys resolve in parallel
        with key_lock:
            with self._lock:
                cached = self._resolved.get(key)
            if cached:
                return cached
            try:
                target_id = find_or_create()
            except Exception as e:
                logger.warning("Could not resolve %s for Simpro ID %s: %s: %s", kind, source_id, type(e).__name__, e)
                return None
            if target_id:
                with self._lock:
                    self._resolved[key] = target_id
            return target_id

    def _find_or_create_contact(self, customer: CustomerRef) -> Optional[str]:
        contact_id = self._hubspot.search_first("contacts", CUSTOMER_ID_PROPERTY, customer.id)
        if contact_id:
            return contact_id

        logger.info("Contact for customer %s not in HubSpot, fetching from Simpro", customer.id)
        detail = self._simpro.get_customer(customer.id, is_company=False)
        email = detail.best_email
        if email:
            contact_id = self._hubspot.search_first("contacts", "email", email)
            if contact_id:
                self._backfill(contact_id, customer.id)
                return contact_id
        return self._create_contact(detail, email)

    def _backfill(self, contact_id: str, customer_id: int) -> None:
        try:
            self._hubspot.update_object("contacts", contact_id, {CUSTOMER_ID_PROPERTY: str(customer_id)})
            logger.info("Backfilled Simpro ID %s onto contact %s", customer_id, contact_id)
        except Exception as e:
            logger.warning("Could not backfill Simpro ID onto contact %s: %s", contact_id, e)

    def placeholder_email(self, customer_id: int) -> str:
        return f"noemail+{customer_id}@{self._placeholder_domain}"

    def _create_contact(self, detail: CustomerDetail, email: str) -> str:
        properties = {
            "email": email or self.placeholder_email(detail.id),
            "firstname": detail.first_name,
            "lastname": detail.last_name or "Unknown",
            "phone": detail.best_phone,
            "mobilephone": detail.mobile,
            CUSTOMER_ID_PROPERTY: str(detail.id),
        }
        contact_id = self._hubspot.create_object("contacts", properties)
        logger.info("Created contact %s for Simpro customer %s", contact_id, detail.id)
        return contact_id

    def _find_or_create_company(self, customer: CustomerRef) -> Optional[str]:
        company_id = self._hubspot.search_first("companies", CUSTOMER_ID_PROPERTY, customer.id)
        if company_id:
            return company_id

        detail = self._simpro.get_customer(customer.id, is_company=True)
        properties = {
            "name": detail.company_name or customer.company_name or f"Simpro customer {detail.id}",
            "phone": detail.phone,
            "website": detail.website,
            CUSTOMER_ID_PROPERTY: str(detail.id),
        }
        company_id = self._hubspot.create_object("companies", properties)
        logger.info("Created company %s for Simpro customer %s", company_id, detail.id)
        return company_id

    def _find_or_create_site(self, site: SiteRef) -> Optional[str]:
        site_id = self._hubspot.search_first(self.site_object, SITE_ID_PROPERTY, site.id)
        if site_id:
            return site_id

        logger.info("Site %s not in HubSpot, fetching from Simpro", site.id)
        detail: SiteDetail = self._simpro.get_site(site.id)
        name = detail.name.strip() or "No Site Name"
        properties = {
            "site": name,
            "site_name": name,
            "address": detail.address.address,
            "suburb": detail.address.city,
            "state": detail.address.state,
            "postcode": detail.address.postal_code,
            "country": detail.address.country or "Australia",
            SITE_ID_PROPERTY: str(detail.id),
        }
        site_id = self._hubspot.create_object(self.site_object, properties)
        logger.info("Created site %s (%s) for Simpro site %s", site_id, name, detail.id)
        return site_id
