# SPDX-License-Identifier: Apache-2.0

"""
In-memory licensing repository for development and tests.
"""

import logging
import threading
from typing import Dict, List, Optional

from residencia_api.domain.licenses import active_licenses, is_invoice_consumed
from residencia_api.models.entities import Contract, Invoice, License, LicenseLink, Order, TimezonedValue
from residencia_api.services.repository import (
    LicenseConflictError,
    LicensingRepository,
    is_zero_invoice,
    require_single_scope
)

logger = logging.getLogger(__name__)


class InMemoryLicensingRepository(LicensingRepository):
    """
    Dictionary-backed repository.

    A process-wide lock makes ``create_license_and_link`` atomic with
    respect to other writers of the same instance.
    """

    def __init__(self):
        self.contracts: Dict[str, Contract] = {}
        self.orders: Dict[str, Order] = {}
        self.invoices: Dict[str, Invoice] = {}
        self.licenses: Dict[str, License] = {}
        self.links: Dict[str, LicenseLink] = {}
        self._write_lock = threading.Lock()

    # Seeding

    def add_contract(self, contract: Contract) -> Contract:
        self.contracts[contract.id] = contract
        return contract

    def add_order(self, order: Order) -> Order:
        self.orders[order.id] = order
        return order

    def add_invoice(self, invoice: Invoice) -> Invoice:
        self.invoices[invoice.id] = invoice
        return invoice

    def add_license(self, license: License) -> License:
        self.licenses[license.id] = license
        return license

    def add_link(self, link: LicenseLink) -> LicenseLink:
        self.links[link.id] = link
        return link

    # LicensingRepository

    def get_contract(self, contract_id: str) -> Optional[Contract]:
        return self.contracts.get(contract_id)

    def get_order(self, order_id: str) -> Optional[Order]:
        return self.orders.get(order_id)

    def list_licenses_by_contract(self, contract_id: str) -> List[License]:
        return [lic for lic in self.licenses.values() if lic.contract_id == contract_id]

    def list_invoices_by_order(self, order_id: str) -> List[Invoice]:
        return [invoice for invoice in self.invoices.values() if invoice.order_id == order_id]

    def list_license_links(self, order_id: Optional[str] = None, contract_id: Optional[str] = None) -> List[LicenseLink]:
        require_single_scope(order_id, contract_id)
        if order_id is not None:
            return [link for link in self.links.values() if link.order_id == order_id]
        return [link for link in self.links.values() if link.contract_id == contract_id]

    def create_license_and_link(self, license: License, link: LicenseLink, now: TimezonedValue) -> License:
        with self._write_lock:
            active = active_licenses(self.list_licenses_by_contract(license.contract_id), now)
            if any(lic.order_id != license.order_id for lic in active):
                raise LicenseConflictError(
                    f"Contract {license.contract_id} already has an active license of another order"
                )
            order_links = self.list_license_links(order_id=link.order_id)
            if not is_zero_invoice(link.invoice_id) and is_invoice_consumed(link.invoice_id, order_links):
                raise LicenseConflictError(f"Invoice {link.invoice_id} already funds a license")

            self.licenses[license.id] = license
            self.links[link.id] = link

        logger.info(f"Created license {license.id} for order {license.order_id}")
        return license
