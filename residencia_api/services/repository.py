# SPDX-License-Identifier: Apache-2.0

"""
Data access interface for the licensing engine.

Reads are scoped at the query layer (by id, order or contract); the only
write is the atomic creation of a license together with its invoice link.
"""

from abc import ABC, abstractmethod
from typing import List, Optional

from residencia_api.models.entities import Contract, Invoice, License, LicenseLink, Order, TimezonedValue
from residencia_api.models.entities import ZERO_INVOICE_PREFIX


class RepositoryError(Exception):
    """Raised when the backing store cannot be reached or fails."""
    pass


class LicenseConflictError(Exception):
    """Raised when a concurrent write already produced a conflicting license."""
    pass


class LicensingRepository(ABC):
    """Accessors the licensing service needs from the backing store."""

    @abstractmethod
    def get_contract(self, contract_id: str) -> Optional[Contract]:
        pass

    @abstractmethod
    def get_order(self, order_id: str) -> Optional[Order]:
        pass

    @abstractmethod
    def list_licenses_by_contract(self, contract_id: str) -> List[License]:
        pass

    @abstractmethod
    def list_invoices_by_order(self, order_id: str) -> List[Invoice]:
        pass

    @abstractmethod
    def list_license_links(self, order_id: Optional[str] = None, contract_id: Optional[str] = None) -> List[LicenseLink]:
        """
        License links of one order or one contract.

        Exactly one of ``order_id`` and ``contract_id`` must be given.
        """
        pass

    @abstractmethod
    def create_license_and_link(self, license: License, link: LicenseLink, now: TimezonedValue) -> License:
        """
        Persist a license and its link as one atomic write.

        Inside the write the store re-checks that no license of another
        order of the same contract is active at ``now`` and that the linked
        invoice is not already consumed.

        Raises:
            LicenseConflictError: If either check fails
            RepositoryError: If the store fails
        """
        pass

    def health_check(self) -> dict:
        return {'status': 'healthy'}


def require_single_scope(order_id: Optional[str], contract_id: Optional[str]) -> None:
    """Reject unscoped or doubly-scoped link queries."""
    if (order_id is None) == (contract_id is None):
        raise ValueError("Exactly one of order_id or contract_id is required")


def is_zero_invoice(invoice_id: str) -> bool:
    """Zero-invoice sentinels are reused by free perpetual renewals."""
    return invoice_id.startswith(ZERO_INVOICE_PREFIX)
