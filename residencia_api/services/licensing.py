# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
License validation and issuance service.

Fetches the data the validator needs from the repository, runs it, and
issues licenses under the contract's lock with a re-validation right
before the atomic write.
"""

import logging
from contextlib import nullcontext
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Callable, List, Optional

from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode

from residencia_api.domain.issuance import calculate_issuance_dates, select_invoice_to_link
from residencia_api.domain.license_validation import LicensingSnapshot, validate_license_creation
from residencia_api.domain.licenses import license_status
from residencia_api.domain.results import ValidationResult
from residencia_api.domain.temporal import timezoned_now
from residencia_api.models.entities import License, LicenseLink, TimezonedValue
from residencia_api.models.enums import LicenseStatus
from residencia_api.services.redis import RedisLockService
from residencia_api.services.repository import LicensingRepository

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class LicenseValidationFailed(Exception):
    """Raised by issuance when the order does not pass validation."""

    def __init__(self, result: ValidationResult):
        self.result = result
        super().__init__("; ".join(result.error_messages))


class ContractNotFound(Exception):
    """Raised when listing licenses of an unknown contract."""
    pass


@dataclass
class IssuedLicense:
    license: License
    link: LicenseLink


@dataclass
class LicenseView:
    license: License
    status: LicenseStatus


def _system_clock() -> datetime:
    return datetime.now(timezone.utc)


class LicensingService:
    """Validation, issuance and listing of licenses."""

    def __init__(
        self,
        repository: LicensingRepository,
        lock_service: Optional[RedisLockService] = None,
        zone: str = "UTC",
        clock: Callable[[], datetime] = None
    ):
        """
        Args:
            repository: Data access for contracts, orders, invoices and licenses
            lock_service: Distributed issuance locks (None disables locking)
            zone: IANA zone in which "now" is read
            clock: Source of the current aware instant
        """
        self.repository = repository
        self.lock_service = lock_service
        self.zone = zone
        self.clock = clock or _system_clock

    def current_time(self) -> TimezonedValue:
        return timezoned_now(self.zone, self.clock())

    def load_snapshot(self, contract_id: str, order_id: str) -> LicensingSnapshot:
        """Fetch everything the validator reads, skipping lists when a parent is missing."""
        contract = self.repository.get_contract(contract_id)
        order = self.repository.get_order(order_id)
        if contract is None or order is None:
            return LicensingSnapshot(contract=contract, order=order)

        return LicensingSnapshot(
            contract=contract,
            order=order,
            licenses=self.repository.list_licenses_by_contract(contract_id),
            invoices=self.repository.list_invoices_by_order(order_id),
            links=self.repository.list_license_links(order_id=order_id)
        )

    def validate(self, contract_id: str, order_id: str) -> ValidationResult:
        """Check whether a license may be issued for the order right now."""
        with tracer.start_as_current_span(
            "licensing.validate",
            attributes={"contract.id": contract_id, "order.id": order_id}
        ) as span:
            now = self.current_time()
            snapshot = self.load_snapshot(contract_id, order_id)
            result = validate_license_creation(contract_id, order_id, snapshot, now)

            span.set_attributes({
                "validation.is_valid": result.is_valid,
                "validation.error_count": len(result.error_messages),
                "validation.warning_count": len(result.warnings)
            })
            if not result.is_valid:
                logger.info(
                    f"License validation failed for order {order_id}",
                    extra={
                        "contract_id": contract_id,
                        "order_id": order_id,
                        "error_messages": result.error_messages
                    }
                )
            return result

    def issue_license(
        self,
        contract_id: str,
        order_id: str,
        preferred_invoice_id: Optional[str] = None
    ) -> IssuedLicense:
        """
        Validate and create a license with its invoice link.

        Runs under the contract's issuance lock; the validator runs again
        inside the lock so a concurrent issuance that finished first is
        seen. The repository write re-checks the active-license conflict.

        Raises:
            LicenseValidationFailed: If the order does not pass validation
            LockNotAcquiredError: If another issuance for the contract is running
            IssuanceCalculationError: If dates or invoice cannot be derived
            LicenseConflictError: If the write detects a conflicting license
            RepositoryError: If the store fails
        """
        with tracer.start_as_current_span(
            "licensing.issue",
            attributes={"contract.id": contract_id, "order.id": order_id}
        ) as span:
            lock = self.lock_service.lock(contract_id) if self.lock_service else nullcontext()
            if self.lock_service is None:
                logger.warning(
                    "No lock service configured, relying on repository transaction",
                    extra={"contract_id": contract_id}
                )

            with lock:
                now = self.current_time()
                snapshot = self.load_snapshot(contract_id, order_id)
                result = validate_license_creation(contract_id, order_id, snapshot, now)
                if not result.is_valid:
                    span.set_status(Status(StatusCode.ERROR, "validation failed"))
                    raise LicenseValidationFailed(result)

                order = snapshot.order
                dates = calculate_issuance_dates(order, snapshot.licenses, now)
                invoice_id = select_invoice_to_link(order, snapshot.invoices, snapshot.links, preferred_invoice_id)

                license = License(
                    contract_id=contract_id,
                    order_id=order_id,
                    user_count=order.user_count or 0,
                    start=dates.start,
                    end=dates.end
                )
                link = LicenseLink(
                    order_id=order_id,
                    contract_id=contract_id,
                    invoice_id=invoice_id,
                    license_id=license.id
                )
                created = self.repository.create_license_and_link(license, link, now)

            span.set_attribute("license.id", created.id)
            logger.info(
                f"Issued license {created.id} for order {order_id}",
                extra={
                    "contract_id": contract_id,
                    "order_id": order_id,
                    "invoice_id": invoice_id,
                    "start": dates.start.value,
                    "end": dates.end.value
                }
            )
            return IssuedLicense(license=created, link=link)

    def list_licenses(self, contract_id: str) -> List[LicenseView]:
        """Licenses of a contract with their status right now."""
        with tracer.start_as_current_span(
            "licensing.list",
            attributes={"contract.id": contract_id}
        ):
            if self.repository.get_contract(contract_id) is None:
                raise ContractNotFound(contract_id)
            now = self.current_time()
            return [
                LicenseView(license=lic, status=license_status(lic, now))
                for lic in self.repository.list_licenses_by_contract(contract_id)
            ]
