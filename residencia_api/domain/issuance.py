# SPDX-License-Identifier: Apache-2.0

"""
Dates and funding invoice of a license about to be issued.

Only called after validation passed. Anything that goes wrong here is an
internal inconsistency, reported as ``IssuanceCalculationError`` rather
than as a business-rule failure.
"""

import logging
from dataclasses import dataclass
from typing import List, Optional

from residencia_api.models.entities import Invoice, License, LicenseLink, Order, TimezonedValue, zero_invoice_id
from residencia_api.models.enums import ComparisonResult, OrderType
from residencia_api.domain.licenses import is_invoice_consumed, licenses_for_order, perpetual_term_dates
from residencia_api.domain.orders import periodicity_to_duration
from residencia_api.domain.temporal import add_duration, compare, interval_to_duration, to_instant

logger = logging.getLogger(__name__)


class IssuanceCalculationError(Exception):
    """Raised when issuance data cannot be derived for an already validated order."""
    pass


@dataclass(frozen=True)
class IssuanceDates:
    start: TimezonedValue
    end: TimezonedValue


def calculate_issuance_dates(order: Order, licenses: List[License], now: TimezonedValue) -> IssuanceDates:
    """
    Compute start and end of the license to issue for ``order``.

    - subscription: one period of the order's periodicity from now
    - temporary license: the order's own length, shifted to start now
    - perpetual license: one year from now, or renewing from the day after
      the latest existing term of this order

    Args:
        order: Order the license is issued under
        licenses: Licenses of the contract (only this order's are used)
        now: Current wall-clock time

    Raises:
        IssuanceCalculationError: If the periodicity is unmapped, an order
            bound is missing or date arithmetic fails
    """
    if order.type == OrderType.PERPETUAL_LICENSE:
        start, end = perpetual_term_dates(licenses_for_order(licenses, order.id), now)
        if start is None or end is None:
            raise IssuanceCalculationError(f"Cannot compute perpetual license term for order {order.id}")
        return IssuanceDates(start=start, end=end)

    if order.type == OrderType.SUBSCRIPTION:
        duration = periodicity_to_duration(order.periodicity)
        if duration is None:
            raise IssuanceCalculationError(
                f"Order {order.id} has no usable periodicity: {order.periodicity!r}"
            )
    elif order.type == OrderType.TEMPORARY_LICENSE:
        if order.end is None:
            raise IssuanceCalculationError(f"Temporary order {order.id} has no end date")
        duration = interval_to_duration(order.start, order.end)
        if duration is None:
            raise IssuanceCalculationError(f"Cannot measure the length of order {order.id}")
    else:
        raise IssuanceCalculationError(f"Unknown order type: {order.type!r}")

    end = add_duration(now, duration)
    if end is None:
        raise IssuanceCalculationError(f"Cannot add {duration} to {now}")

    logger.debug(f"Issuance dates for order {order.id}: {now} -> {end}")
    return IssuanceDates(start=now, end=end)


def _issued_earlier(candidate: Invoice, current: Invoice) -> bool:
    if to_instant(candidate.issue_date) is None:
        return False
    if to_instant(current.issue_date) is None:
        return True
    return compare(candidate.issue_date, current.issue_date) == ComparisonResult.LESS


def _earliest_issued(invoices: List[Invoice]) -> Invoice:
    earliest = invoices[0]
    for invoice in invoices[1:]:
        if _issued_earlier(invoice, earliest):
            earliest = invoice
    return earliest


def select_invoice_to_link(
    order: Order,
    invoices: List[Invoice],
    links: List[LicenseLink],
    preferred_invoice_id: Optional[str] = None
) -> str:
    """
    Pick the invoice that funds the new license.

    - free perpetual license: the zero-invoice sentinel, shared by renewals
    - free temporary license: the order's zero invoice
    - subscription: the preferred invoice when it is still unlinked,
      otherwise the earliest issued unlinked one
    - paid perpetual license: the earliest issued unlinked invoice, or the
      sentinel when every invoice already funds a term
    - paid temporary license: its single unlinked invoice

    Returns:
        Invoice id (or sentinel) to store on the license link

    Raises:
        IssuanceCalculationError: If no unlinked invoice is available
    """
    perpetual = order.type == OrderType.PERPETUAL_LICENSE
    if order.is_free and perpetual:
        return zero_invoice_id(order.id)

    unlinked = [invoice for invoice in invoices if not is_invoice_consumed(invoice.id, links)]
    if perpetual:
        return _earliest_issued(unlinked).id if unlinked else zero_invoice_id(order.id)
    if not unlinked:
        raise IssuanceCalculationError(f"Order {order.id} has no unlinked invoice to fund a license")

    if order.type == OrderType.SUBSCRIPTION:
        for invoice in unlinked:
            if invoice.id == preferred_invoice_id:
                return invoice.id
        return _earliest_issued(unlinked).id
    if order.is_free:
        return _earliest_issued(unlinked).id

    if len(unlinked) > 1:
        raise IssuanceCalculationError(f"Order {order.id} has {len(unlinked)} unlinked invoices")
    return unlinked[0].id
