# SPDX-License-Identifier: Apache-2.0

"""
License status and renewal-date rules shared by validation and issuance.
"""

from typing import Iterable, List, Optional, Tuple

from residencia_api.models.entities import License, LicenseLink, TimezonedValue
from residencia_api.models.enums import ComparisonResult, LicenseStatus
from residencia_api.domain.temporal import Duration, add_duration, compare, to_instant

# A free perpetual license may be renewed once less than this remains
RENEWAL_WINDOW = Duration(months=1)
# Validity granted by each perpetual-license renewal
PERPETUAL_TERM = Duration(years=1)
# Gap between the end of one perpetual term and the start of the next
RENEWAL_OFFSET = Duration(days=1)


def license_status(license: License, now: TimezonedValue) -> LicenseStatus:
    """
    Derive a license's status at ``now``.

    A license with an unresolvable start or end (including a missing end)
    gets ERROR status and is never considered active.
    """
    start_vs_now = compare(license.start, now)
    end_vs_now = compare(license.end, now)

    if ComparisonResult.INVALID in (start_vs_now, end_vs_now):
        return LicenseStatus.ERROR
    if start_vs_now != ComparisonResult.GREATER and end_vs_now != ComparisonResult.LESS:
        return LicenseStatus.ACTIVE
    if start_vs_now == ComparisonResult.GREATER:
        return LicenseStatus.PENDING
    return LicenseStatus.EXPIRED


def active_licenses(licenses: Iterable[License], now: TimezonedValue) -> List[License]:
    return [lic for lic in licenses if license_status(lic, now) == LicenseStatus.ACTIVE]


def licenses_for_order(licenses: Iterable[License], order_id: str) -> List[License]:
    return [lic for lic in licenses if lic.order_id == order_id]


def latest_license_by_end(licenses: Iterable[License]) -> Optional[License]:
    """
    The license whose ``end`` is the latest instant.

    Licenses without an ``end`` or with an unresolvable one never win;
    callers that care about truly perpetual licenses check for them
    separately. Ties keep the first license in iteration order.
    """
    latest = None
    for lic in licenses:
        if to_instant(lic.end) is None:
            continue
        if latest is None or compare(lic.end, latest.end) == ComparisonResult.GREATER:
            latest = lic
    return latest


def is_invoice_consumed(invoice_id: str, links: Iterable[LicenseLink]) -> bool:
    """Whether some link already ties ``invoice_id`` to a license."""
    return any(link.consumes(invoice_id) for link in links)


def perpetual_term_dates(
    order_licenses: Iterable[License],
    now: TimezonedValue
) -> Tuple[Optional[TimezonedValue], Optional[TimezonedValue]]:
    """
    Start and end of the next perpetual-license term.

    The first term starts now; later terms start the day after the latest
    existing term ends. Each term lasts ``PERPETUAL_TERM``.

    Returns:
        (start, end); either may be None when the arithmetic fails
    """
    latest = latest_license_by_end(order_licenses)
    if latest is None:
        start = now
    else:
        start = add_duration(latest.end, RENEWAL_OFFSET)
    if start is None:
        return None, None
    return start, add_duration(start, PERPETUAL_TERM)
