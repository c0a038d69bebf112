# SPDX-License-Identifier: Apache-2.0

"""
Subscription period rules for orders.
"""

import logging
from datetime import datetime
from decimal import Decimal, ROUND_HALF_UP
from typing import Dict, Optional, Tuple

from dateutil.relativedelta import relativedelta

from residencia_api.models.entities import Order
from residencia_api.models.enums import OrderType, Periodicity
from residencia_api.domain.temporal import Duration, resolve_zone, to_instant

logger = logging.getLogger(__name__)

PERIODICITY_DURATIONS: Dict[Periodicity, Duration] = {
    Periodicity.WEEKLY: Duration(days=7),
    Periodicity.BIWEEKLY: Duration(days=14),
    Periodicity.MONTHLY: Duration(months=1),
    Periodicity.BIMONTHLY: Duration(months=2),
    Periodicity.QUARTERLY: Duration(months=3),
    Periodicity.FOUR_MONTHLY: Duration(months=4),
    Periodicity.SEMIANNUAL: Duration(months=6),
    Periodicity.ANNUAL: Duration(years=1),
}


def periodicity_to_duration(periodicity: Optional[str]) -> Optional[Duration]:
    """Length of one billing period, or None for an unknown periodicity."""
    try:
        return PERIODICITY_DURATIONS[Periodicity(periodicity)]
    except ValueError:
        return None


def _subscription_range(order: Order) -> Optional[Tuple[datetime, datetime, Duration]]:
    """Start and end wall clocks in the start's zone plus the period length."""
    if order.type != OrderType.SUBSCRIPTION or order.periodicity is None:
        return None
    period = periodicity_to_duration(order.periodicity)
    start = to_instant(order.start)
    end = to_instant(order.end)
    if period is None or start is None or end is None or end <= start:
        return None
    tz = resolve_zone(order.start.zone)
    return (
        start.astimezone(tz).replace(tzinfo=None),
        end.astimezone(tz).replace(tzinfo=None),
        period
    )


def _whole_periods(start: datetime, end: datetime, period: Duration) -> int:
    if period.days:
        return (end - start).days // period.days
    delta = relativedelta(end, start)
    months = delta.years * 12 + delta.months
    return months // (period.years * 12 + period.months)


def _scale(period: Duration, count: int) -> relativedelta:
    return relativedelta(
        years=period.years * count,
        months=period.months * count,
        days=period.days * count
    )


def subscription_period_warning(order: Order) -> Optional[str]:
    """
    Warn when a subscription does not span a whole number of periods.

    Returns:
        Warning naming the end date a whole number of periods would give,
        or None when the range is exact or cannot be checked
    """
    period_range = _subscription_range(order)
    if period_range is None:
        return None

    start, end, period = period_range
    count = _whole_periods(start, end, period)
    expected_end = start + _scale(period, count)
    if expected_end == end:
        return None

    return (
        f"Advertencia: El rango de fechas ({start:%Y-%m-%d} a {end:%Y-%m-%d}) para la periodicidad "
        f"'{order.periodicity}' no parece corresponder a un número exacto de períodos. "
        f"Fecha de fin esperada para {count} período(s) completo(s): {expected_end:%Y-%m-%d}."
    )


def amount_per_period(order: Order) -> Optional[Decimal]:
    """
    Order total divided by the number of whole periods, rounded to cents.

    Returns None for non-subscriptions, non-positive totals, unusable dates
    and ranges shorter than one period.
    """
    if order.total_amount is None or order.total_amount <= 0:
        return None
    period_range = _subscription_range(order)
    if period_range is None:
        return None

    count = _whole_periods(*period_range)
    if count <= 0:
        logger.debug(f"Order {order.id} spans less than one '{order.periodicity}' period")
        return None
    return (Decimal(order.total_amount) / count).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)
