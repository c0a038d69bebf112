# SPDX-License-Identifier: Apache-2.0

"""
Timezone-aware wall-clock arithmetic for licensing dates.

Dates in this system are wall-clock strings paired with an IANA zone
(``TimezonedValue``), not instants. Every ordering goes through the
four-valued comparators in this module; an ``INVALID`` result means
"cannot conclude" and must never be read as less or greater.
"""

import logging
import re
from dataclasses import dataclass, fields
from datetime import datetime, timezone
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dateutil.relativedelta import relativedelta

from residencia_api.models.entities import TimezonedValue
from residencia_api.models.enums import ComparisonResult

logger = logging.getLogger(__name__)

_WALL_CLOCK_PATTERN = re.compile(
    r'^(?P<date>\d{4}-\d{2}-\d{2})'
    r'(?:[ T](?P<hour>\d{2}):(?P<minute>\d{2})'
    r'(?::(?P<second>\d{2})(?:\.(?P<fraction>\d{1,6}))?)?)?$'
)


@dataclass(frozen=True)
class Duration:
    """Calendar duration added in wall-clock terms."""
    years: int = 0
    months: int = 0
    weeks: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0

    def __post_init__(self):
        for field in fields(self):
            if getattr(self, field.name) < 0:
                raise ValueError(f"Duration component '{field.name}' cannot be negative")

    def is_zero(self) -> bool:
        return all(getattr(self, field.name) == 0 for field in fields(self))

    def as_relativedelta(self) -> relativedelta:
        return relativedelta(
            years=self.years,
            months=self.months,
            weeks=self.weeks,
            days=self.days,
            hours=self.hours,
            minutes=self.minutes,
            seconds=self.seconds
        )


def parse_wall_clock(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a wall-clock string into a naive datetime.

    Accepts ``YYYY-MM-DD``, ``YYYY-MM-DD HH:mm``, ``YYYY-MM-DD HH:mm:ss`` and
    ``YYYY-MM-DD HH:mm:ss.f`` (1-6 fraction digits), with a space or ``T``
    separator. Date-only values mean local midnight.

    Returns:
        Naive datetime, or None when the string is malformed
    """
    if not value:
        return None
    match = _WALL_CLOCK_PATTERN.match(value.strip())
    if not match:
        return None

    fraction = match.group('fraction') or ''
    try:
        return datetime(
            *[int(part) for part in match.group('date').split('-')],
            int(match.group('hour') or 0),
            int(match.group('minute') or 0),
            int(match.group('second') or 0),
            int(fraction.ljust(6, '0')) if fraction else 0
        )
    except ValueError:
        # Out-of-range components such as month 13 or Feb 30
        return None


def resolve_zone(zone: Optional[str]) -> Optional[ZoneInfo]:
    """Look up an IANA zone, returning None for unknown or malformed keys."""
    if not zone:
        return None
    try:
        return ZoneInfo(zone)
    except (ZoneInfoNotFoundError, ValueError):
        return None


def _localize(naive: datetime, tz: ZoneInfo) -> Optional[datetime]:
    """Attach ``tz`` to a wall-clock time; None when the time does not exist there."""
    local = naive.replace(tzinfo=tz)
    try:
        round_trip = local.astimezone(timezone.utc).astimezone(tz).replace(tzinfo=None)
    except OverflowError:
        # Outside the datetime range once converted
        return None
    if round_trip != naive:
        # Skipped by a DST transition
        return None
    return local


def to_instant(tv: Optional[TimezonedValue]) -> Optional[datetime]:
    """
    Resolve a timezoned value to an absolute UTC instant.

    Ambiguous wall-clock times (DST fold) resolve to the earlier instant.

    Returns:
        Aware UTC datetime, or None when the value is missing or invalid
    """
    if tv is None:
        return None
    naive = parse_wall_clock(tv.value)
    tz = resolve_zone(tv.zone)
    if naive is None or tz is None:
        logger.warning(f"Cannot resolve timezoned value: {tv}")
        return None
    local = _localize(naive, tz)
    if local is None:
        logger.warning(f"Wall-clock time does not exist in its zone: {tv}")
        return None
    return local.astimezone(timezone.utc)


def _order(left, right) -> ComparisonResult:
    if left > right:
        return ComparisonResult.GREATER
    if left < right:
        return ComparisonResult.LESS
    return ComparisonResult.EQUAL


def compare(a: Optional[TimezonedValue], b: Optional[TimezonedValue]) -> ComparisonResult:
    """
    Order two timezoned values by the instants they represent.

    Args:
        a: First value
        b: Second value

    Returns:
        GREATER if ``a`` is later than ``b``, LESS if earlier, EQUAL if the
        same instant, INVALID if either value is missing or unresolvable
    """
    instant_a = to_instant(a)
    instant_b = to_instant(b)
    if instant_a is None or instant_b is None:
        return ComparisonResult.INVALID
    return _order(instant_a, instant_b)


def compare_date_only(a: Optional[TimezonedValue], b: Optional[TimezonedValue]) -> ComparisonResult:
    """
    Order two timezoned values by calendar day.

    Both instants are viewed in ``a``'s zone and only their dates are
    compared, so ``2024-01-01 23:00`` and ``2024-01-01`` in the same zone
    are EQUAL.

    Args:
        a: First value (its zone is the reference zone)
        b: Second value

    Returns:
        ComparisonResult for the calendar dates, INVALID if unresolvable
    """
    instant_a = to_instant(a)
    instant_b = to_instant(b)
    if instant_a is None or instant_b is None:
        return ComparisonResult.INVALID
    reference = resolve_zone(a.zone)
    try:
        date_b = instant_b.astimezone(reference).date()
    except OverflowError:
        return ComparisonResult.INVALID
    return _order(instant_a.astimezone(reference).date(), date_b)


def format_wall_clock(moment: datetime) -> str:
    """Format a naive wall-clock datetime as ``YYYY-MM-DD HH:mm:ss.fff``."""
    if moment.microsecond % 1000 == 0:
        return f"{moment:%Y-%m-%d %H:%M:%S}.{moment.microsecond // 1000:03d}"
    return f"{moment:%Y-%m-%d %H:%M:%S.%f}"


def add_duration(base: Optional[TimezonedValue], duration: Duration) -> Optional[TimezonedValue]:
    """
    Add a calendar duration to a timezoned value, keeping its zone.

    The addition happens on the wall clock (adding one month to
    ``2024-01-31`` gives ``2024-02-29``). A result that falls into a DST gap
    is moved forward by the size of the gap.

    Args:
        base: Starting value
        duration: Duration to add

    Returns:
        New TimezonedValue in ``base.zone``, or None when ``base`` is invalid
        or the result falls outside the supported date range
    """
    if to_instant(base) is None:
        return None
    if duration.is_zero():
        return base

    tz = resolve_zone(base.zone)
    try:
        shifted = parse_wall_clock(base.value) + duration.as_relativedelta()
        normalized = shifted.replace(tzinfo=tz).astimezone(timezone.utc).astimezone(tz)
    except (OverflowError, ValueError):
        logger.warning(f"Adding {duration} to {base} leaves the supported date range")
        return None
    return TimezonedValue(
        value=format_wall_clock(normalized.replace(tzinfo=None)),
        zone=base.zone
    )


def interval_to_duration(start: Optional[TimezonedValue], end: Optional[TimezonedValue]) -> Optional[Duration]:
    """
    Calendar duration between two values, measured on ``start``'s wall clock.

    Returns:
        Duration such that ``add_duration(start, d)`` lands on ``end`` (to the
        second), or None when either value is invalid or ``end`` precedes
        ``start``
    """
    instant_start = to_instant(start)
    instant_end = to_instant(end)
    if instant_start is None or instant_end is None or instant_end < instant_start:
        return None

    tz = resolve_zone(start.zone)
    local_start = instant_start.astimezone(tz).replace(tzinfo=None)
    local_end = instant_end.astimezone(tz).replace(tzinfo=None)
    delta = relativedelta(local_end, local_start)
    return Duration(
        years=delta.years,
        months=delta.months,
        days=delta.days,
        hours=delta.hours,
        minutes=delta.minutes,
        seconds=delta.seconds
    )


def timezoned_now(zone: str, now: Optional[datetime] = None) -> TimezonedValue:
    """
    Current wall-clock time in ``zone``.

    Args:
        zone: IANA zone for the wall-clock reading
        now: Aware instant to read (defaults to the system clock)
    """
    tz = resolve_zone(zone)
    if tz is None:
        raise ValueError(f"Unknown timezone: {zone}")
    moment = (now or datetime.now(timezone.utc)).astimezone(tz)
    return TimezonedValue(value=f"{moment:%Y-%m-%d %H:%M:%S}", zone=zone)


def create_date(date_str: str, zone: str) -> Optional[TimezonedValue]:
    """Build a date-only value, or None if the date or zone is invalid."""
    naive = parse_wall_clock(date_str)
    tz = resolve_zone(zone)
    if naive is None or tz is None or len(date_str.strip()) != 10:
        logger.error(f"Invalid date/zone combination: '{date_str}' in '{zone}'")
        return None
    return TimezonedValue(value=f"{naive:%Y-%m-%d}", zone=zone)


def create_date_time(date_str: str, time_str: str, zone: str) -> Optional[TimezonedValue]:
    """Build a date-time value, or None if it does not name a real moment in ``zone``."""
    candidate = TimezonedValue(value=f"{date_str} {time_str}", zone=zone)
    instant = to_instant(candidate)
    if instant is None:
        logger.error(f"Invalid date/time/zone combination: '{date_str} {time_str}' in '{zone}'")
        return None
    local = instant.astimezone(resolve_zone(zone)).replace(tzinfo=None)
    return TimezonedValue(value=format_wall_clock(local), zone=zone)
