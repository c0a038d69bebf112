# SPDX-License-Identifier: Apache-2.0

"""
Tests for subscription period rules.
"""

import pytest
from decimal import Decimal

from residencia_api.domain.orders import amount_per_period, periodicity_to_duration, subscription_period_warning
from residencia_api.domain.temporal import Duration
from residencia_api.models.entities import TimezonedValue
from residencia_api.models.enums import OrderType, Periodicity


def tv(value, zone="UTC"):
    return TimezonedValue(value=value, zone=zone)


class TestPeriodicity:
    """Test periodicity lengths."""

    @pytest.mark.parametrize("periodicity,expected", [
        ("weekly", Duration(days=7)),
        ("biweekly", Duration(days=14)),
        ("monthly", Duration(months=1)),
        ("bimonthly", Duration(months=2)),
        ("quarterly", Duration(months=3)),
        ("four-monthly", Duration(months=4)),
        ("semiannual", Duration(months=6)),
        ("annual", Duration(years=1)),
    ])
    def test_known_periodicities(self, periodicity, expected):
        assert periodicity_to_duration(periodicity) == expected

    @pytest.mark.parametrize("periodicity", [None, "", "daily"])
    def test_unknown_periodicity(self, periodicity):
        assert periodicity_to_duration(periodicity) is None


class TestSubscriptionPeriods:
    """Test whole-period checks on subscription ranges."""

    @pytest.fixture
    def subscription(self, make_order):
        def factory(start, end, periodicity=Periodicity.MONTHLY, total=None):
            return make_order(
                type=OrderType.SUBSCRIPTION,
                periodicity=periodicity,
                start=tv(start),
                end=tv(end),
                total_amount=total
            )
        return factory

    def test_exact_range_has_no_warning(self, subscription):
        assert subscription_period_warning(subscription("2024-01-01", "2024-07-01")) is None

    def test_partial_range_warns_with_expected_end(self, subscription):
        warning = subscription_period_warning(subscription("2024-01-01", "2024-07-15"))
        assert warning.startswith("Advertencia: El rango de fechas (2024-01-01 a 2024-07-15)")
        assert "6 período(s)" in warning
        assert warning.endswith("2024-07-01.")

    def test_weekly_range(self, subscription):
        assert subscription_period_warning(subscription("2024-01-01", "2024-01-29", Periodicity.WEEKLY)) is None

    def test_non_subscription_not_checked(self, make_order):
        assert subscription_period_warning(make_order()) is None

    def test_amount_per_period(self, subscription):
        order = subscription("2024-01-01", "2025-01-01", Periodicity.QUARTERLY, Decimal("1000"))
        assert amount_per_period(order) == Decimal("250.00")

    def test_amount_rounded_to_cents(self, subscription):
        order = subscription("2024-01-01", "2024-04-01", Periodicity.MONTHLY, Decimal("100"))
        assert amount_per_period(order) == Decimal("33.33")

    def test_amount_for_less_than_one_period(self, subscription):
        order = subscription("2024-01-01", "2024-01-20", Periodicity.MONTHLY, Decimal("100"))
        assert amount_per_period(order) is None

    def test_amount_without_total(self, subscription):
        assert amount_per_period(subscription("2024-01-01", "2024-04-01")) is None
