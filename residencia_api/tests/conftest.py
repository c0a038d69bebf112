# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Pytest configuration and fixtures.
"""

import os
import pytest
from datetime import datetime, timezone
from decimal import Decimal
from unittest.mock import MagicMock

from residencia_api.models.entities import Contract, Invoice, License, LicenseLink, Order, TimezonedValue
from residencia_api.models.enums import OrderType, PaymentMode, PaymentStatus
from residencia_api.domain.license_validation import LicensingSnapshot

# Set test environment
os.environ['ENVIRONMENT'] = 'test'
os.environ['OTEL_ENABLED'] = 'false'

ZONE = "UTC"
NOW_VALUE = "2024-06-15 12:00:00"
CONTRACT_ID = "contract-1"
ORDER_ID = "order-1"


def tv(value: str, zone: str = ZONE) -> TimezonedValue:
    """Shorthand for a timezoned value."""
    return TimezonedValue(value=value, zone=zone)


@pytest.fixture
def now():
    """Fixed 'now' for validation tests."""
    return tv(NOW_VALUE)


@pytest.fixture
def fixed_clock():
    """Clock returning the instant of NOW_VALUE in UTC."""
    return lambda: datetime(2024, 6, 15, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def make_contract():
    def factory(**overrides):
        data = {
            "id": CONTRACT_ID,
            "residence_id": "residence-1",
            "client_id": "client-1",
            "start": tv("2024-01-01"),
            "end": None,
            "is_indefinite": True
        }
        data.update(overrides)
        return Contract(**data)
    return factory


@pytest.fixture
def make_order():
    def factory(**overrides):
        data = {
            "id": ORDER_ID,
            "contract_id": CONTRACT_ID,
            "type": OrderType.TEMPORARY_LICENSE,
            "payment_mode": PaymentMode.PREPAID,
            "start": tv("2024-06-01"),
            "end": tv("2024-12-31"),
            "user_count": 25,
            "active": True
        }
        data.update(overrides)
        return Order(**data)
    return factory


@pytest.fixture
def make_invoice():
    def factory(**overrides):
        data = {
            "id": "invoice-1",
            "order_id": ORDER_ID,
            "issue_date": tv("2024-06-01"),
            "due_date": tv("2024-06-30"),
            "paid_date": tv("2024-06-01"),
            "payment_status": PaymentStatus.PAID,
            "currency": "MXN",
            "amount_paid": Decimal("1000.00"),
            "amount_total": Decimal("1000.00")
        }
        data.update(overrides)
        return Invoice(**data)
    return factory


@pytest.fixture
def make_license():
    def factory(**overrides):
        data = {
            "id": "license-1",
            "contract_id": CONTRACT_ID,
            "order_id": ORDER_ID,
            "user_count": 25,
            "start": tv("2024-01-01"),
            "end": tv("2024-03-01")
        }
        data.update(overrides)
        return License(**data)
    return factory


@pytest.fixture
def make_link():
    def factory(**overrides):
        data = {
            "id": "link-1",
            "order_id": ORDER_ID,
            "contract_id": CONTRACT_ID,
            "invoice_id": "invoice-1",
            "license_id": "license-1"
        }
        data.update(overrides)
        return LicenseLink(**data)
    return factory


@pytest.fixture
def make_snapshot(make_contract, make_order):
    """Snapshot with a default contract and order unless given explicitly."""
    def factory(contract=..., order=..., licenses=None, invoices=None, links=None):
        return LicensingSnapshot(
            contract=make_contract() if contract is ... else contract,
            order=make_order() if order is ... else order,
            licenses=licenses or [],
            invoices=invoices or [],
            links=links or []
        )
    return factory


@pytest.fixture
def mock_lock_service():
    """Lock service whose lock() context manager does nothing."""
    service = MagicMock()
    service.lock.return_value.__enter__.return_value = None
    service.lock.return_value.__exit__.return_value = False
    return service
