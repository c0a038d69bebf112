# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for Pydantic data models.
"""

import pytest
from pydantic import ValidationError

from residencia_api.models.entities import Contract, LicenseLink, Order, TimezonedValue, zero_invoice_id
from residencia_api.models.enums import OrderType, PaymentMode
from residencia_api.models.requests import IssueLicenseRequest, LicenseListQuery, ValidateLicenseRequest


class TestTimezonedValue:
    """Test the timezoned value model."""

    def test_frozen(self):
        """Test timezoned values are immutable."""
        value = TimezonedValue(value="2024-01-01", zone="UTC")

        with pytest.raises(ValidationError):
            value.value = "2024-01-02"

    def test_malformed_value_accepted(self):
        """Test a malformed value loads and is left to the temporal helpers."""
        value = TimezonedValue(value="not a date", zone="Nowhere/City")

        assert str(value) == "not a date (Nowhere/City)"


class TestContractModel:
    """Test Contract model validation."""

    def test_valid_contract(self):
        """Test creating a valid contract from stored camelCase data."""
        contract = Contract.model_validate({
            "_id": "ignored",
            "id": "contract-1",
            "residenceId": "residence-1",
            "clientId": "client-1",
            "start": {"value": "2024-01-01", "zone": "America/Mexico_City"},
            "isIndefinite": True,
            "officialEmail": "Admin@Residencia.MX"
        })

        assert contract.id == "contract-1"
        assert contract.end is None
        assert contract.official_email == "admin@residencia.mx"

    def test_trial_end_requires_trial(self):
        """Test a trial end on a non-trial contract is rejected."""
        with pytest.raises(ValidationError):
            Contract(
                residence_id="residence-1",
                client_id="client-1",
                start=TimezonedValue(value="2024-01-01", zone="UTC"),
                trial_end=TimezonedValue(value="2024-02-01", zone="UTC")
            )


class TestOrderModel:
    """Test Order model validation."""

    def test_enum_values_stored(self, make_order):
        """Test enums are stored as their wire values."""
        order = make_order(type=OrderType.PERPETUAL_LICENSE, payment_mode=PaymentMode.FREE)

        assert order.type == "perpetual-license"
        assert order.is_free

    def test_unknown_order_type(self):
        """Test unknown order types are rejected."""
        with pytest.raises(ValidationError):
            Order(
                contract_id="contract-1",
                type="lifetime",
                payment_mode="prepaid",
                start=TimezonedValue(value="2024-01-01", zone="UTC")
            )

    def test_negative_user_count(self, make_order):
        """Test user counts cannot be negative."""
        with pytest.raises(ValidationError):
            make_order(user_count=-1)


class TestLicenseLinkModel:
    """Test LicenseLink model behaviour."""

    def test_zero_invoice_id(self):
        """Test the zero-invoice sentinel format."""
        assert zero_invoice_id("order-1") == "FC0-order-1"

    def test_consumes(self):
        """Test a link consumes its invoice only once tied to a license."""
        link = LicenseLink(order_id="order-1", invoice_id="invoice-1", license_id="license-1")
        pending = LicenseLink(order_id="order-1", invoice_id="invoice-1")

        assert link.consumes("invoice-1")
        assert not link.consumes("invoice-2")
        assert not pending.consumes("invoice-1")


class TestRequestModels:
    """Test request model validation."""

    def test_validate_request(self):
        """Test identifiers are read from camelCase and stripped."""
        request = ValidateLicenseRequest(contractId=" contract-1 ", orderId="order-1")

        assert request.contract_id == "contract-1"
        assert request.order_id == "order-1"

    def test_blank_identifier(self):
        """Test blank identifiers are rejected."""
        with pytest.raises(ValidationError):
            ValidateLicenseRequest(contractId="   ", orderId="order-1")

    def test_issue_request_invoice_optional(self):
        """Test the preferred invoice is optional."""
        assert IssueLicenseRequest(contractId="c", orderId="o").invoice_id is None
        assert IssueLicenseRequest(contractId="c", orderId="o", invoiceId="i").invoice_id == "i"

    def test_list_query_requires_contract(self):
        """Test the list query needs a contract id."""
        with pytest.raises(ValidationError):
            LicenseListQuery()
