# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Core entity models for the Residencia licensing platform.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, field_validator, model_validator, ConfigDict
from .base import BaseEntity
from .enums import (
    OrderType,
    PaymentMode,
    Periodicity,
    PaymentStatus,
    InvoiceKind
)

ZERO_INVOICE_PREFIX = "FC0-"


def zero_invoice_id(order_id: str) -> str:
    """Sentinel invoice id that free orders link their licenses to."""
    return f"{ZERO_INVOICE_PREFIX}{order_id}"


class TimezonedValue(BaseModel):
    """
    Wall-clock date or date-time qualified by an IANA zone.

    This is not an instant: ``value`` is read as local time in ``zone``.
    Malformed values are accepted here and treated as invalid by the
    temporal helpers, so loading stored data never fails on a bad date.
    """

    model_config = ConfigDict(frozen=True)

    value: str = Field(..., description="YYYY-MM-DD[ HH:mm[:ss[.fff]]] local time")
    zone: str = Field(..., description="IANA zone identifier")

    def __str__(self) -> str:
        return f"{self.value} ({self.zone})"


class Contract(BaseEntity):
    """Agreement with a Residencia's client that bounds all of its orders."""

    residence_id: str = Field(..., description="Residencia covered by the contract")
    client_id: str = Field(..., description="Client who signed the contract")
    start: TimezonedValue = Field(..., description="Contract start")
    end: Optional[TimezonedValue] = Field(None, description="Contract end (None = indefinite)")
    is_indefinite: bool = Field(default=False, description="Whether the contract has no end")
    is_trial: bool = Field(default=False, description="Whether the contract starts with a trial")
    trial_end: Optional[TimezonedValue] = Field(None, description="End of the trial period")
    official_email: Optional[str] = Field(None, description="Main communication address")
    licensed_users: Optional[int] = Field(None, ge=0, description="Users covered by the contract")
    unlimited_users: bool = Field(default=False, description="Whether user count is unlimited")

    @field_validator('official_email')
    @classmethod
    def validate_email(cls, v):
        """Validate email format."""
        if v is None:
            return v
        import re
        email_pattern = r'^[a-zA-Z0-9._%+-]+@[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}$'
        if not re.match(email_pattern, v.lower()):
            raise ValueError('Invalid email format')
        return v.lower()

    @model_validator(mode='after')
    def validate_trial(self):
        """A trial end only makes sense on trial contracts."""
        if self.trial_end is not None and not self.is_trial:
            raise ValueError('trial_end requires is_trial')
        return self


class Order(BaseEntity):
    """Billing arrangement under a contract (pedido)."""

    contract_id: str = Field(..., description="Owning contract")
    type: OrderType = Field(..., description="Order type")
    payment_mode: PaymentMode = Field(..., description="Payment mode")
    periodicity: Optional[Periodicity] = Field(None, description="Subscription periodicity")
    start: TimezonedValue = Field(..., description="Order start")
    end: Optional[TimezonedValue] = Field(None, description="Order end")
    user_count: Optional[int] = Field(None, ge=0, description="Licensed users")
    active: bool = Field(default=True, description="Whether licenses may be issued")
    total_amount: Optional[Decimal] = Field(None, ge=0, description="Order total")
    currency: Optional[str] = Field(None, description="ISO currency code")

    @property
    def is_free(self) -> bool:
        return self.payment_mode == PaymentMode.FREE


class Invoice(BaseEntity):
    """Billing document tied to an order (factura)."""

    order_id: str = Field(..., description="Owning order")
    issue_date: Optional[TimezonedValue] = Field(None, description="Invoice date")
    due_date: Optional[TimezonedValue] = Field(None, description="Due date")
    paid_date: Optional[TimezonedValue] = Field(None, description="Payment date")
    payment_status: PaymentStatus = Field(default=PaymentStatus.NOT_PAID, description="Payment status")
    currency: Optional[str] = Field(None, description="ISO currency code")
    amount_paid: Optional[Decimal] = Field(None, description="Amount paid")
    amount_total: Optional[Decimal] = Field(None, description="Invoice total")
    kind: InvoiceKind = Field(default=InvoiceKind.MANUAL, description="Issuing system")
    odoo_invoice_id: Optional[str] = Field(None, description="Accounting system reference")

    def is_paid(self) -> bool:
        """Check if the invoice is fully paid."""
        return self.payment_status == PaymentStatus.PAID


class License(BaseEntity):
    """Feature-unlocking grant with a validity interval (licencia)."""

    contract_id: str = Field(..., description="Owning contract")
    order_id: str = Field(..., description="Order the license was issued under")
    user_count: int = Field(default=0, ge=0, description="Licensed users")
    start: TimezonedValue = Field(..., description="Validity start")
    end: Optional[TimezonedValue] = Field(None, description="Validity end (None = truly perpetual)")
    credit_days: int = Field(default=0, ge=0, description="Grace days after expiry before cut-off")


class LicenseLink(BaseEntity):
    """Join record marking which invoice funded which license (licenciamiento)."""

    order_id: str = Field(..., description="Order of the invoice")
    contract_id: Optional[str] = Field(None, description="Contract of the order, for contract-scoped lookups")
    invoice_id: str = Field(..., description="Invoice id or zero-invoice sentinel")
    license_id: Optional[str] = Field(None, description="License funded by the invoice")

    def consumes(self, invoice_id: str) -> bool:
        """Whether this link marks ``invoice_id`` as already used by a license."""
        return self.invoice_id == invoice_id and bool(self.license_id)
