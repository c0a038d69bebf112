# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Enumeration types for the Residencia licensing platform.
"""

from enum import Enum


class OrderType(str, Enum):
    """Kind of billing arrangement an order represents."""
    SUBSCRIPTION = "subscription"
    TEMPORARY_LICENSE = "temporary-license"
    PERPETUAL_LICENSE = "perpetual-license"


class PaymentMode(str, Enum):
    """How an order is paid for."""
    PREPAID = "prepaid"
    DUE_ON_EXPIRATION = "due-on-expiration"
    FREE = "free"


class Periodicity(str, Enum):
    """Billing periodicity of subscription orders."""
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    MONTHLY = "monthly"
    BIMONTHLY = "bimonthly"
    QUARTERLY = "quarterly"
    FOUR_MONTHLY = "four-monthly"
    SEMIANNUAL = "semiannual"
    ANNUAL = "annual"


class PaymentStatus(str, Enum):
    """Invoice payment status (mirrors the accounting system states)."""
    NOT_PAID = "not_paid"
    IN_PAYMENT = "in_payment"
    PAID = "paid"
    PARTIAL = "partial"
    REVERSED = "reversed"
    BLOCKED = "blocked"
    INVOICING_LEGACY = "invoicing_legacy"
    DRAFT = "draft"
    CANCEL = "cancel"


class InvoiceKind(str, Enum):
    """Where an invoice was issued."""
    MANUAL = "manual"
    ODOO = "odoo"


class ComparisonResult(str, Enum):
    """Four-valued ordering of two timezoned values."""
    LESS = "less"
    EQUAL = "equal"
    GREATER = "greater"
    INVALID = "invalid"


class LicenseStatus(str, Enum):
    """Derived status of a license at a given instant."""
    ACTIVE = "active"
    PENDING = "pending"
    EXPIRED = "expired"
    ERROR = "error"
