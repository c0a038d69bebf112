# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Models package - Pydantic schemas and data models for the Residencia licensing platform.
"""

# Base models
from .base import BaseEntity

# Enumerations
from .enums import (
    OrderType,
    PaymentMode,
    Periodicity,
    PaymentStatus,
    InvoiceKind,
    ComparisonResult,
    LicenseStatus
)

# Core entities
from .entities import (
    TimezonedValue,
    Contract,
    Order,
    Invoice,
    License,
    LicenseLink,
    zero_invoice_id
)

# Request models
from .requests import (
    ValidateLicenseRequest,
    IssueLicenseRequest,
    LicenseListQuery
)

# Response models
from .responses import (
    HalLink,
    HalResponse,
    ValidationResultResponse,
    LicenseResponse,
    IssuedLicenseResponse,
    LicenseCollection,
    HealthCheckResponse,
    ErrorResponse,
    LicenseValidationErrorResponse
)

__all__ = [
    # Base models
    "BaseEntity",

    # Enumerations
    "OrderType",
    "PaymentMode",
    "Periodicity",
    "PaymentStatus",
    "InvoiceKind",
    "ComparisonResult",
    "LicenseStatus",

    # Core entities
    "TimezonedValue",
    "Contract",
    "Order",
    "Invoice",
    "License",
    "LicenseLink",
    "zero_invoice_id",

    # Request models
    "ValidateLicenseRequest",
    "IssueLicenseRequest",
    "LicenseListQuery",

    # Response models
    "HalLink",
    "HalResponse",
    "ValidationResultResponse",
    "LicenseResponse",
    "IssuedLicenseResponse",
    "LicenseCollection",
    "HealthCheckResponse",
    "ErrorResponse",
    "LicenseValidationErrorResponse"
]
