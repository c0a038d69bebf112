# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Response models for API endpoints with HAL support.
"""

from typing import List, Optional, Dict, Any
from pydantic import BaseModel, Field, ConfigDict

from .entities import TimezonedValue
from .enums import LicenseStatus


class HalLink(BaseModel):
    """HAL link representation."""

    href: str = Field(..., description="Link URL")
    method: Optional[str] = Field(None, description="HTTP method")
    type: Optional[str] = Field(None, description="Content type")
    title: Optional[str] = Field(None, description="Link title")
    templated: Optional[bool] = Field(None, description="Whether URL is templated")


class HalResponse(BaseModel):
    """Base HAL response with links."""

    model_config = ConfigDict(populate_by_name=True)

    links: Dict[str, HalLink] = Field(default_factory=dict, alias="_links", description="HAL links")


class ValidationResultResponse(HalResponse):
    """Verdict of a license validation."""

    is_valid: bool = Field(..., alias="isValid", description="Whether a license may be issued")
    error_messages: List[str] = Field(
        default_factory=list,
        alias="errorMessages",
        description="Failed rules, in evaluation order"
    )
    warnings: List[str] = Field(default_factory=list, description="Advisory messages that do not block issuance")


class InvoiceValidationResponse(HalResponse):
    """Verdict on invoice data."""

    is_valid: bool = Field(..., alias="isValid", description="Whether the invoice may be saved")
    error_messages: List[str] = Field(default_factory=list, alias="errorMessages", description="Failed rules")


class OrderBillingResponse(HalResponse):
    """Billing period summary of an order."""

    order_id: str = Field(..., alias="orderId", description="Order ID")
    type: str = Field(..., description="Order type")
    periodicity: Optional[str] = Field(None, description="Billing periodicity")
    amount_per_period: Optional[str] = Field(
        None,
        alias="amountPerPeriod",
        description="Order total per whole billing period, as a decimal string"
    )
    warnings: List[str] = Field(default_factory=list, description="Period range warnings")


class LicenseResponse(HalResponse):
    """License resource."""

    id: str = Field(..., description="License ID")
    contract_id: str = Field(..., alias="contractId", description="Contract ID")
    order_id: str = Field(..., alias="orderId", description="Order ID")
    user_count: int = Field(..., alias="userCount", description="Licensed users")
    start: TimezonedValue = Field(..., description="Validity start")
    end: Optional[TimezonedValue] = Field(None, description="Validity end")
    credit_days: int = Field(0, alias="creditDays", description="Grace days after expiry")
    status: LicenseStatus = Field(..., description="Status at request time")


class IssuedLicenseResponse(LicenseResponse):
    """License created by an issuance request."""

    invoice_id: str = Field(..., alias="invoiceId", description="Invoice funding the license")


class LicenseCollection(HalResponse):
    """Licenses of a contract."""

    total: int = Field(..., description="Total number of items")
    embedded: Dict[str, List[LicenseResponse]] = Field(
        default_factory=dict,
        alias="_embedded",
        description="Embedded licenses"
    )


class HealthCheckResponse(HalResponse):
    """Health check response model."""

    status: str = Field(..., description="Overall health status")
    service: str = Field(..., description="Service name")
    version: str = Field(..., description="API version")
    environment: str = Field(..., description="Deployment environment")
    timestamp: str = Field(..., description="Check timestamp")
    dependencies: Dict[str, Any] = Field(default_factory=dict, description="Dependency status")


class ErrorResponse(BaseModel):
    """RFC 7807 problem details."""

    type: str = Field(..., description="Error type URI")
    title: str = Field(..., description="Error title")
    status: int = Field(..., description="HTTP status code")
    detail: str = Field(..., description="Error detail message")
    instance: str = Field(..., description="Request path")
    errors: Optional[List[Any]] = Field(None, description="Individual errors")


class LicenseValidationErrorResponse(ErrorResponse):
    """Problem details for an issuance rejected by the business rules."""

    is_valid: bool = Field(False, alias="isValid", description="Always false")
    error_messages: List[str] = Field(default_factory=list, alias="errorMessages", description="Failed rules")
