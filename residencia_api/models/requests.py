# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Request models for API endpoints.
"""

from decimal import Decimal
from typing import Optional
from pydantic import BaseModel, Field, ConfigDict, field_validator

from .entities import TimezonedValue


class LicenseTargetRequest(BaseModel):
    """Identifies the (contract, order) pair a license is requested for."""

    model_config = ConfigDict(populate_by_name=True)

    contract_id: str = Field(..., alias="contractId", min_length=1, description="Contract ID")
    order_id: str = Field(..., alias="orderId", min_length=1, description="Order ID")

    @field_validator('contract_id', 'order_id')
    @classmethod
    def strip_ids(cls, v):
        """Reject blank identifiers."""
        v = v.strip()
        if not v:
            raise ValueError('Identifier cannot be blank')
        return v


class ValidateLicenseRequest(LicenseTargetRequest):
    """Request model for validating a license issuance."""
    pass


class IssueLicenseRequest(LicenseTargetRequest):
    """Request model for issuing a license."""

    invoice_id: Optional[str] = Field(
        None,
        alias="invoiceId",
        description="Preferred invoice for subscription renewals"
    )


class LicenseListQuery(BaseModel):
    """Query parameters for listing licenses."""

    model_config = ConfigDict(populate_by_name=True)

    contract_id: str = Field(..., alias="contractId", min_length=1, description="Contract ID")


class InvoiceValidationRequest(BaseModel):
    """Invoice data to check before it is saved."""

    model_config = ConfigDict(populate_by_name=True)

    order_id: str = Field(..., alias="orderId", min_length=1, description="Order the invoice belongs to")
    invoice_id: Optional[str] = Field(
        None,
        alias="invoiceId",
        description="Stored invoice being updated; omitted when creating one"
    )
    issue_date: Optional[TimezonedValue] = Field(None, alias="issueDate", description="Invoice date")
    due_date: Optional[TimezonedValue] = Field(None, alias="dueDate", description="Due date")
    paid_date: Optional[TimezonedValue] = Field(None, alias="paidDate", description="Payment date")
    currency: Optional[str] = Field(None, description="ISO currency code")
    amount_total: Optional[Decimal] = Field(None, alias="amountTotal", description="Invoice total")
    amount_paid: Optional[Decimal] = Field(None, alias="amountPaid", description="Amount paid")

    @field_validator('order_id')
    @classmethod
    def strip_order_id(cls, v):
        v = v.strip()
        if not v:
            raise ValueError('Identifier cannot be blank')
        return v


class OrderPath(BaseModel):
    """Path parameters naming an order."""

    order_id: str = Field(..., min_length=1, description="Order ID")
