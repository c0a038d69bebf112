# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Invoice and order billing checks.

Loads the order and its invoices from the repository and runs the
invoice-form rules and the subscription period rules over them.
"""

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Optional

from opentelemetry import trace

from residencia_api.domain.invoices import validate_invoice_data
from residencia_api.domain.orders import amount_per_period, subscription_period_warning
from residencia_api.domain.results import ValidationResult
from residencia_api.models.entities import Invoice, Order
from residencia_api.services.repository import LicensingRepository

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)


class OrderNotFound(Exception):
    """Raised when summarizing an unknown order."""
    pass


@dataclass
class OrderBillingSummary:
    order: Order
    amount_per_period: Optional[Decimal] = None
    warnings: List[str] = field(default_factory=list)


class BillingService:
    """Checks on invoice data and subscription billing periods."""

    def __init__(self, repository: LicensingRepository):
        self.repository = repository

    def validate_invoice(self, invoice: Invoice, existing_id: Optional[str] = None) -> ValidationResult:
        """
        Validate invoice data against its order and the order's other invoices.

        Args:
            invoice: Invoice as entered; ``order_id`` names its order
            existing_id: Id of the stored invoice being updated, None when creating

        Returns:
            ValidationResult with every rule violation
        """
        is_creating = existing_id is None
        with tracer.start_as_current_span(
            "billing.validate_invoice",
            attributes={"order.id": invoice.order_id, "invoice.is_creating": is_creating}
        ) as span:
            order = self.repository.get_order(invoice.order_id)
            others: List[Invoice] = []
            if order is not None:
                others = [
                    existing for existing in self.repository.list_invoices_by_order(order.id)
                    if existing.id != existing_id
                ]

            result = validate_invoice_data(invoice, order, others, is_creating)

            span.set_attribute("validation.is_valid", result.is_valid)
            if not result.is_valid:
                logger.info(
                    f"Invoice data rejected for order {invoice.order_id}",
                    extra={"order_id": invoice.order_id, "error_messages": result.error_messages}
                )
            return result

    def order_summary(self, order_id: str) -> OrderBillingSummary:
        """Amount per billing period and period warnings of an order."""
        with tracer.start_as_current_span("billing.order_summary", attributes={"order.id": order_id}):
            order = self.repository.get_order(order_id)
            if order is None:
                raise OrderNotFound(order_id)

            warning = subscription_period_warning(order)
            return OrderBillingSummary(
                order=order,
                amount_per_period=amount_per_period(order),
                warnings=[warning] if warning else []
            )
