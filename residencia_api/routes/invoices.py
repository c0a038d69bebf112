# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Invoice data validation endpoint.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging

from residencia_api.middleware.error_handler import ServiceUnavailableException
from residencia_api.models.entities import Invoice
from residencia_api.models.requests import InvoiceValidationRequest
from residencia_api.models.responses import ErrorResponse, InvoiceValidationResponse
from residencia_api.routes.licenses import STORE_UNAVAILABLE
from residencia_api.services.repository import RepositoryError

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
invoices_tag = Tag(name="Invoices", description="Invoice data checks")
invoices_bp = APIBlueprint(
    'invoices',
    __name__,
    url_prefix='/api/invoices',
    abp_tags=[invoices_tag]
)


@invoices_bp.post(
    '/validate',
    responses={200: InvoiceValidationResponse, 400: ErrorResponse, 503: ErrorResponse}
)
def validate_invoice(body: InvoiceValidationRequest):
    """
    Check invoice data before it is created or updated.

    Send ``invoiceId`` when updating a stored invoice; it is then left out
    of the order's other invoices and the creation-only rules are skipped.
    Always answers 200 with ``isValid`` and the failed rules.
    """
    with tracer.start_as_current_span(
        "invoices.validate",
        attributes={"order.id": body.order_id}
    ) as span:
        invoice = Invoice(
            order_id=body.order_id,
            issue_date=body.issue_date,
            due_date=body.due_date,
            paid_date=body.paid_date,
            currency=body.currency,
            amount_total=body.amount_total,
            amount_paid=body.amount_paid
        )
        try:
            result = current_app.billing_service.validate_invoice(invoice, body.invoice_id)
        except RepositoryError as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise ServiceUnavailableException(STORE_UNAVAILABLE) from e

        data = {"isValid": result.is_valid, "errorMessages": list(result.error_messages)}
        return jsonify(current_app.hal_formatter.format_invoice_validation(data, body.order_id)), 200
