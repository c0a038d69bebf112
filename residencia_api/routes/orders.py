# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Order billing summary endpoint.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace

from residencia_api.middleware.error_handler import NotFoundException, ServiceUnavailableException
from residencia_api.models.requests import OrderPath
from residencia_api.models.responses import ErrorResponse, OrderBillingResponse
from residencia_api.domain.license_validation import ORDER_NOT_FOUND
from residencia_api.routes.licenses import STORE_UNAVAILABLE
from residencia_api.services.billing import OrderNotFound
from residencia_api.services.repository import RepositoryError

tracer = trace.get_tracer(__name__)

orders_tag = Tag(name="Orders", description="Order billing periods")
orders_bp = APIBlueprint(
    'orders',
    __name__,
    url_prefix='/api/orders',
    abp_tags=[orders_tag]
)


@orders_bp.get(
    '/<order_id>/billing',
    responses={200: OrderBillingResponse, 404: ErrorResponse, 503: ErrorResponse}
)
def get_order_billing(path: OrderPath):
    """
    Billing period summary of an order.

    ``amountPerPeriod`` is the order total split over its whole periods and
    ``warnings`` flags subscription ranges that are not a whole number of
    periods. Both only apply to subscriptions.
    """
    with tracer.start_as_current_span("orders.billing", attributes={"order.id": path.order_id}):
        try:
            summary = current_app.billing_service.order_summary(path.order_id)
        except OrderNotFound as e:
            raise NotFoundException(ORDER_NOT_FOUND) from e
        except RepositoryError as e:
            raise ServiceUnavailableException(STORE_UNAVAILABLE) from e

        order = summary.order
        data = {
            "orderId": order.id,
            "type": order.type,
            "periodicity": order.periodicity,
            "amountPerPeriod": None if summary.amount_per_period is None else str(summary.amount_per_period),
            "warnings": list(summary.warnings)
        }
        return jsonify(current_app.hal_formatter.format_order_billing(data)), 200
