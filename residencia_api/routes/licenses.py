# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
License validation, issuance and listing endpoints.
"""

from flask import jsonify, current_app
from flask_openapi3 import APIBlueprint, Tag
from opentelemetry import trace
from opentelemetry.trace import Status, StatusCode
import logging
from typing import Any, Dict

from residencia_api.domain.issuance import IssuanceCalculationError
from residencia_api.middleware.error_handler import (
    ConflictException,
    InternalErrorException,
    LicenseValidationException,
    NotFoundException,
    ServiceUnavailableException
)
from residencia_api.models.entities import License
from residencia_api.models.enums import LicenseStatus
from residencia_api.models.requests import IssueLicenseRequest, LicenseListQuery, ValidateLicenseRequest
from residencia_api.models.responses import (
    ErrorResponse,
    IssuedLicenseResponse,
    LicenseCollection,
    LicenseValidationErrorResponse,
    ValidationResultResponse
)
from residencia_api.domain.license_validation import CONTRACT_NOT_FOUND
from residencia_api.domain.licenses import license_status
from residencia_api.services.licensing import ContractNotFound, LicenseValidationFailed
from residencia_api.services.redis import LockNotAcquiredError
from residencia_api.services.repository import LicenseConflictError, RepositoryError

# Set up logging and tracing
logger = logging.getLogger(__name__)
tracer = trace.get_tracer(__name__)

# Create API blueprint
licenses_tag = Tag(name="Licenses", description="License validation and issuance")
licenses_bp = APIBlueprint(
    'licenses',
    __name__,
    url_prefix='/api/licenses',
    abp_tags=[licenses_tag]
)

ISSUANCE_IN_PROGRESS = "Ya se está generando una licencia para este contrato, intente nuevamente"
STORE_UNAVAILABLE = "El almacenamiento de licencias no está disponible"


def license_to_dict(license: License, status: LicenseStatus) -> Dict[str, Any]:
    """Wire representation of a license."""
    data = license.model_dump(
        by_alias=True,
        mode='json',
        include={'id', 'contract_id', 'order_id', 'user_count', 'start', 'end', 'credit_days'}
    )
    data['status'] = LicenseStatus(status).value
    return data


@licenses_bp.post(
    '/validate',
    responses={200: ValidationResultResponse, 400: ErrorResponse, 503: ErrorResponse}
)
def validate_license(body: ValidateLicenseRequest):
    """
    Check whether a license may be issued for an order.

    Always answers 200 with ``isValid`` and the ordered ``errorMessages``;
    a missing contract or order is reported as a failed rule.
    """
    with tracer.start_as_current_span(
        "licenses.validate",
        attributes={"contract.id": body.contract_id, "order.id": body.order_id}
    ) as span:
        service = current_app.licensing_service
        try:
            result = service.validate(body.contract_id, body.order_id)
        except RepositoryError as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise ServiceUnavailableException(STORE_UNAVAILABLE) from e

        response = current_app.hal_formatter.format_validation_result(
            result.to_dict(), body.contract_id, body.order_id
        )
        return jsonify(response), 200


@licenses_bp.post(
    '',
    responses={
        201: IssuedLicenseResponse,
        400: ErrorResponse,
        409: ErrorResponse,
        422: LicenseValidationErrorResponse,
        500: ErrorResponse,
        503: ErrorResponse
    }
)
def issue_license(body: IssueLicenseRequest):
    """
    Issue a license for an order.

    Validates, computes the license dates, picks the funding invoice and
    stores the license with its link atomically.
    """
    with tracer.start_as_current_span(
        "licenses.issue",
        attributes={"contract.id": body.contract_id, "order.id": body.order_id}
    ) as span:
        service = current_app.licensing_service
        try:
            issued = service.issue_license(body.contract_id, body.order_id, body.invoice_id)
        except LicenseValidationFailed as e:
            raise LicenseValidationException(e.result.error_messages) from e
        except LockNotAcquiredError as e:
            raise ConflictException(ISSUANCE_IN_PROGRESS) from e
        except LicenseConflictError as e:
            raise ConflictException(str(e)) from e
        except IssuanceCalculationError as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            logger.error(
                f"Issuance calculation failed for validated order {body.order_id}: {e}",
                extra={"contract_id": body.contract_id, "order_id": body.order_id}
            )
            raise InternalErrorException(str(e)) from e
        except RepositoryError as e:
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise ServiceUnavailableException(STORE_UNAVAILABLE) from e

        data = license_to_dict(issued.license, license_status(issued.license, service.current_time()))
        data['invoiceId'] = issued.link.invoice_id
        return jsonify(current_app.hal_formatter.format_license(data)), 201


@licenses_bp.get(
    '',
    responses={200: LicenseCollection, 404: ErrorResponse, 503: ErrorResponse}
)
def list_licenses(query: LicenseListQuery):
    """List the licenses of a contract with their current status."""
    with tracer.start_as_current_span(
        "licenses.list",
        attributes={"contract.id": query.contract_id}
    ):
        service = current_app.licensing_service
        try:
            views = service.list_licenses(query.contract_id)
        except ContractNotFound as e:
            raise NotFoundException(CONTRACT_NOT_FOUND) from e
        except RepositoryError as e:
            raise ServiceUnavailableException(STORE_UNAVAILABLE) from e

        items = [license_to_dict(view.license, view.status) for view in views]
        return jsonify(current_app.hal_formatter.format_license_collection(items, query.contract_id)), 200
