# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Error handling middleware with structured HAL responses.

HTTP errors, application exceptions and unexpected failures all leave the
API as RFC 7807 problem documents carrying HAL links.
"""

from flask import Flask, request, jsonify
from werkzeug.exceptions import HTTPException
from typing import List
from opentelemetry import trace
import logging

from residencia_api.services.hal import HalFormatter

tracer = trace.get_tracer(__name__)
logger = logging.getLogger(__name__)

# Problem type and title per HTTP status
HTTP_PROBLEMS = {
    400: ("bad-request", "Bad Request"),
    404: ("resource-not-found", "Resource Not Found"),
    405: ("method-not-allowed", "Method Not Allowed"),
    409: ("resource-conflict", "Resource Conflict"),
    422: ("validation-error", "Validation Error"),
    500: ("internal-server-error", "Internal Server Error"),
    503: ("service-unavailable", "Service Unavailable"),
}

HIDDEN_DETAIL = "An internal server error occurred"


class ErrorHandlerMiddleware:
    """Centralized error handling for HTTP errors and unexpected exceptions."""

    def __init__(self, app: Flask, hal_formatter: HalFormatter):
        self.app = app
        self.hal_formatter = hal_formatter
        self.register_error_handlers()

    def register_error_handlers(self):
        """Register error handlers with Flask application."""
        for status in HTTP_PROBLEMS:
            self.app.register_error_handler(status, self.handle_http_error)
        self.app.register_error_handler(Exception, self.handle_exception)

    def _hide_details(self) -> bool:
        return self.app.config.get('ENVIRONMENT') == 'production'

    def handle_exception(self, error: Exception):
        if isinstance(error, HTTPException):
            return self.handle_http_error(error)
        return self.handle_unexpected_error(error)

    def handle_http_error(self, error: HTTPException):
        """Problem response for a werkzeug HTTP error."""
        error_type, title = HTTP_PROBLEMS.get(error.code, ("http-error", error.name))
        detail = str(error.description) if error.description else title

        with tracer.start_as_current_span("error_handler.http_error") as span:
            span.set_attributes({
                "error.type": error_type,
                "error.status": error.code,
                "http.method": request.method,
                "http.path": request.path
            })

            server_side = error.code >= 500
            log = logger.error if server_side else logger.warning
            log(
                f"{title} on {request.method} {request.path}",
                extra={
                    "error_type": error_type,
                    "status_code": error.code,
                    "detail": detail,
                    "path": request.path,
                    "method": request.method,
                    "user_agent": request.headers.get('User-Agent')
                },
                exc_info=server_side
            )

            if server_side and self._hide_details():
                detail = HIDDEN_DETAIL

            problem = self.hal_formatter.builder.build_error_response(
                error_type, title, error.code, detail, request.path
            )
            return jsonify(problem), error.code

    def handle_unexpected_error(self, error: Exception):
        """Problem response for an exception no other handler claimed."""
        with tracer.start_as_current_span("error_handler.unexpected_error") as span:
            span.set_attributes({
                "error.type": "unexpected-error",
                "error.class": error.__class__.__name__,
                "http.method": request.method,
                "http.path": request.path
            })
            span.record_exception(error)

            logger.error(
                f"Unexpected error: {error.__class__.__name__}",
                extra={
                    "error_class": error.__class__.__name__,
                    "error_message": str(error),
                    "path": request.path,
                    "method": request.method
                },
                exc_info=error
            )

            detail = HIDDEN_DETAIL if self._hide_details() else f"{error.__class__.__name__}: {error}"
            return jsonify(self.hal_formatter.format_server_error(detail, request.path)), 500


class CustomException(Exception):
    """Base class for custom application exceptions."""

    status_code = 500
    error_type = "application-error"
    title = "Application Error"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message


class LicenseValidationException(CustomException):
    """Exception for issuance requests rejected by the licensing rules."""

    status_code = 422
    error_type = "license-validation-failed"
    title = "License Validation Failed"

    def __init__(self, error_messages: List[str]):
        super().__init__("; ".join(error_messages))
        self.error_messages = list(error_messages)


class NotFoundException(CustomException):
    """Exception for resource not found errors."""

    status_code = 404
    error_type = "resource-not-found"
    title = "Resource Not Found"


class ConflictException(CustomException):
    """Exception for concurrent issuance conflicts."""

    status_code = 409
    error_type = "resource-conflict"
    title = "Resource Conflict"


class InternalErrorException(CustomException):
    """Exception for internal inconsistencies that are not the caller's fault."""

    status_code = 500
    error_type = "internal-server-error"
    title = "Internal Server Error"


class ServiceUnavailableException(CustomException):
    """Exception for an unreachable licensing store."""

    status_code = 503
    error_type = "service-unavailable"
    title = "Service Unavailable"


def register_custom_error_handlers(app: Flask, hal_formatter: HalFormatter):
    """
    Register handlers for custom exceptions.

    Args:
        app: Flask application
        hal_formatter: HAL formatter instance
    """

    @app.errorhandler(CustomException)
    def handle_custom_exception(error: CustomException):
        with tracer.start_as_current_span("error_handler.custom_exception") as span:
            span.set_attributes({
                "error.type": error.error_type,
                "error.status": error.status_code,
                "http.method": request.method,
                "http.path": request.path
            })

            log = logger.error if error.status_code >= 500 else logger.warning
            log(
                f"Custom exception: {error.error_type}",
                extra={
                    "error_type": error.error_type,
                    "status_code": error.status_code,
                    "error_message": error.message,
                    "path": request.path,
                    "method": request.method
                }
            )

            if isinstance(error, LicenseValidationException):
                problem = hal_formatter.format_license_validation_error(error.error_messages, request.path)
            else:
                problem = hal_formatter.builder.build_error_response(
                    error.error_type,
                    error.title,
                    error.status_code,
                    error.message,
                    request.path
                )

            return jsonify(problem), error.status_code
