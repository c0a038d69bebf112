"""
Residencia Licensing API - Flask Application Entry Point

This module builds the Flask application with OpenAPI 3.0 support,
configures middleware, and wires the licensing service to its repository
and issuance lock.
"""

import os
import logging
from datetime import datetime
from typing import Any, Callable, Dict, Optional
from flask import jsonify
from flask_openapi3 import OpenAPI, Info, Tag

from residencia_api.observability.config import setup_observability
from residencia_api.observability.middleware import add_observability_middleware
from residencia_api.middleware.error_handler import ErrorHandlerMiddleware, register_custom_error_handlers
from residencia_api.models.responses import HealthCheckResponse
from residencia_api.services.billing import BillingService
from residencia_api.services.hal import create_hal_formatter
from residencia_api.services.health import HealthCheckService
from residencia_api.services.licensing import LicensingService
from residencia_api.services.memory_repository import InMemoryLicensingRepository
from residencia_api.services.mongodb import MongoDBService, MongoLicensingRepository
from residencia_api.services.redis import RedisLockService
from residencia_api.services.repository import LicensingRepository
from residencia_api.domain.temporal import resolve_zone

logger = logging.getLogger(__name__)

# OpenAPI info
info = Info(
    title="Residencia Licensing API",
    version="1.0.0",
    description="License issuance validation for Residencia contracts and orders"
)

health_tag = Tag(name="Health", description="System health and status")


def load_config(overrides: Optional[Dict[str, Any]] = None) -> Dict[str, Any]:
    """Read configuration from the environment, then apply ``overrides``."""
    environment = os.getenv('ENVIRONMENT', 'development')
    config = {
        'ENVIRONMENT': environment,
        'DEBUG': environment == 'development',
        'DOCS_ENABLED': os.getenv('DOCS_ENABLED', 'true').lower() == 'true',

        # Database configuration
        'MONGODB_URI': os.getenv('MONGODB_URI'),
        'MONGODB_DATABASE': os.getenv('MONGODB_DATABASE', 'residencia_dev'),
        'REDIS_URL': os.getenv('REDIS_URL'),

        # Licensing configuration
        'LICENSING_TIMEZONE': os.getenv('LICENSING_TIMEZONE', 'UTC'),
        'LICENSE_LOCK_TTL_MS': int(os.getenv('LICENSE_LOCK_TTL_MS', '10000')),

        # API configuration
        'BASE_URL': os.getenv('BASE_URL', 'http://localhost:5000')
    }
    config.update(overrides or {})
    return config


def build_repository(config: Dict[str, Any]) -> LicensingRepository:
    """MongoDB when a URI is configured, otherwise an in-memory store."""
    if config.get('MONGODB_URI'):
        return MongoLicensingRepository(MongoDBService(config['MONGODB_URI'], config['MONGODB_DATABASE']))
    logger.warning("MONGODB_URI not set, using in-memory licensing repository")
    return InMemoryLicensingRepository()


def build_lock_service(config: Dict[str, Any]) -> Optional[RedisLockService]:
    if not config.get('REDIS_URL'):
        logger.warning("REDIS_URL not set, license issuance will run without distributed lock")
        return None
    return RedisLockService(config['REDIS_URL'], config['LICENSE_LOCK_TTL_MS'])


def create_app(
    config: Optional[Dict[str, Any]] = None,
    repository: Optional[LicensingRepository] = None,
    lock_service: Optional[RedisLockService] = None,
    clock: Optional[Callable[[], datetime]] = None
) -> OpenAPI:
    """
    Build the Flask application.

    Args:
        config: Values overriding the environment configuration
        repository: Licensing repository (built from config when omitted)
        lock_service: Issuance lock service (built from config when omitted)
        clock: Source of the current aware instant (tests)
    """
    settings = load_config(config)
    if resolve_zone(settings['LICENSING_TIMEZONE']) is None:
        raise ValueError(f"Unknown LICENSING_TIMEZONE: {settings['LICENSING_TIMEZONE']}")

    # Initialize observability first
    setup_observability(settings['ENVIRONMENT'])

    doc_ui = settings['DOCS_ENABLED']
    app = OpenAPI(__name__, info=info, doc_ui=doc_ui, validation_error_status=400)
    app.config.update(settings)

    add_observability_middleware(app)

    # Initialize services
    repository = repository or build_repository(settings)
    if lock_service is None:
        lock_service = build_lock_service(settings)
    licensing_service = LicensingService(
        repository,
        lock_service=lock_service,
        zone=settings['LICENSING_TIMEZONE'],
        clock=clock
    )
    billing_service = BillingService(repository)
    health_service = HealthCheckService(repository, lock_service)

    # Initialize middleware
    hal_formatter = create_hal_formatter(settings['BASE_URL'])
    ErrorHandlerMiddleware(app, hal_formatter)
    register_custom_error_handlers(app, hal_formatter)

    # Make services available to routes
    app.licensing_repository = repository
    app.licensing_service = licensing_service
    app.billing_service = billing_service
    app.health_service = health_service
    app.hal_formatter = hal_formatter

    # Register routes
    from residencia_api.routes.licenses import licenses_bp
    from residencia_api.routes.invoices import invoices_bp
    from residencia_api.routes.orders import orders_bp
    app.register_api(licenses_bp)
    app.register_api(invoices_bp)
    app.register_api(orders_bp)

    @app.get('/api/healthz', tags=[health_tag], responses={200: HealthCheckResponse, 503: HealthCheckResponse})
    def health_check():
        """Health check with dependency status"""
        health_data = app.health_service.get_comprehensive_health()
        status_code = 503 if health_data["status"] == "unhealthy" else 200
        return jsonify(hal_formatter.format_health(health_data)), status_code

    logger.info(
        "Residencia licensing API initialized",
        extra={
            "environment": settings['ENVIRONMENT'],
            "repository": type(repository).__name__,
            "lock_enabled": lock_service is not None
        }
    )
    return app


if __name__ == '__main__':
    # Development server
    application = create_app()
    application.run(
        host='0.0.0.0',
        port=int(os.getenv('PORT', 5000)),
        debug=application.config['DEBUG']
    )
