"""
Health Check Service

Reports the status of the licensing store and the issuance lock backend.
"""

import os
import time
from datetime import datetime, timezone
from typing import Dict, Any, Optional
from opentelemetry import trace

from residencia_api.services.redis import RedisLockService
from residencia_api.services.repository import LicensingRepository

tracer = trace.get_tracer(__name__)


class HealthCheckService:
    """Service for dependency health monitoring."""

    def __init__(self, repository: LicensingRepository, lock_service: Optional[RedisLockService] = None):
        self.repository = repository
        self.lock_service = lock_service
        self.service_version = os.getenv('SERVICE_VERSION', '1.0.0')

    def get_comprehensive_health(self) -> Dict[str, Any]:
        """Get health status including all dependencies."""
        with tracer.start_as_current_span("health.comprehensive_check") as span:
            start_time = time.time()

            repository_health = self.repository.health_check()
            lock_health = self._check_lock_health()

            overall_status = self._determine_overall_status(repository_health["status"], lock_health["status"])
            response_time_ms = round((time.time() - start_time) * 1000, 2)

            span.set_attributes({
                "health.overall_status": overall_status,
                "health.response_time_ms": response_time_ms,
                "health.repository_status": repository_health["status"],
                "health.lock_status": lock_health["status"]
            })

            return {
                "status": overall_status,
                "service": "residencia-api",
                "version": self.service_version,
                "environment": os.getenv('ENVIRONMENT', 'development'),
                "timestamp": datetime.now(timezone.utc).isoformat(),
                "response_time_ms": response_time_ms,
                "dependencies": {
                    "repository": repository_health,
                    "redis": lock_health
                }
            }

    def _check_lock_health(self) -> Dict[str, Any]:
        if self.lock_service is None:
            return {"status": "disabled"}
        return self.lock_service.health_check()

    @staticmethod
    def _determine_overall_status(repository_status: str, lock_status: str) -> str:
        """
        The store is required; the lock backend only degrades the service
        since the repository transaction still guards issuance.
        """
        if repository_status != "healthy":
            return "unhealthy"
        if lock_status not in ("healthy", "disabled"):
            return "degraded"
        return "healthy"
