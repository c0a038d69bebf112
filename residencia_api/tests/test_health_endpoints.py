# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for health check endpoint and service.
"""

import json
import pytest
from unittest.mock import Mock

from residencia_api.app import create_app
from residencia_api.services.health import HealthCheckService
from residencia_api.services.memory_repository import InMemoryLicensingRepository


@pytest.fixture
def repository():
    return Mock(spec=InMemoryLicensingRepository)


@pytest.fixture
def lock_service():
    return Mock()


@pytest.fixture
def client(repository, lock_service):
    app = create_app(
        config={'ENVIRONMENT': 'test', 'DOCS_ENABLED': False, 'BASE_URL': 'https://api.example.com'},
        repository=repository,
        lock_service=lock_service
    )
    return app.test_client()


class TestHealthCheckEndpoint:
    """Test health check endpoint functionality."""

    def test_health_check_success_all_healthy(self, client, repository, lock_service):
        """Test health check when all dependencies are healthy."""
        repository.health_check.return_value = {'status': 'healthy', 'database': 'residencia_test'}
        lock_service.health_check.return_value = {'status': 'healthy', 'url': 'redis://localhost:6379'}

        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'healthy'
        assert data['service'] == 'residencia-api'
        assert 'timestamp' in data
        assert 'response_time_ms' in data
        assert data['dependencies']['repository']['status'] == 'healthy'
        assert data['dependencies']['redis']['status'] == 'healthy'

    def test_health_check_degraded_redis_unhealthy(self, client, repository, lock_service):
        """Test health check when the lock backend is down."""
        repository.health_check.return_value = {'status': 'healthy'}
        lock_service.health_check.return_value = {'status': 'unhealthy', 'error': 'Connection refused'}

        response = client.get('/api/healthz')

        assert response.status_code == 200
        data = json.loads(response.data)
        assert data['status'] == 'degraded'

    def test_health_check_unhealthy_repository_down(self, client, repository, lock_service):
        """Test health check when the store is down."""
        repository.health_check.return_value = {'status': 'unhealthy', 'error': 'Connection timeout'}
        lock_service.health_check.return_value = {'status': 'healthy'}

        response = client.get('/api/healthz')

        assert response.status_code == 503
        data = json.loads(response.data)
        assert data['status'] == 'unhealthy'

    def test_health_check_hal_links(self, client, repository, lock_service):
        """Test health check includes a self link."""
        repository.health_check.return_value = {'status': 'healthy'}
        lock_service.health_check.return_value = {'status': 'healthy'}

        response = client.get('/api/healthz')

        data = json.loads(response.data)
        assert data['_links']['self']['href'] == 'https://api.example.com/api/healthz'


class TestHealthCheckService:
    """Test health check service functionality."""

    def test_in_memory_repository_without_lock(self):
        """Test a store without lock backend is healthy."""
        service = HealthCheckService(InMemoryLicensingRepository())

        health = service.get_comprehensive_health()

        assert health['status'] == 'healthy'
        assert health['dependencies']['redis'] == {'status': 'disabled'}

    def test_unavailable_lock_degrades(self):
        """Test an unreachable lock backend degrades the service."""
        lock_service = Mock()
        lock_service.health_check.return_value = {'status': 'unavailable'}
        service = HealthCheckService(InMemoryLicensingRepository(), lock_service)

        assert service.get_comprehensive_health()['status'] == 'degraded'

    @pytest.mark.parametrize("repository_status,lock_status,expected", [
        ('healthy', 'healthy', 'healthy'),
        ('healthy', 'disabled', 'healthy'),
        ('healthy', 'unhealthy', 'degraded'),
        ('unhealthy', 'healthy', 'unhealthy'),
        ('unhealthy', 'unhealthy', 'unhealthy'),
    ])
    def test_overall_status_determination(self, repository_status, lock_status, expected):
        """Test overall status determination logic."""
        assert HealthCheckService._determine_overall_status(repository_status, lock_status) == expected
