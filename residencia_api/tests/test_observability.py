# -*- coding: utf-8 -*-
# SPDX-License-Identifier: Apache-2.0

"""
Tests for observability configuration.
"""

import pytest
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.trace.export import ConsoleSpanExporter

from residencia_api.observability.config import build_span_exporter, sampling_ratio


class TestSamplingRatio:
    """Test per-environment trace sampling."""

    @pytest.mark.parametrize("environment,expected", [
        ('production', 0.1),
        ('staging', 0.5),
        ('development', 1.0),
    ])
    def test_environment_defaults(self, monkeypatch, environment, expected):
        monkeypatch.delenv('OTEL_SAMPLING_RATIO', raising=False)

        assert sampling_ratio(environment) == expected

    def test_override_is_clamped(self, monkeypatch):
        monkeypatch.setenv('OTEL_SAMPLING_RATIO', '3')

        assert sampling_ratio('production') == 1.0


class TestSpanExporter:
    """Test span exporter selection."""

    def test_console_without_endpoint(self, monkeypatch):
        monkeypatch.delenv('OTEL_EXPORTER_OTLP_ENDPOINT', raising=False)

        assert isinstance(build_span_exporter('development'), ConsoleSpanExporter)

    def test_production_without_endpoint_exports_nothing(self, monkeypatch):
        monkeypatch.delenv('OTEL_EXPORTER_OTLP_ENDPOINT', raising=False)

        assert build_span_exporter('production') is None

    def test_otlp_with_endpoint(self, monkeypatch):
        monkeypatch.setenv('OTEL_EXPORTER_OTLP_ENDPOINT', 'http://localhost:4317')
        monkeypatch.delenv('OTEL_API_KEY', raising=False)

        assert isinstance(build_span_exporter('staging'), OTLPSpanExporter)
