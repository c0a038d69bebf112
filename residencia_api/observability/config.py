"""
OpenTelemetry Configuration

Sets up distributed tracing and logging for the Residencia licensing API.
"""

import os
import logging
from typing import Optional
from opentelemetry import trace
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter, SpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

SERVICE_NAME = 'residencia-api'

# Fraction of traces kept per environment
SAMPLING_RATIOS = {
    'production': 0.1,
    'staging': 0.5,
}

LOG_LEVELS = {
    'production': logging.WARNING,
    'staging': logging.INFO,
    'development': logging.INFO,
}


def setup_observability(environment: str = None):
    """Initialize OpenTelemetry instrumentation based on environment configuration."""
    environment = environment or os.getenv('ENVIRONMENT', 'development')

    setup_structured_logging(environment)

    tracing_enabled = os.getenv('OTEL_ENABLED', 'true').lower() == 'true'
    if not tracing_enabled or environment == 'test':
        # No tracer provider: spans stay non-recording
        return

    tracer_provider = TracerProvider(
        sampler=TraceIdRatioBased(sampling_ratio(environment)),
        resource=Resource.create({
            "service.name": SERVICE_NAME,
            "service.version": os.getenv('SERVICE_VERSION', '1.0.0'),
            "deployment.environment": environment
        })
    )

    exporter = build_span_exporter(environment)
    if exporter is not None:
        tracer_provider.add_span_processor(BatchSpanProcessor(exporter, max_export_batch_size=512))

    trace.set_tracer_provider(tracer_provider)


def sampling_ratio(environment: str) -> float:
    """Sampling ratio for the environment; ``OTEL_SAMPLING_RATIO`` overrides it."""
    override = os.getenv('OTEL_SAMPLING_RATIO')
    if override:
        return min(max(float(override), 0.0), 1.0)
    return SAMPLING_RATIOS.get(environment, 1.0)


def build_span_exporter(environment: str) -> Optional[SpanExporter]:
    """
    Pick the span exporter for the environment.

    Production only exports when a collector endpoint is configured; other
    environments fall back to the console.
    """
    endpoint = os.getenv('OTEL_EXPORTER_OTLP_ENDPOINT')
    if endpoint:
        api_key = os.getenv('OTEL_API_KEY')
        headers = {"Authorization": f"Bearer {api_key}"} if api_key else None
        return OTLPSpanExporter(endpoint=endpoint, headers=headers)
    if environment == 'production':
        return None
    return ConsoleSpanExporter()


def setup_structured_logging(environment: str):
    """Configure root logging per environment."""
    logging.basicConfig(
        level=LOG_LEVELS.get(environment, logging.WARNING),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
        handlers=[logging.StreamHandler()]
    )

    # Driver chatter stays at WARNING everywhere
    for noisy in ('pymongo', 'redis', 'urllib3'):
        logging.getLogger(noisy).setLevel(logging.WARNING)

    if environment == 'development':
        logging.getLogger('residencia_api.domain').setLevel(logging.DEBUG)
        logging.getLogger('residencia_api.services').setLevel(logging.DEBUG)
