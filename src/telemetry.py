"""OpenTelemetry configuration for the rentals service."""

import os
import sys

from opentelemetry import metrics, trace
from opentelemetry.exporter.prometheus import PrometheusMetricReader
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.metrics import MeterProvider
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from prometheus_client import start_http_server

from .config import settings
from .logging_config import get_logger

logger = get_logger(__name__)

METRICS_PORTS = (8080, 8081)


def telemetry_enabled() -> bool:
    """Telemetry is opt-in and always off under pytest."""
    if not os.getenv("ENABLE_TELEMETRY"):
        return False
    return "pytest" not in sys.modules and not os.getenv("TESTING")


def _start_metrics_server() -> int | None:
    for port in METRICS_PORTS:
        try:
            start_http_server(port)
        except OSError:
            logger.warning("Metrics port busy", port=port)
            continue
        logger.info("Prometheus metrics server started", port=port)
        return port
    return None


def setup_telemetry(app):
    """Configure OpenTelemetry tracing and metrics for the FastAPI application."""
    if not telemetry_enabled():
        return

    try:
        resource = Resource.create(
            {"service.name": settings.app_name, "service.version": settings.version}
        )

        prometheus_reader = PrometheusMetricReader()
        metrics.set_meter_provider(
            MeterProvider(resource=resource, metric_readers=[prometheus_reader])
        )
        _start_metrics_server()

        tracer_provider = TracerProvider(resource=resource)
        # Console exporter until an OTLP collector is configured
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        trace.set_tracer_provider(tracer_provider)

        FastAPIInstrumentor.instrument_app(app)
        SQLAlchemyInstrumentor().instrument()

        logger.info("OpenTelemetry tracing and metrics setup completed")

    except Exception as e:
        # Telemetry must never keep the service from starting
        logger.error("Failed to setup OpenTelemetry", error=str(e))
