"""Observability setup for OpenTelemetry, metrics, and structured logging."""

import logging

import structlog
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.instrumentation.sqlalchemy import SQLAlchemyInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest

from .config import settings

SERVICE_NAME = "travel-booking-api"
SERVICE_VERSION = "1.0.0"

# Prometheus metrics
REGISTRY = CollectorRegistry()

# Request metrics
REQUEST_COUNT = Counter(
    'http_requests_total',
    'Total HTTP requests',
    ['method', 'endpoint', 'status_code'],
    registry=REGISTRY
)

REQUEST_DURATION = Histogram(
    'http_request_duration_seconds',
    'HTTP request duration in seconds',
    ['method', 'endpoint'],
    registry=REGISTRY
)

# Business metrics
BOOKINGS_CREATED = Counter(
    'bookings_created_total',
    'Total bookings submitted from the booking wizard',
    ['package_slug'],
    registry=REGISTRY
)

BOOKING_CODE_FALLBACKS = Counter(
    'booking_code_fallbacks_total',
    'Booking codes that fell back to the timestamp format',
    registry=REGISTRY
)

PAYMENTS_SUBMITTED = Counter(
    'payments_submitted_total',
    'Total payment confirmations submitted by customers',
    ['payment_type'],
    registry=REGISTRY
)

PAYMENTS_VERIFIED = Counter(
    'payments_verified_total',
    'Total payments resolved by an admin',
    ['outcome'],
    registry=REGISTRY
)

INVOICES_RENDERED = Counter(
    'invoices_rendered_total',
    'Total invoices rendered',
    registry=REGISTRY
)

AGGREGATE_INVALIDATIONS = Counter(
    'aggregate_invalidations_total',
    'Derived aggregates dropped after change events',
    ['aggregate'],
    registry=REGISTRY
)


def setup_structured_logging():
    """Configure structured logging with structlog."""

    def add_trace_context(logger, method_name, event_dict):
        """Add trace context to log events."""
        span = trace.get_current_span()
        if span and span.is_recording():
            ctx = span.get_span_context()
            event_dict['trace_id'] = format(ctx.trace_id, '032x')
            event_dict['span_id'] = format(ctx.span_id, '016x')
        return event_dict

    # request_id is bound per request by RequestIDMiddleware via contextvars
    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            add_trace_context,
            structlog.processors.TimeStamper(fmt="iso"),
            structlog.processors.add_log_level,
            structlog.processors.StackInfoRenderer(),
            structlog.dev.ConsoleRenderer() if settings.debug else structlog.processors.JSONRenderer(),
        ],
        wrapper_class=structlog.make_filtering_bound_logger(
            getattr(logging, settings.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


def setup_tracing(app_name: str = SERVICE_NAME):
    """Setup OpenTelemetry tracing."""

    resource = Resource.create({
        "service.name": app_name,
        "service.version": SERVICE_VERSION,
        "environment": settings.environment,
    })

    provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(provider)

    # Export only when a collector is configured
    if settings.otlp_endpoint:
        otlp_exporter = OTLPSpanExporter(endpoint=settings.otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(otlp_exporter))

    return trace.get_tracer(__name__)


def instrument_fastapi(app):
    """Instrument FastAPI with OpenTelemetry."""
    FastAPIInstrumentor.instrument_app(app)


def instrument_sqlalchemy(engine):
    """Instrument SQLAlchemy with OpenTelemetry."""
    SQLAlchemyInstrumentor().instrument(engine=engine.sync_engine)


class MetricsCollector:
    """Collector for business metrics."""

    @staticmethod
    def record_booking_created(package_slug: str):
        """Record a submitted booking."""
        BOOKINGS_CREATED.labels(package_slug=package_slug).inc()

    @staticmethod
    def record_booking_code_fallback():
        """Record a booking code that used the timestamp fallback."""
        BOOKING_CODE_FALLBACKS.inc()

    @staticmethod
    def record_payment_submitted(payment_type: str):
        """Record a payment confirmation."""
        PAYMENTS_SUBMITTED.labels(payment_type=payment_type).inc()

    @staticmethod
    def record_payment_verified(outcome: str):
        """Record an admin payment decision."""
        PAYMENTS_VERIFIED.labels(outcome=outcome).inc()

    @staticmethod
    def record_invoice_rendered():
        """Record a rendered invoice."""
        INVOICES_RENDERED.inc()

    @staticmethod
    def record_invalidation(aggregate: str):
        """Record a dropped derived aggregate."""
        AGGREGATE_INVALIDATIONS.labels(aggregate=aggregate).inc()


def get_prometheus_metrics():
    """Get Prometheus metrics for the /metrics endpoint."""
    return generate_latest(REGISTRY)


# Global metrics collector instance
metrics_collector = MetricsCollector()
