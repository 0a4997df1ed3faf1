"""
OpenTelemetry Tracing

Configures a tracer provider for the storefront service and instruments Django
requests. Services open custom spans through the module level ``tracer``; with
tracing disabled those spans are no-ops.
"""

import logging
from typing import Optional

from opentelemetry import trace
from opentelemetry.instrumentation.django import DjangoInstrumentor
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter

logger = logging.getLogger(__name__)

_initialized = False


def setup_tracing(service_name: str = "storefront-service", enable: bool = True, console_export: bool = False) -> None:
    """
    Initialize OpenTelemetry tracing.

    Args:
        service_name: Name of the service for tracing
        enable: Enable/disable tracing
        console_export: Print finished spans to stdout (local debugging)
    """
    global _initialized

    if _initialized:
        logger.warning("Tracing already initialized. Skipping.")
        return

    if not enable:
        logger.info("Tracing disabled via configuration")
        return

    tracer_provider = TracerProvider(resource=Resource(attributes={SERVICE_NAME: service_name}))
    if console_export:
        tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
    trace.set_tracer_provider(tracer_provider)

    DjangoInstrumentor().instrument()

    _initialized = True
    logger.info(f"OpenTelemetry tracing initialized for service: {service_name}")


def get_tracer(name: Optional[str] = None) -> trace.Tracer:
    return trace.get_tracer(name or "storefront")


def add_span_attributes(span: trace.Span, **attributes) -> None:
    """
    Add custom attributes to a span.

    Example:
        with tracer.start_as_current_span("coupon_can_apply") as span:
            add_span_attributes(span, campaign="WELCOME", applicable_items=3)
    """
    for key, value in attributes.items():
        span.set_attribute(key, str(value))


tracer = get_tracer("storefront")
