"""
Volume Discount OpenTelemetry Setup

Production observability:
- Traces for each function run (one span per evaluation)
- Span attributes for shop, result format, cart size and directive count

Tracing is optional; install the ``otel`` extra to enable it. Without it
every helper here is a no-op and the service runs untraced.
"""
from __future__ import annotations

import logging
from typing import Optional

from patterns.domain_config import ServiceSettings

logger = logging.getLogger(__name__)


def setup_otel(settings: Optional[ServiceSettings] = None):
    """Initialize a tracer, exporting over OTLP when an endpoint is set."""
    settings = settings or ServiceSettings.default()
    try:
        from opentelemetry import trace
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import BatchSpanProcessor
    except ImportError:
        logger.info("opentelemetry not installed; tracing disabled")
        return None

    provider = TracerProvider(
        resource=Resource.create({"service.name": settings.service_name})
    )
    if settings.otlp_endpoint:
        from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter

        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=settings.otlp_endpoint))
        )

    trace.set_tracer_provider(provider)
    return trace.get_tracer(settings.service_name)


def create_evaluation_span(tracer, shop: str, result_format: str, line_count: int):
    """Start the span covering a single discount function run."""
    if tracer is None:
        return None
    return tracer.start_span(
        "volume_discount.run",
        attributes={
            "shop.domain": shop,
            "evaluation.format": result_format,
            "cart.line_count": line_count,
        },
    )


def end_evaluation_span(span, operation_count: int) -> None:
    """Record the result size and close the span."""
    if span is None:
        return
    span.set_attribute("evaluation.operation_count", operation_count)
    span.end()


def fail_evaluation_span(span, exc: BaseException) -> None:
    """Attach an exception raised during a run and close the span."""
    if span is None:
        return
    span.record_exception(exc)
    span.set_attribute("evaluation.failed", True)
    span.end()
