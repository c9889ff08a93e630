"""
Tracer initialization and configuration for OpenTelemetry.

Sets up a TracerProvider for the identity sync service, exporting spans over
OTLP (Jaeger, Tempo, ...) when an endpoint is configured and to the console
when requested.
"""

import logging
import os

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.sdk.trace.sampling import TraceIdRatioBased

logger = logging.getLogger(__name__)

DEFAULT_SERVICE_NAME = "identity-sync"

_tracer: trace.Tracer | None = None
_provider: TracerProvider | None = None


def initialize_tracing(
    service_name: str = DEFAULT_SERVICE_NAME,
    otlp_endpoint: str | None = None,
    console_export: bool = False,
    sampling_rate: float = 1.0,
) -> trace.Tracer:
    """
    Initialize distributed tracing with OpenTelemetry.

    Args:
        service_name: Name of the service for identification
        otlp_endpoint: OTLP collector endpoint (e.g. "localhost:4317");
            falls back to the OTLP_ENDPOINT environment variable
        console_export: Also export spans to the console (TRACE_CONSOLE=true
            has the same effect)
        sampling_rate: Sampling rate 0.0-1.0 (1.0 = trace everything)

    Returns:
        Configured tracer instance
    """
    global _tracer, _provider

    if _tracer is not None:
        logger.debug("Tracing already initialized, returning existing tracer")
        return _tracer

    provider = TracerProvider(
        resource=Resource(attributes={SERVICE_NAME: service_name}),
        sampler=TraceIdRatioBased(sampling_rate),
    )
    exporters = []

    otlp_endpoint = otlp_endpoint or os.getenv("OTLP_ENDPOINT")
    if otlp_endpoint:
        provider.add_span_processor(
            BatchSpanProcessor(OTLPSpanExporter(endpoint=otlp_endpoint, insecure=True))
        )
        exporters.append("OTLP")
        logger.info(f"OTLP exporter configured: {otlp_endpoint}")

    if console_export or os.getenv("TRACE_CONSOLE", "").lower() == "true":
        provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        exporters.append("Console")

    if not exporters:
        logger.debug("No trace exporters configured, spans are recorded but not exported")

    trace.set_tracer_provider(provider)
    _provider = provider
    _tracer = trace.get_tracer(service_name)

    logger.debug(
        f"Tracing initialized: {service_name} "
        f"(exporters: {', '.join(exporters) or 'none'}, sampling: {sampling_rate})"
    )
    return _tracer


def get_tracer() -> trace.Tracer:
    """
    Get the global tracer instance, initializing with defaults on first use.
    """
    if _tracer is None:
        return initialize_tracing()
    return _tracer


def shutdown_tracing() -> None:
    """
    Flush pending spans and shut the provider down.

    Should be called before application exit. OpenTelemetry accepts a single
    global provider per process, so the tracer is kept and later spans are
    dropped by the stopped processors.
    """
    global _provider

    if _provider is None:
        return

    try:
        _provider.shutdown()
        logger.info("Tracing shutdown complete")
    finally:
        _provider = None
