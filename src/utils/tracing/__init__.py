"""
Distributed tracing using OpenTelemetry.

Instruments:
- Sync runs and each optimistic commit attempt
- Table log snapshot reads and commits
- Observed extreme scans
- CLI commands

Spans are exported over OTLP when an endpoint is configured.
"""

from .context import add_span_attributes, add_span_event, trace_operation
from .decorators import trace_function
from .tracer import get_tracer, initialize_tracing, shutdown_tracing

__all__ = [
    "initialize_tracing",
    "get_tracer",
    "shutdown_tracing",
    "trace_operation",
    "trace_function",
    "add_span_attributes",
    "add_span_event",
]
