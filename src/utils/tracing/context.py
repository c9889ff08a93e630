"""
Context managers and helpers for span management.

Create spans and attach attributes or events to the current span without
passing span references around.
"""

from contextlib import contextmanager

from opentelemetry import trace

from .tracer import get_tracer


def _attribute_value(value):
    if isinstance(value, (bool, int, float, str)):
        return value
    return str(value)


@contextmanager
def trace_operation(
    operation_name: str,
    kind: trace.SpanKind = trace.SpanKind.INTERNAL,
    **attributes
):
    """
    Context manager for tracing operations.

    Creates a span, adds attributes, records any exception raised in the
    block, and re-raises it.

    Args:
        operation_name: Name of the operation being traced
        kind: Span kind (INTERNAL, CLIENT, SERVER, etc.)
        **attributes: Custom attributes to add to the span

    Yields:
        Span instance for adding custom events/attributes

    Example:
        >>> with trace_operation("sync_identity", table="/data/events") as span:
        ...     result = command.run()
        ...     span.set_attribute("changed", result.changed)
    """
    tracer = get_tracer()

    with tracer.start_as_current_span(
        operation_name,
        kind=kind,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(key, _attribute_value(value))

        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            span.set_attribute("error.message", str(e))
            span.record_exception(e)
            span.set_status(trace.Status(trace.StatusCode.ERROR, str(e)))
            raise


def add_span_attributes(**attributes):
    """
    Add attributes to the current span.

    Example:
        >>> with trace_operation("sync_identity"):
        ...     add_span_attributes(outcome="updated")
    """
    current_span = trace.get_current_span()
    if current_span.is_recording():
        for key, value in attributes.items():
            if value is not None:
                current_span.set_attribute(key, _attribute_value(value))


def add_span_event(name: str, **attributes):
    """
    Add an event to the current span.

    Example:
        >>> add_span_event("commit_conflict", attempt=2)
    """
    current_span = trace.get_current_span()
    if current_span.is_recording():
        attrs = {k: _attribute_value(v) for k, v in attributes.items() if v is not None}
        current_span.add_event(name, attributes=attrs)
