"""Observability: OpenTelemetry tracing for collaborator calls."""

from cruxboard.observability.tracing import (
    clear_test_spans,
    collaborator_span,
    configure_tracing,
    get_test_spans,
    reset_tracing,
)

__all__ = [
    "clear_test_spans",
    "collaborator_span",
    "configure_tracing",
    "get_test_spans",
    "reset_tracing",
]
