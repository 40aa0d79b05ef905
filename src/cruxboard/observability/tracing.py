"""OpenTelemetry tracing configuration for cruxboard.

Every collaborator call runs inside a span so slow or failing agents can be
located in a trace. Tracing is off unless explicitly enabled; when no
provider is configured the OpenTelemetry API hands out no-op spans.

Environment Variables:
    CRUXBOARD_OTEL_ENABLED: Set to "1" to enable tracing (default: disabled)
    CRUXBOARD_REQUIRE_OTEL: Set to "1" to fail startup if tracing cannot initialize
    CRUXBOARD_OTEL_SERVICE_NAME: Service name for spans (default: "cruxboard")
    CRUXBOARD_OTEL_EXPORTER: "console" or "otlp" (default: "console")
    CRUXBOARD_OTEL_EXPORTER_OTLP_ENDPOINT: OTLP endpoint URL (optional)
    CRUXBOARD_OTEL_TEST_CAPTURE: Set to "1" to use the in-memory exporter

Span attributes carry identifiers only (operation, persona id, mode,
round). Prompt and response text are never exported.
"""

from __future__ import annotations

import logging
from collections.abc import Iterator
from contextlib import contextmanager
from typing import TYPE_CHECKING, Any

from opentelemetry import trace

from cruxboard.config import get_env_bool, get_env_str
from cruxboard.errors import ConfigurationError

if TYPE_CHECKING:
    from opentelemetry.sdk.trace import ReadableSpan, TracerProvider

logger = logging.getLogger(__name__)

TRACER_NAME = "cruxboard.collaborators"

_tracer_provider: TracerProvider | None = None
_is_configured: bool = False
_test_exporter: Any = None  # InMemorySpanExporter when test capture is on


def _create_otlp_exporter(endpoint: str | None) -> Any:
    """Create an OTLP/HTTP exporter (needs the `otlp` extra)."""
    from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter

    kwargs: dict[str, Any] = {}
    if endpoint:
        kwargs["endpoint"] = endpoint
    return OTLPSpanExporter(**kwargs)


def configure_tracing() -> bool:
    """Configure OpenTelemetry tracing.

    Idempotent - safe to call multiple times.

    Returns:
        True if tracing is enabled and configured, False otherwise.

    Raises:
        ConfigurationError: If CRUXBOARD_REQUIRE_OTEL=1 and configuration fails.
    """
    global _tracer_provider, _is_configured, _test_exporter

    if not get_env_bool("CRUXBOARD_OTEL_ENABLED", False):
        _is_configured = True
        logger.debug("OpenTelemetry tracing disabled (CRUXBOARD_OTEL_ENABLED not set)")
        return False

    test_capture = get_env_bool("CRUXBOARD_OTEL_TEST_CAPTURE", False)
    if _test_exporter is not None and test_capture:
        return True
    if _is_configured and _tracer_provider is not None:
        return True

    _is_configured = True
    require_otel = get_env_bool("CRUXBOARD_REQUIRE_OTEL", False)

    try:
        from opentelemetry.sdk.resources import Resource
        from opentelemetry.sdk.trace import TracerProvider
        from opentelemetry.sdk.trace.export import (
            BatchSpanProcessor,
            ConsoleSpanExporter,
            SimpleSpanProcessor,
        )
        from opentelemetry.sdk.trace.export.in_memory_span_exporter import (
            InMemorySpanExporter,
        )

        service_name = get_env_str("CRUXBOARD_OTEL_SERVICE_NAME", "cruxboard")
        exporter_type = get_env_str("CRUXBOARD_OTEL_EXPORTER", "console")
        provider = TracerProvider(resource=Resource.create({"service.name": service_name}))

        if test_capture:
            _test_exporter = InMemorySpanExporter()
            provider.add_span_processor(SimpleSpanProcessor(_test_exporter))
        elif exporter_type == "otlp":
            endpoint = get_env_str("CRUXBOARD_OTEL_EXPORTER_OTLP_ENDPOINT", "")
            provider.add_span_processor(BatchSpanProcessor(_create_otlp_exporter(endpoint or None)))
        else:
            provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

        trace.set_tracer_provider(provider)
        _tracer_provider = provider
        logger.info(
            "OpenTelemetry tracing configured: service=%s, exporter=%s",
            service_name,
            "in-memory" if test_capture else exporter_type,
        )
        return True

    except Exception as e:
        logger.error("Failed to configure OpenTelemetry tracing: %s", e)
        if require_otel:
            raise ConfigurationError(
                f"OpenTelemetry tracing required but configuration failed: {e}"
            ) from e
        return False


@contextmanager
def collaborator_span(operation: str, **attributes: Any) -> Iterator[Any]:
    """Wrap one collaborator call in a span.

    Args:
        operation: Collaborator operation name, e.g. "agent_turn".
        **attributes: Identifier attributes; None values are skipped.

    Yields:
        The active span (a no-op span when tracing is not configured).
    """
    tracer = trace.get_tracer(TRACER_NAME)
    with tracer.start_as_current_span(f"cruxboard.{operation}") as span:
        span.set_attribute("cruxboard.operation", operation)
        for key, value in attributes.items():
            if value is not None:
                span.set_attribute(f"cruxboard.{key}", str(value))
        try:
            yield span
        except Exception as e:
            span.set_attribute("error", True)
            span.set_attribute("error.type", type(e).__name__)
            raise


def get_test_spans() -> list[ReadableSpan]:
    """Captured spans when CRUXBOARD_OTEL_TEST_CAPTURE=1, else an empty list."""
    if _test_exporter is not None:
        return list(_test_exporter.get_finished_spans())
    return []


def clear_test_spans() -> None:
    if _test_exporter is not None:
        _test_exporter.clear()


def reset_tracing() -> None:
    """Allow reconfiguration in tests.

    The global TracerProvider cannot be replaced once set, so the in-memory
    exporter is kept and only its spans are cleared.
    """
    global _is_configured
    clear_test_spans()
    _is_configured = False
