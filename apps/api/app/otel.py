from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    ConsoleSpanExporter,
    SimpleSpanProcessor,
)
from opentelemetry.sdk.trace.export.in_memory_span_exporter import InMemorySpanExporter
from opentelemetry.trace import Span, Status, StatusCode

from app.context import get_correlation_id
from app.core.config import Settings, get_settings
from app.middleware.correlation_id import CORRELATION_ID_HEADER, MAX_CORRELATION_ID_LENGTH


DIRECTORY_PEER_SERVICE = "directory"

_directory_tracer = trace.get_tracer("app.directory.client")
_provider: TracerProvider | None = None
_exporters_attached = False


def build_resource(settings: Settings) -> Resource:
    return Resource.create(
        {
            "service.name": settings.otel_service_name,
            "service.version": settings.app_version,
            "deployment.environment": settings.app_env,
        }
    )


def _get_or_create_provider(settings: Settings) -> TracerProvider:
    global _provider

    if _provider is None:
        _provider = TracerProvider(resource=build_resource(settings))
        trace.set_tracer_provider(_provider)
    return _provider


def setup_otel(settings: Settings | None = None) -> TracerProvider | None:
    """Install the tracer provider when tracing is enabled.

    Exporters come from settings: OTLP over HTTP when an endpoint is set,
    the console exporter when asked for. Repeated calls reuse the provider.
    """
    global _exporters_attached

    settings = settings or get_settings()
    if not settings.otel_enabled:
        return None

    provider = _get_or_create_provider(settings)
    if _exporters_attached:
        return provider

    if settings.otel_exporter_otlp_endpoint:
        exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_otlp_endpoint)
        provider.add_span_processor(BatchSpanProcessor(exporter))
    if settings.otel_console_exporter:
        provider.add_span_processor(SimpleSpanProcessor(ConsoleSpanExporter()))

    _exporters_attached = True
    return provider


def setup_inmemory_otel(settings: Settings | None = None) -> InMemorySpanExporter:
    provider = _get_or_create_provider(settings or get_settings())
    exporter = InMemorySpanExporter()
    provider.add_span_processor(SimpleSpanProcessor(exporter))
    return exporter


@contextmanager
def directory_span(operation: str, method: str, path: str) -> Iterator[Span]:
    """Client span for one outbound directory call.

    A span left by an exception is marked as an error with the exception
    recorded, so timeouts and resets show up without an http.status_code.
    """
    with _directory_tracer.start_as_current_span(
        f"directory.{operation}",
        kind=trace.SpanKind.CLIENT,
        record_exception=False,
        set_status_on_exception=False,
    ) as span:
        span.set_attribute("peer.service", DIRECTORY_PEER_SERVICE)
        span.set_attribute("directory.operation", operation)
        span.set_attribute("http.method", method)
        span.set_attribute("http.url", path)
        span.set_attribute("correlation_id", get_correlation_id() or "")
        try:
            yield span
        except Exception as exc:
            span.record_exception(exc)
            span.set_status(Status(StatusCode.ERROR, type(exc).__name__))
            raise


def get_fastapi_server_request_hook():
    # runs before CorrelationIdMiddleware, so the context var is not set yet
    def server_request_hook(span, scope: dict[str, Any]) -> None:  # type: ignore[no-untyped-def]
        if span is None or not span.is_recording():
            return
        headers = dict(scope.get("headers", []))
        raw = headers.get(CORRELATION_ID_HEADER.encode("latin-1"))
        if not raw:
            return
        correlation_id = raw.decode("latin-1").strip()
        if correlation_id and len(correlation_id) <= MAX_CORRELATION_ID_LENGTH:
            span.set_attribute("correlation_id", correlation_id)

    return server_request_hook
