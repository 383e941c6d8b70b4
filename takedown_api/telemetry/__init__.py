"""Prometheus metrics and OpenTelemetry tracing for the takedown API."""

from __future__ import annotations

import re
import time

from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from prometheus_client import CONTENT_TYPE_LATEST, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from .. import __version__
from ..core.config import get_settings

HTTP_REQUESTS = Counter(
    "takedown_http_requests_total",
    "HTTP requests served, by route template and status code",
    labelnames=("method", "route", "status"),
)
HTTP_LATENCY = Histogram(
    "takedown_http_request_duration_seconds",
    "Time spent serving HTTP requests",
    labelnames=("method", "route"),
    buckets=(0.005, 0.025, 0.1, 0.25, 0.5, 1, 2.5, 5),
)
TAKEDOWN_SUBMISSIONS = Counter(
    "takedown_requests_total",
    "Takedown submissions grouped by pipeline outcome",
    labelnames=("outcome",),
)

_id_segment = re.compile(r"/(?:[0-9a-fA-F-]{32,36}|\d+)(?=/|$)")
_tracer_provider: TracerProvider | None = None


def route_label(request: Request) -> str:
    """Low-cardinality label for a request: the matched route template when known."""

    route = request.scope.get("route")
    template = getattr(route, "path", None)
    if template:
        return template
    return _id_segment.sub("/{id}", request.url.path) or "/"


class PrometheusMiddleware(BaseHTTPMiddleware):
    """Count and time every request except metric scrapes."""

    def __init__(self, app, *, metrics_path: str) -> None:
        super().__init__(app)
        self._metrics_path = metrics_path

    async def dispatch(self, request: Request, call_next):  # type: ignore[override]
        if request.url.path == self._metrics_path:
            return await call_next(request)
        started = time.perf_counter()
        response = await call_next(request)
        elapsed = time.perf_counter() - started
        route = route_label(request)
        HTTP_REQUESTS.labels(request.method, route, str(response.status_code)).inc()
        HTTP_LATENCY.labels(request.method, route).observe(elapsed)
        return response


def setup_prometheus(app: FastAPI) -> None:
    metrics_path = get_settings().prometheus_metrics_path
    app.add_middleware(PrometheusMiddleware, metrics_path=metrics_path)

    @app.get(metrics_path, include_in_schema=False)
    async def prometheus_metrics() -> Response:  # pragma: no cover - trivial
        return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)


def configure_tracing(app: FastAPI) -> None:
    """Instrument the app and export spans over OTLP when an endpoint is set.

    The tracer provider is global to the process, so it is built once and
    shared by every app created afterwards.
    """

    global _tracer_provider
    settings = get_settings()
    if not settings.otel_exporter_otlp_endpoint:
        return
    if _tracer_provider is None:
        _tracer_provider = TracerProvider(
            resource=Resource.create(
                {
                    "service.name": settings.otel_service_name or "takedown-api",
                    "service.version": __version__,
                }
            )
        )
        _tracer_provider.add_span_processor(
            BatchSpanProcessor(
                OTLPSpanExporter(
                    endpoint=settings.otel_exporter_otlp_endpoint,
                    headers=parse_otlp_headers(settings.otel_exporter_otlp_headers),
                )
            )
        )
        trace.set_tracer_provider(_tracer_provider)
    FastAPIInstrumentor.instrument_app(app, tracer_provider=_tracer_provider)


def parse_otlp_headers(raw: str | None) -> dict[str, str]:
    """Parse ``key=value,key2=value2``; malformed pairs are skipped."""

    headers: dict[str, str] = {}
    for part in (raw or "").split(","):
        key, sep, value = part.partition("=")
        if sep and key.strip():
            headers[key.strip()] = value.strip()
    return headers
