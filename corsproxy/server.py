import logging
from typing import Optional, Sequence

import httpx
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from corsproxy.config import ProxyConfig
from corsproxy.handler import CorsProxyHandler
from corsproxy.routes import build_router
from corsproxy.vars import METRICS_PATH, OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME

logger = logging.getLogger("uvicorn.error")


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out noisy ASGI body spans from streaming responses.
    Every relayed upstream chunk would otherwise produce its own span.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


def configure_tracing() -> None:
    trace.set_tracer_provider(
        TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
    )
    tracer_provider = trace.get_tracer_provider()
    if OTLP_ENDPOINT:
        otlp_exporter = OTLPSpanExporter(
            endpoint=OTLP_ENDPOINT,
            headers=OTLP_HEADERS or None,
        )
        tracer_provider.add_span_processor(
            BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
        )
        logger.info(f"Exporting traces to {OTLP_ENDPOINT}")


def create_app(
    config: Optional[ProxyConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """Build the proxy application around an immutable configuration."""
    config = config or ProxyConfig.from_env()
    app = FastAPI(
        title=config.service_name, docs_url=None, redoc_url=None, openapi_url=None
    )

    # Registered before the catch-all route so it is not proxied
    if METRICS_PATH:
        Instrumentator().instrument(app).expose(app, endpoint=METRICS_PATH)

    FastAPIInstrumentor.instrument_app(
        app,
        excluded_urls=METRICS_PATH or "",
        server_request_hook=None,
        client_request_hook=None,
    )

    app.include_router(build_router(CorsProxyHandler(config, transport=transport)))
    logger.info(
        f"CORS proxy ready: {len(config.blacklist_urls)} blacklist pattern(s), "
        f"{len(config.whitelist_origins)} whitelist pattern(s)"
    )
    return app


configure_tracing()

# Add service_name to the metrics
app_info = Info("cors_proxy_app_info", "Application Info")
app_info.info({"service_name": SERVICE_NAME})

app = create_app()
