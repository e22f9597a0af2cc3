from typing import Optional

import httpx
from fastapi import HTTPException, Request
from fastapi.responses import PlainTextResponse, Response
from opentelemetry import trace

from corsproxy.classifier import Decision, classify
from corsproxy.config import ProxyConfig
from corsproxy.forwarder import forward_request
from corsproxy.pages import forbidden_response, info_response
from corsproxy.preflight import build_preflight_response
from corsproxy.rewriter import rewrite_response
from corsproxy.utils.traced_requests import traced_request

tracer = trace.get_tracer(__name__)


def error_response(exc: HTTPException, origin: Optional[str]) -> Response:
    """Turn a forwarding failure into a response the calling script can read."""
    return PlainTextResponse(
        str(exc.detail),
        status_code=exc.status_code,
        headers={"Access-Control-Allow-Origin": origin or "*"},
    )


class CorsProxyHandler:
    """
    Handles one proxied request at a time; holds nothing but read-only settings.

    ``transport`` is passed to every outbound ``httpx.AsyncClient`` and is
    normally left unset.
    """

    def __init__(
        self,
        config: ProxyConfig,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.config = config
        self.transport = transport

    async def handle(self, request: Request) -> Response:
        origin = request.headers.get("origin")
        classification = classify(
            request.method, str(request.url.query), origin, self.config
        )

        if classification.decision == Decision.INFO:
            return info_response(request, self.config)
        if classification.decision == Decision.FORBIDDEN:
            return forbidden_response(self.config)
        if classification.decision == Decision.PREFLIGHT:
            return build_preflight_response(request.headers)

        with traced_request(
            tracer,
            "cors_proxy_request",
            request.method,
            classification.target_url,
            origin,
        ):
            try:
                upstream, client = await forward_request(
                    request, classification.target_url, self.config, self.transport
                )
            except HTTPException as e:
                return error_response(e, origin)
            return rewrite_response(upstream, client, origin)
