from typing import AsyncIterator, List, Optional, Tuple

import httpx
from fastapi.responses import StreamingResponse

# Hop-by-hop headers (RFC 2616); the ASGI server frames the body itself
HOP_BY_HOP_HEADERS = {
    "connection",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

# Set by the proxy, never copied from the upstream
CORS_RESPONSE_HEADERS = {
    "access-control-allow-origin",
    "access-control-expose-headers",
}


def exposed_header_names(upstream_headers: httpx.Headers) -> str:
    """Every upstream header name, once each, in upstream order."""
    return ", ".join(dict.fromkeys(upstream_headers.keys()))


def build_response_headers(
    upstream_headers: httpx.Headers, origin: Optional[str]
) -> List[Tuple[str, str]]:
    headers = [
        (name, value)
        for name, value in upstream_headers.multi_items()
        if name.lower() not in HOP_BY_HOP_HEADERS
        and name.lower() not in CORS_RESPONSE_HEADERS
    ]
    headers.append(("access-control-allow-origin", origin or "*"))
    headers.append(
        ("access-control-expose-headers", exposed_header_names(upstream_headers))
    )
    return headers


async def stream_upstream(
    response: httpx.Response, client: httpx.AsyncClient
) -> AsyncIterator[bytes]:
    """Relay the raw upstream body, then release the upstream connection."""
    try:
        async for chunk in response.aiter_raw():
            yield chunk
    finally:
        await response.aclose()
        await client.aclose()


def rewrite_response(
    response: httpx.Response, client: httpx.AsyncClient, origin: Optional[str]
) -> StreamingResponse:
    """
    Wrap the upstream response for the client, adding CORS headers.

    The status code and the still-encoded body pass through unchanged.
    """
    upstream_headers = httpx.Headers(response.headers)
    rewritten = StreamingResponse(
        stream_upstream(response, client),
        status_code=response.status_code,
    )
    for name, value in build_response_headers(upstream_headers, origin):
        rewritten.headers.append(name, value)
    return rewritten
