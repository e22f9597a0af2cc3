import logging
from typing import Dict, Mapping, Optional, Tuple

import httpx
from fastapi import HTTPException, Request
from opentelemetry import trace

from corsproxy.config import ProxyConfig
from corsproxy.utils import redact_url

logger = logging.getLogger("uvicorn.error")

# Headers that describe the hop to this proxy or identify the caller
STRIPPED_REQUEST_HEADERS = {
    "host",
    "origin",
    "referer",
    "cf-connecting-ip",
    "cf-ipcountry",
    "x-forwarded-for",
}

# Hop-by-hop and body framing headers; httpx frames the outbound body itself
FRAMING_REQUEST_HEADERS = {
    "connection",
    "content-length",
    "keep-alive",
    "proxy-authenticate",
    "proxy-authorization",
    "te",
    "trailers",
    "transfer-encoding",
    "upgrade",
}

BODY_METHODS = {"POST", "PUT", "PATCH"}


def prepare_headers(headers: Mapping[str, str]) -> Dict[str, str]:
    """
    Copy the incoming headers minus the ones that must not reach the upstream.
    Repeated headers are folded into one comma-separated value.
    """
    prepared: Dict[str, str] = {}
    for name, value in headers.items():
        name_lower = name.lower()
        if (
            name_lower in STRIPPED_REQUEST_HEADERS
            or name_lower in FRAMING_REQUEST_HEADERS
        ):
            continue
        if name in prepared:
            prepared[name] = f"{prepared[name]}, {value}"
        else:
            prepared[name] = value
    return prepared


def encode_header_values(headers: Mapping[str, str]) -> Dict[str, bytes]:
    """
    Turn header values back into the bytes the client sent.

    Starlette decodes header bytes as latin-1, so encoding with latin-1 restores
    them exactly. httpx would otherwise encode ``str`` values as ASCII.
    """
    return {name: value.encode("latin-1") for name, value in headers.items()}


async def read_body(request: Request, max_bytes: int) -> Optional[bytes]:
    """
    Buffer the request body for methods that carry one.

    Returns None for every other method so that no body is sent at all.
    Raises 413 as soon as the body grows past ``max_bytes``.
    """
    if request.method.upper() not in BODY_METHODS:
        return None

    declared = request.headers.get("content-length")
    if declared and declared.isdigit() and int(declared) > max_bytes:
        raise HTTPException(status_code=413, detail="Request body too large")

    body = bytearray()
    async for chunk in request.stream():
        body.extend(chunk)
        if len(body) > max_bytes:
            raise HTTPException(status_code=413, detail="Request body too large")
    return bytes(body)


async def send_upstream(
    method: str,
    target_url: str,
    headers: Dict[str, str],
    body: Optional[bytes],
    config: ProxyConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tuple[httpx.Response, httpx.AsyncClient]:
    """
    Send one request to ``target_url`` and return the streamed response.

    The caller owns both the response and the client and must close them once
    the body has been consumed. Transport failures are raised as HTTPException
    with a gateway status; the client is closed on every failure.
    """
    span = trace.get_current_span()
    safe_url = redact_url(target_url)
    client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=True,
        transport=transport,
    )
    sent = False
    try:
        outbound = client.build_request(
            method=method,
            url=target_url,
            headers=encode_header_values(headers),
            content=body,
        )
        response = await client.send(outbound, stream=True)
        sent = True
    except UnicodeEncodeError as e:
        logger.warning(f"[CORS-Proxy] Unencodable header value for {safe_url}: {e}")
        span.set_attribute("proxy.error", "invalid_header")
        raise HTTPException(
            status_code=400, detail="Bad request - invalid header value"
        )
    except httpx.TimeoutException as e:
        logger.error(f"[CORS-Proxy] Timeout for {safe_url}: {e}")
        span.set_attribute("proxy.error", "timeout")
        raise HTTPException(status_code=504, detail="Gateway timeout")
    except httpx.ConnectError as e:
        logger.error(f"[CORS-Proxy] Failed to connect to {safe_url}: {e}")
        span.set_attribute("proxy.error", "connection_failed")
        raise HTTPException(
            status_code=502, detail="Bad gateway - cannot connect to target"
        )
    except (httpx.InvalidURL, httpx.UnsupportedProtocol) as e:
        logger.error(f"[CORS-Proxy] Invalid target URL {safe_url}: {e}")
        span.set_attribute("proxy.error", "invalid_url")
        raise HTTPException(status_code=502, detail="Bad gateway - invalid target URL")
    except httpx.HTTPError as e:
        logger.error(f"[CORS-Proxy] Upstream error for {safe_url}: {e}", exc_info=True)
        span.set_attribute("proxy.error", str(e))
        raise HTTPException(status_code=502, detail=f"Bad gateway: {str(e)}")
    finally:
        if not sent:
            await client.aclose()

    span.set_attribute("proxy.status_code", response.status_code)
    if response.history:
        span.set_attribute("proxy.redirects", len(response.history))
    logger.debug(
        f"[CORS-Proxy] {method} {safe_url} -> {response.status_code} "
        f"after {len(response.history)} redirect(s)"
    )
    return response, client


async def forward_request(
    request: Request,
    target_url: str,
    config: ProxyConfig,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> Tuple[httpx.Response, httpx.AsyncClient]:
    """Build the sanitized outbound request from ``request`` and send it."""
    headers = prepare_headers(request.headers)
    body = await read_body(request, config.max_body_bytes)
    return await send_upstream(
        request.method, target_url, headers, body, config, transport
    )
