from unittest.mock import AsyncMock, Mock

import httpx
import pytest
from fastapi import Request
from starlette.datastructures import Headers

from corsproxy.config import ProxyConfig


@pytest.fixture
def proxy_config():
    """Default configuration: empty blacklist, whitelist of '.*'."""
    return ProxyConfig.from_patterns(timeout=5, max_body_bytes=1024)


@pytest.fixture
def mock_request():
    """Create a mock FastAPI Request object with a streamable body."""

    def _create_request(method="GET", query="", headers=None, body=b""):
        request = Mock(spec=Request)
        request.method = method
        request.url.query = query
        request.url.scheme = "https"
        request.url.netloc = "proxy.example.com"
        request.headers = Headers(headers=headers or {})

        async def stream():
            if body:
                yield body
            yield b""

        request.stream = Mock(side_effect=stream)
        return request

    return _create_request


@pytest.fixture
def mock_httpx_response():
    """Create a mock streamed httpx Response."""

    def _create_response(status_code=200, headers=None, chunks=(b"test content",)):
        response = Mock(spec=httpx.Response)
        response.status_code = status_code
        response.headers = httpx.Headers(headers or {})
        response.history = []

        async def aiter_raw():
            for chunk in chunks:
                yield chunk

        response.aiter_raw = aiter_raw
        response.aclose = AsyncMock()
        return response

    return _create_response
