import httpx


async def read_streaming_body(response) -> bytes:
    """Drain a StreamingResponse body iterator."""
    return b"".join([chunk async for chunk in response.body_iterator])


def upstream_response(status_code=200, headers=None, content=b"", request=None):
    """A real httpx.Response that has not been read yet, as a transport returns it."""
    return httpx.Response(
        status_code,
        headers=headers,
        stream=httpx.ByteStream(content),
        request=request,
    )
