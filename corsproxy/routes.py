from fastapi import APIRouter, Request
from fastapi.responses import Response

from corsproxy.handler import CorsProxyHandler

PROXY_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def build_router(handler: CorsProxyHandler) -> APIRouter:
    """Catch-all router; the path is ignored and only the query string matters."""
    router = APIRouter()

    @router.api_route("/{path:path}", methods=PROXY_METHODS, include_in_schema=False)
    async def proxy_all(request: Request, path: str) -> Response:
        return await handler.handle(request)

    return router
