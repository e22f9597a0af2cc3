from typing import Dict, Mapping

from fastapi.responses import Response

DEFAULT_ALLOW_METHODS = "GET, POST, PUT, DELETE, OPTIONS"
PREFLIGHT_MAX_AGE = "86400"  # 24 hours


def build_preflight_headers(request_headers: Mapping[str, str]) -> Dict[str, str]:
    return {
        "Access-Control-Allow-Origin": request_headers.get("origin") or "*",
        "Access-Control-Allow-Methods": request_headers.get(
            "access-control-request-method"
        )
        or DEFAULT_ALLOW_METHODS,
        "Access-Control-Allow-Headers": request_headers.get(
            "access-control-request-headers"
        )
        or "",
        "Access-Control-Max-Age": PREFLIGHT_MAX_AGE,
    }


def build_preflight_response(request_headers: Mapping[str, str]) -> Response:
    """Answer a CORS preflight on behalf of the upstream, without contacting it."""
    return Response(status_code=200, headers=build_preflight_headers(request_headers))
