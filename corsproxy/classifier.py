"""
Decide what to do with an incoming request before anything leaves the proxy.

The target URL travels in the raw query string and is URL-decoded twice. The
first pass undoes the encoding a browser or HTTP client applies to the query;
the second undoes the encoding the caller applied to the target itself, so
``?https%253A%252F%252Fexample.com%252Fapi%253Fx%253D1`` resolves to
``https://example.com/api?x=1``.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum
from typing import Optional
from urllib.parse import unquote

from corsproxy.config import ProxyConfig
from corsproxy.utils import redact_url

logger = logging.getLogger("uvicorn.error")

# A percent sign that does not start a valid %XX escape
_MALFORMED_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


class Decision(str, Enum):
    INFO = "info"
    FORBIDDEN = "forbidden"
    PREFLIGHT = "preflight"
    FORWARD = "forward"


@dataclass(frozen=True)
class Classification:
    decision: Decision
    target_url: str = ""


class MalformedEncodingError(ValueError):
    """Raised when a percent-encoded component cannot be decoded."""


def decode_component(value: str) -> str:
    """Strictly decode one level of percent-encoding."""
    if _MALFORMED_ESCAPE.search(value):
        raise MalformedEncodingError(f"Malformed percent-escape in {value!r}")
    try:
        return unquote(value, errors="strict")
    except UnicodeDecodeError as e:
        raise MalformedEncodingError(f"Invalid UTF-8 escape in {value!r}") from e


def extract_target_url(query: str) -> str:
    """
    Return the target URL carried in ``query``, decoded exactly twice.

    An empty string means no target. Malformed encoding on either pass is
    treated the same way.
    """
    if not query:
        return ""
    try:
        return decode_component(decode_component(query))
    except MalformedEncodingError as e:
        logger.warning(f"[CORS-Proxy] Ignoring undecodable target: {e}")
        return ""


def classify(
    method: str, query: str, origin: Optional[str], config: ProxyConfig
) -> Classification:
    target_url = extract_target_url(query)
    if not target_url:
        return Classification(Decision.INFO)

    if not config.is_allowed(target_url, origin):
        logger.info(
            f"[CORS-Proxy] Rejected {method} {redact_url(target_url)} from origin {origin}"
        )
        return Classification(Decision.FORBIDDEN, target_url)

    if method.upper() == "OPTIONS":
        return Classification(Decision.PREFLIGHT, target_url)
    return Classification(Decision.FORWARD, target_url)
