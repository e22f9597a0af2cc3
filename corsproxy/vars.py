import json
import os

DEFAULT_SERVICE_NAME = "cors-anywhere-proxy"
DEFAULT_PROXY_TIMEOUT = 300  # 5 minutes
DEFAULT_PROXY_MAX_BODY_BYTES = 10 * 1024 * 1024
DEFAULT_PROJECT_URL = "https://github.com/Zibri/cloudflare-cors-anywhere"
DEFAULT_DONATE_URL = "https://paypal.me/Zibri/5"


def _parse_pattern_list(raw: str) -> list[str]:
    """Parse a pattern list from either a JSON array or a comma-separated string."""
    if not raw or not raw.strip():
        return []
    raw = raw.strip()
    if raw.startswith("["):
        patterns = json.loads(raw)
        if not isinstance(patterns, list) or not all(
            isinstance(p, str) for p in patterns
        ):
            raise ValueError(f"Expected a JSON array of strings, got: {raw}")
        return patterns
    return [p.strip() for p in raw.split(",") if p.strip()]


SERVICE_NAME = os.getenv("SERVICE_NAME", DEFAULT_SERVICE_NAME)

# Regular expressions matched anywhere in the decoded target URL
BLACKLIST_URLS = _parse_pattern_list(os.environ.get("BLACKLIST_URLS", ""))
# Regular expressions matched anywhere in the Origin header
WHITELIST_ORIGINS = _parse_pattern_list(os.environ.get("WHITELIST_ORIGINS", ".*"))

PROXY_TIMEOUT = int(os.environ.get("PROXY_TIMEOUT", DEFAULT_PROXY_TIMEOUT))
PROXY_MAX_BODY_BYTES = int(
    os.environ.get("PROXY_MAX_BODY_BYTES", DEFAULT_PROXY_MAX_BODY_BYTES)
)

PROJECT_URL = os.environ.get("PROJECT_URL", DEFAULT_PROJECT_URL)
DONATE_URL = os.environ.get("DONATE_URL", DEFAULT_DONATE_URL)

METRICS_PATH = os.environ.get("METRICS_PATH", "/metrics")

OTLP_ENDPOINT = os.getenv("OTLP_ENDPOINT")
OTLP_HEADERS = os.getenv("OTLP_HEADERS", "")
