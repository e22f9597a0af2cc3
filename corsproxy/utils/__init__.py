from urllib.parse import urlsplit, urlunsplit


def redact_url(url: str) -> str:
    """Strip any ``user:password@`` part from ``url`` so it can be logged."""
    try:
        parts = urlsplit(url)
    except ValueError:
        return url
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit(parts._replace(netloc=f"****@{host}"))
