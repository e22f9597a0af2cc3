from fastapi import Request
from fastapi.responses import HTMLResponse, PlainTextResponse

from corsproxy.config import ProxyConfig


def info_text(config: ProxyConfig, base_url: str) -> str:
    # The limits are informational only and not enforced anywhere.
    return (
        f"{config.service_name.upper()}\n\n"
        f"Source:\n{config.project_url}\n\n"
        f"Usage:\n{base_url}/?uri\n\n"
        f"Donate:\n{config.donate_url}\n\n"
        "Limits: 100,000 requests/day\n"
        "          1,000 requests/10 minutes\n\n"
    )


def forbidden_html(config: ProxyConfig) -> str:
    return (
        "Create your own CORS proxy</br>\n"
        f"<a href='{config.project_url}'>{config.project_url}</a></br>\n"
        "\nDonate</br>\n"
        f"<a href='{config.donate_url}'>{config.donate_url}</a>\n"
    )


def info_response(request: Request, config: ProxyConfig) -> PlainTextResponse:
    base_url = f"{request.url.scheme}://{request.url.netloc}"
    return PlainTextResponse(info_text(config, base_url), status_code=200)


def forbidden_response(config: ProxyConfig) -> HTMLResponse:
    return HTMLResponse(forbidden_html(config), status_code=403)
