import re
from dataclasses import dataclass, field
from typing import Optional, Pattern, Sequence

from corsproxy import vars as proxy_vars


def compile_patterns(patterns: Sequence[str]) -> tuple[Pattern[str], ...]:
    return tuple(re.compile(p) for p in patterns)


def is_listed(value: Optional[str], patterns: Sequence[Pattern[str]]) -> bool:
    """
    Return True when ``value`` matches at least one of ``patterns``.

    Patterns are searched anywhere in the value. A missing value (``None``)
    always counts as listed, whatever the pattern list holds; this is what lets
    requests without an ``Origin`` header through the origin whitelist.
    """
    if value is None:
        return True
    return any(p.search(value) is not None for p in patterns)


@dataclass(frozen=True)
class ProxyConfig:
    blacklist_urls: tuple[Pattern[str], ...] = ()
    whitelist_origins: tuple[Pattern[str], ...] = field(
        default_factory=lambda: compile_patterns([".*"])
    )
    timeout: float = proxy_vars.DEFAULT_PROXY_TIMEOUT
    max_body_bytes: int = proxy_vars.DEFAULT_PROXY_MAX_BODY_BYTES
    service_name: str = proxy_vars.DEFAULT_SERVICE_NAME
    project_url: str = proxy_vars.DEFAULT_PROJECT_URL
    donate_url: str = proxy_vars.DEFAULT_DONATE_URL

    @classmethod
    def from_patterns(
        cls,
        blacklist_urls: Sequence[str] = (),
        whitelist_origins: Sequence[str] = (".*",),
        **kwargs,
    ) -> "ProxyConfig":
        return cls(
            blacklist_urls=compile_patterns(blacklist_urls),
            whitelist_origins=compile_patterns(whitelist_origins),
            **kwargs,
        )

    @classmethod
    def from_env(cls) -> "ProxyConfig":
        """Build the configuration from the values read in ``corsproxy.vars``."""
        return cls.from_patterns(
            blacklist_urls=proxy_vars.BLACKLIST_URLS,
            whitelist_origins=proxy_vars.WHITELIST_ORIGINS,
            timeout=proxy_vars.PROXY_TIMEOUT,
            max_body_bytes=proxy_vars.PROXY_MAX_BODY_BYTES,
            service_name=proxy_vars.SERVICE_NAME,
            project_url=proxy_vars.PROJECT_URL,
            donate_url=proxy_vars.DONATE_URL,
        )

    def is_allowed(self, target_url: str, origin: Optional[str]) -> bool:
        return not is_listed(target_url, self.blacklist_urls) and is_listed(
            origin, self.whitelist_origins
        )
