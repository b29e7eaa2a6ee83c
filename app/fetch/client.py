import logging
import re
from dataclasses import dataclass
from typing import Mapping, Optional, Tuple

import httpx

from app.core.config import settings

logger = logging.getLogger(__name__)

PROXY_SCHEMES = ("http", "https", "socks5", "socks5h")

# RFC 9110 field-name token and field-value (visible ASCII, space, tab)
_HEADER_NAME_RE = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")
_HEADER_VALUE_RE = re.compile(r"^[\t\x20-\x7e]*$")

class ClientConfigError(ValueError):
    """Raised when caller-supplied client settings make the whole batch unusable."""

@dataclass(frozen=True)
class ClientConfig:
    """Settings shared read-only by every fetch in one batch."""
    user_agent: str
    headers: Tuple[Tuple[str, str], ...] = ()
    proxy: Optional[str] = None
    timeout: float = 30.0

    def request_headers(self) -> httpx.Headers:
        """Default headers for every request; an explicit User-Agent header wins."""
        merged = httpx.Headers({"User-Agent": self.user_agent})
        merged.update(dict(self.headers))
        return merged

def is_valid_header_name(name: str) -> bool:
    return bool(_HEADER_NAME_RE.match(name))

def is_valid_header_value(value: str) -> bool:
    return bool(_HEADER_VALUE_RE.match(value))

def validate_headers(headers: Optional[Mapping[str, str]]) -> Tuple[Tuple[str, str], ...]:
    """
    Return headers as pairs, or raise ClientConfigError on the first illegal one.
    Invalid pairs are never skipped.
    """
    if not headers:
        return ()

    validated = []
    for name, value in headers.items():
        if not is_valid_header_name(name):
            raise ClientConfigError(f"Invalid header name: {name!r}")
        if not is_valid_header_value(value):
            raise ClientConfigError(f"Invalid value for header {name!r}")
        validated.append((name, value))
    return tuple(validated)

def mask_proxy(proxy_url: str) -> str:
    """Hide the password part of a proxy URL for logging."""
    try:
        url = httpx.URL(proxy_url)
    except (httpx.InvalidURL, ValueError):
        return proxy_url
    if url.password:
        return str(url.copy_with(password="***"))
    return proxy_url

def check_proxy_url(proxy_url: str) -> None:
    """Raise ValueError if `proxy_url` cannot be used as a proxy."""
    try:
        url = httpx.URL(proxy_url)
    except httpx.InvalidURL as exc:
        raise ValueError(str(exc)) from exc
    if url.scheme not in PROXY_SCHEMES:
        raise ValueError(f"unsupported proxy scheme {url.scheme!r}")
    if not url.host:
        raise ValueError("proxy URL has no host")

def resolve_proxy(proxy: Optional[str], fallback_proxy: Optional[str]) -> Optional[str]:
    """
    Pick the proxy for a batch: the explicit one, else the fallback, else none.
    A malformed proxy URL is dropped with a warning and requests go out directly.
    """
    candidate = (proxy or "").strip() or (fallback_proxy or "").strip() or None

    if candidate is None:
        logger.warning("No proxy configured; outgoing IP will be the server's")
        return None

    try:
        check_proxy_url(candidate)
    except ValueError as exc:
        logger.warning("Invalid proxy URL %r: %s; continuing without proxy", mask_proxy(candidate), exc)
        return None

    logger.info("Using proxy: %s", mask_proxy(candidate))
    return candidate

def build_client_config(
    headers: Optional[Mapping[str, str]] = None,
    proxy: Optional[str] = None,
    user_agent: Optional[str] = None,
    fallback_proxy: Optional[str] = None,
    timeout: Optional[float] = None,
) -> ClientConfig:
    """
    Validate caller settings and resolve them into a ClientConfig.

    Blank user agent -> settings.USER_AGENT, no timeout -> settings.REQUEST_TIMEOUT.
    `proxy` wins over `fallback_proxy`, which the caller passes in explicitly.
    Raises ClientConfigError for an illegal header or user agent.
    """
    ua = (user_agent or "").strip() or settings.USER_AGENT
    if not is_valid_header_value(ua):
        raise ClientConfigError("Invalid user agent")

    return ClientConfig(
        user_agent=ua,
        headers=validate_headers(headers),
        proxy=resolve_proxy(proxy, fallback_proxy),
        timeout=settings.REQUEST_TIMEOUT if timeout is None else timeout,
    )

def build_client(config: ClientConfig, transport: Optional[httpx.AsyncBaseTransport] = None) -> httpx.AsyncClient:
    """Create the shared async client for one batch. The caller closes it."""
    return httpx.AsyncClient(
        headers=config.request_headers(),
        proxy=config.proxy,
        timeout=config.timeout,
        follow_redirects=True,
        trust_env=False,
        transport=transport,
    )
