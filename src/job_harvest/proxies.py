from __future__ import annotations

import logging
from collections.abc import Callable, Iterable
from dataclasses import dataclass

import httpx

from job_harvest.config import Settings

LOG = logging.getLogger(__name__)

DEFAULT_PROXY_SCHEME = "http://"
_RELAY_SCHEMES = ("http", "https", "socks5")

ProxyLoader = Callable[..., list[str]]


class RelayPoolError(ValueError):
    pass


def parse_proxy_list(body: str, *, scheme: str = DEFAULT_PROXY_SCHEME) -> list[str]:
    endpoints: list[str] = []
    for line in body.splitlines():
        entry = line.strip()
        if not entry or entry.startswith("#"):
            continue
        if "://" not in entry:
            entry = f"{scheme}{entry}"
        endpoints.append(entry)
    return endpoints


def fetch_proxy_list(
    url: str,
    *,
    timeout_seconds: float = 20.0,
    client: httpx.Client | None = None,
) -> list[str]:
    """Download a newline-separated ``host:port`` list. Failures yield an empty list."""
    try:
        if client is None:
            with httpx.Client(timeout=timeout_seconds, follow_redirects=True) as owned:
                response = owned.get(url)
        else:
            response = client.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        LOG.warning("proxy list fetch failed, using direct connection: %s", exc)
        return []

    endpoints = parse_proxy_list(response.text)
    LOG.info("loaded %d proxy endpoints from %s", len(endpoints), url)
    return endpoints


def _validate_relay(endpoint: str) -> str:
    try:
        parsed = httpx.URL(endpoint)
    except httpx.InvalidURL as exc:
        raise RelayPoolError(f"malformed relay endpoint {endpoint!r}: {exc}") from exc
    if parsed.scheme not in _RELAY_SCHEMES or not parsed.host:
        raise RelayPoolError(f"malformed relay endpoint {endpoint!r}")
    return endpoint


@dataclass(frozen=True)
class RelayPool:
    endpoints: tuple[str, ...]

    @classmethod
    def from_endpoints(cls, endpoints: Iterable[str]) -> RelayPool:
        cleaned = tuple(_validate_relay(endpoint.strip()) for endpoint in endpoints if endpoint.strip())
        if not cleaned:
            raise RelayPoolError("relay pool is empty")
        return cls(endpoints=cleaned)

    def cursor(self) -> RelayCursor:
        return RelayCursor(relays=self.endpoints)


@dataclass(frozen=True)
class RelayCursor:
    """Round-robin position in a fixed relay list; an empty list means direct connection."""

    relays: tuple[str, ...] = ()
    position: int = 0

    def advance(self) -> tuple[str | None, RelayCursor]:
        if not self.relays:
            return None, self
        relay = self.relays[self.position % len(self.relays)]
        return relay, RelayCursor(relays=self.relays, position=(self.position + 1) % len(self.relays))

    @property
    def is_direct(self) -> bool:
        return not self.relays


def resolve_relays(settings: Settings, *, loader: ProxyLoader = fetch_proxy_list) -> RelayCursor:
    if settings.proxy_url:
        try:
            return RelayPool.from_endpoints([settings.proxy_url]).cursor()
        except RelayPoolError as exc:
            LOG.warning("ignoring PROXY_URL, using direct connection: %s", exc)
            return RelayCursor()

    if not settings.proxy_list_url:
        return RelayCursor()

    endpoints = loader(settings.proxy_list_url, timeout_seconds=settings.request_timeout_seconds)
    try:
        pool = RelayPool.from_endpoints(endpoints)
    except RelayPoolError as exc:
        LOG.warning("relay pool unavailable, using direct connection: %s", exc)
        return RelayCursor()

    LOG.info("rotating across %d relays", len(pool.endpoints))
    return pool.cursor()
