"""Two interchangeable ways of fetching a document for a URL.

``HttpDocumentFetcher`` issues a plain request with httpx;
``BrowserDocumentFetcher`` drives headless Chromium through Playwright for
pages that need script execution. Both raise ``FetchError`` on any transport
or protocol failure so the crawler's retry policy can treat them alike.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol
from urllib.parse import unquote, urlparse

import httpx
from bs4 import UnicodeDammit

from job_harvest.config import Settings

ACCEPT_HEADER = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
ACCEPT_LANGUAGE_HEADER = "en-US,en;q=0.9"

ClientFactory = Callable[[str | None], httpx.Client]


class FetchError(Exception):
    pass


@dataclass(frozen=True)
class Document:
    html: str
    base_url: str


class DocumentFetcher(Protocol):
    def fetch(self, url: str, *, relay: str | None = None) -> Document: ...


def build_request_headers(
    user_agent: str,
    *,
    referer: str | None = None,
    extra_headers: Mapping[str, str] | None = None,
) -> dict[str, str]:
    headers = {
        "User-Agent": user_agent,
        "Accept": ACCEPT_HEADER,
        "Accept-Language": ACCEPT_LANGUAGE_HEADER,
    }
    if referer:
        headers["Referer"] = referer
    headers.update(extra_headers or {})
    return headers


def _read_local_document(url: str) -> Document:
    path = Path(unquote(urlparse(url).path))
    try:
        raw = path.read_bytes()
    except OSError as exc:
        raise FetchError(f"cannot read {path}: {exc}") from exc

    markup = UnicodeDammit(raw, is_html=True).unicode_markup
    if markup is None:
        raise FetchError(f"cannot decode {path}")
    return Document(html=markup, base_url=url)


class HttpDocumentFetcher:
    def __init__(
        self,
        *,
        headers: Mapping[str, str],
        timeout_seconds: float,
        client_factory: ClientFactory | None = None,
    ):
        self.headers = dict(headers)
        self.timeout_seconds = timeout_seconds
        self._client_factory = client_factory or self._default_client

    def _default_client(self, relay: str | None) -> httpx.Client:
        return httpx.Client(
            headers=self.headers,
            timeout=self.timeout_seconds,
            follow_redirects=True,
            proxy=relay,
        )

    def fetch(self, url: str, *, relay: str | None = None) -> Document:
        if url.startswith("file://"):
            return _read_local_document(url)

        try:
            with self._client_factory(relay) as client:
                response = client.get(url)
                response.raise_for_status()
                return Document(html=response.text, base_url=str(response.url))
        except httpx.HTTPError as exc:
            raise FetchError(f"{url}: {exc}") from exc


class BrowserDocumentFetcher:
    def __init__(
        self,
        *,
        user_agent: str,
        extra_headers: Mapping[str, str] | None = None,
        timeout_seconds: float = 60.0,
    ):
        self.user_agent = user_agent
        self.extra_headers = dict(extra_headers or {})
        self.timeout_ms = int(timeout_seconds * 1000)

    def fetch(self, url: str, *, relay: str | None = None) -> Document:
        try:
            from playwright.sync_api import Error as PlaywrightError
            from playwright.sync_api import sync_playwright
        except ImportError as exc:
            raise FetchError(f"playwright import failed: {exc}") from exc

        context_kwargs: dict = {"user_agent": self.user_agent}
        if self.extra_headers:
            context_kwargs["extra_http_headers"] = self.extra_headers
        if relay:
            context_kwargs["proxy"] = {"server": relay}

        try:
            with sync_playwright() as playwright:
                browser = playwright.chromium.launch(headless=True, args=["--disable-gpu", "--no-sandbox"])
                try:
                    context = browser.new_context(**context_kwargs)
                    page = context.new_page()
                    page.goto(url, wait_until="domcontentloaded", timeout=self.timeout_ms)
                    page.wait_for_selector("body", state="visible", timeout=self.timeout_ms)
                    document = Document(html=page.content(), base_url=page.url)
                    context.close()
                finally:
                    browser.close()
        except PlaywrightError as exc:
            raise FetchError(f"{url}: {exc}") from exc

        return document


def build_fetcher(settings: Settings) -> DocumentFetcher:
    headers = build_request_headers(
        settings.user_agent,
        referer=settings.target_url,
        extra_headers=settings.extra_headers,
    )
    if settings.fetch_mode == "browser":
        # the browser context sets User-Agent itself
        headers.pop("User-Agent", None)
        return BrowserDocumentFetcher(
            user_agent=settings.user_agent,
            extra_headers=headers,
            timeout_seconds=settings.request_timeout_seconds,
        )
    return HttpDocumentFetcher(headers=headers, timeout_seconds=settings.request_timeout_seconds)
