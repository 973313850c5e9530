from __future__ import annotations

import logging
import time
from collections.abc import Callable
from urllib.parse import urlparse

from tenacity import (
    Retrying,
    before_sleep_log,
    retry_if_exception_type,
    stop_after_attempt,
    stop_after_delay,
    wait_fixed,
)

from job_harvest.fetchers import Document, DocumentFetcher, FetchError
from job_harvest.models import CrawlResult
from job_harvest.proxies import RelayCursor
from job_harvest.scrapers.common import extract_candidates

LOG = logging.getLogger(__name__)

_WEB_SCHEMES = ("http", "https")


class NavigationError(ValueError):
    """The target cannot be visited at all; no request was dispatched."""


def validate_target(target: str) -> str:
    try:
        parsed = urlparse(target)
    except ValueError as exc:
        raise NavigationError(f"malformed target URL {target!r}: {exc}") from exc

    if parsed.scheme in _WEB_SCHEMES:
        if not parsed.hostname:
            raise NavigationError(f"target URL {target!r} has no host")
        return target
    if parsed.scheme == "file":
        if not parsed.path:
            raise NavigationError(f"target URL {target!r} has no path")
        return target
    raise NavigationError(f"unsupported target URL {target!r}")


class CrawlEngine:
    """Fetch one page with retry/backoff and relay rotation, then extract its candidates.

    Every call to ``run`` starts from attempt 1 and from the start of the
    relay rotation; nothing carries over between runs.
    """

    def __init__(
        self,
        fetcher: DocumentFetcher,
        *,
        max_retries: int = 3,
        retry_delay_seconds: float = 2.0,
        run_timeout_seconds: float = 300.0,
        relays: RelayCursor | None = None,
        sleep: Callable[[float], None] = time.sleep,
    ):
        if max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        self.fetcher = fetcher
        self.max_retries = max_retries
        self.retry_delay_seconds = retry_delay_seconds
        self.run_timeout_seconds = run_timeout_seconds
        self.relays = relays or RelayCursor()
        self._sleep = sleep

    def _retrying(self) -> Retrying:
        return Retrying(
            stop=stop_after_attempt(self.max_retries + 1) | stop_after_delay(self.run_timeout_seconds),
            wait=wait_fixed(self.retry_delay_seconds),
            retry=retry_if_exception_type(FetchError),
            before_sleep=before_sleep_log(LOG, logging.WARNING),
            sleep=self._sleep,
            reraise=True,
        )

    def run(self, target: str) -> CrawlResult:
        validate_target(target)
        LOG.info("visiting %s", target)

        cursor = self.relays
        attempts = 0
        document: Document | None = None
        try:
            for attempt in self._retrying():
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    relay, cursor = cursor.advance()
                    if relay:
                        LOG.debug("attempt %d via relay %s", attempts, relay)
                    document = self.fetcher.fetch(target, relay=relay)
            if document is None:
                raise FetchError(f"no document returned for {target}")
        except FetchError as exc:
            LOG.warning("giving up on %s after %d attempt(s): %s", target, attempts, exc)
            return CrawlResult(target=target, candidates=[], attempts=attempts, error=str(exc))

        candidates = extract_candidates(document.html, base_url=document.base_url)
        LOG.info("found %d candidate links on %s", len(candidates), document.base_url)
        return CrawlResult(target=target, candidates=candidates, attempts=attempts)
