from __future__ import annotations

import logging
import re
from urllib.parse import urljoin

from bs4 import BeautifulSoup

from job_harvest.models import Candidate

LOG = logging.getLogger(__name__)


def _clean_spaces(value: str) -> str:
    return re.sub(r"\s+", " ", value).strip()


def _candidate_from_anchor(anchor, base_url: str) -> Candidate | None:
    link = (anchor.get("href") or "").strip()
    text = _clean_spaces(anchor.get_text())
    if not link or not text:
        return None
    return Candidate(link=urljoin(base_url, link), text=text)


def extract_candidates(html: str, *, base_url: str) -> list[Candidate]:
    """Collect every (absolute link, text) pair from the anchors of one document.

    Anchors with an empty href or blank text are dropped. A failure while
    handling a single anchor skips that anchor and keeps going.
    """
    soup = BeautifulSoup(html, "html.parser")
    candidates: list[Candidate] = []

    for anchor in soup.select("a[href]"):
        try:
            candidate = _candidate_from_anchor(anchor, base_url)
        except ValueError as exc:
            LOG.debug("skipping anchor %r: %s", anchor.get("href"), exc)
            continue
        if candidate is not None:
            candidates.append(candidate)

    return candidates
