from __future__ import annotations

from collections.abc import Iterable

from job_harvest.identity import assign_posting_id
from job_harvest.models import Candidate, Posting

SOURCE_NAME = "recruitment_nic"
TARGET_URL = "https://recruitment.nic.in/index_new.php"
DEPARTMENT = "NIC"
LOCATION = "All India"


def build_postings(candidates: Iterable[Candidate], *, observed_date: str) -> list[Posting]:
    postings: list[Posting] = []
    for candidate in candidates:
        title = candidate.text.strip()
        url = candidate.link.strip()
        if not title or not url:
            continue
        postings.append(
            Posting(
                id=assign_posting_id(url),
                title=title,
                department=DEPARTMENT,
                location=LOCATION,
                url=url,
                observed_date=observed_date,
            )
        )
    return postings
