from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class Candidate:
    link: str
    text: str


@dataclass(frozen=True)
class Posting:
    id: str
    title: str
    department: str
    location: str
    url: str
    observed_date: str


@dataclass(frozen=True)
class JobRecord:
    id: str
    title: str
    department: str
    location: str
    posted_date: int
    url: str


@dataclass(frozen=True)
class SnapshotMetadata:
    last_updated: int
    checksum: str
    job_count: int


@dataclass(frozen=True)
class CrawlResult:
    target: str
    candidates: list[Candidate]
    attempts: int
    error: str | None = None


@dataclass(frozen=True)
class PipelineResult:
    target: str
    candidate_count: int
    job_count: int
    upserted_count: int
    failed_upserts: int
    crawl_error: str | None
    checksum: str
    metadata_path: Path
    snapshot_path: Path | None
