from __future__ import annotations

import logging
import time
from collections.abc import Callable
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from job_harvest.config import Settings
from job_harvest.crawler import CrawlEngine
from job_harvest.fetchers import DocumentFetcher, build_fetcher
from job_harvest.models import JobRecord, PipelineResult, Posting
from job_harvest.proxies import ProxyLoader, fetch_proxy_list, resolve_relays
from job_harvest.publish import PublishError, export_snapshot, publish_metadata
from job_harvest.scrapers.recruitment_nic import build_postings
from job_harvest.storage import JobStore, StoreError

LOG = logging.getLogger(__name__)


def _observed_date(settings: Settings, run_at_utc: datetime) -> str:
    try:
        local_now = run_at_utc.astimezone(ZoneInfo(settings.tz))
    except (ZoneInfoNotFoundError, ValueError):
        local_now = run_at_utc
    return local_now.date().isoformat()


def _to_record(posting: Posting, posted_date: int) -> JobRecord:
    return JobRecord(
        id=posting.id,
        title=posting.title,
        department=posting.department,
        location=posting.location,
        posted_date=posted_date,
        url=posting.url,
    )


def _upsert_all(store: JobStore, postings: list[Posting], posted_date: int) -> tuple[int, int]:
    upserted = 0
    failed = 0
    for posting in postings:
        try:
            store.upsert(_to_record(posting, posted_date))
        except StoreError as exc:
            LOG.warning("skipping job %s: %s", posting.id, exc)
            failed += 1
            continue
        upserted += 1
    return upserted, failed


def run_pipeline(
    settings: Settings,
    *,
    fetcher: DocumentFetcher | None = None,
    proxy_loader: ProxyLoader = fetch_proxy_list,
    now_utc: datetime | None = None,
    sleep: Callable[[float], None] = time.sleep,
) -> PipelineResult:
    """Crawl the target, upsert every posting, seal the store and publish its metadata.

    Store open, crawl dispatch, seal and metadata failures propagate to the
    caller. Relay, per-record and raw snapshot failures are logged and the run
    continues.
    """
    run_at_utc = now_utc or datetime.now(timezone.utc)
    run_epoch = int(run_at_utc.timestamp())

    with JobStore(settings.db_path) as store:
        engine = CrawlEngine(
            fetcher or build_fetcher(settings),
            max_retries=settings.max_retries,
            retry_delay_seconds=settings.retry_delay_seconds,
            run_timeout_seconds=settings.run_timeout_seconds,
            relays=resolve_relays(settings, loader=proxy_loader),
            sleep=sleep,
        )
        crawl = engine.run(settings.target_url)

        postings = build_postings(crawl.candidates, observed_date=_observed_date(settings, run_at_utc))
        LOG.info("scraped %d jobs, inserting into %s", len(postings), settings.db_path)
        upserted, failed = _upsert_all(store, postings, run_epoch)

        store.seal_and_close()

    metadata = publish_metadata(
        settings.db_path,
        len(postings),
        metadata_path=settings.metadata_path,
        now_utc=run_at_utc,
    )

    snapshot_path = None
    if settings.export_json:
        try:
            snapshot_path = export_snapshot(postings, snapshot_path=settings.snapshot_path, now_utc=run_at_utc)
        except PublishError as exc:
            LOG.error("raw snapshot export failed: %s", exc)

    return PipelineResult(
        target=settings.target_url,
        candidate_count=len(crawl.candidates),
        job_count=len(postings),
        upserted_count=upserted,
        failed_upserts=failed,
        crawl_error=crawl.error,
        checksum=metadata.checksum,
        metadata_path=settings.metadata_path,
        snapshot_path=snapshot_path,
    )
