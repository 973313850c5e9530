from __future__ import annotations

import hashlib
import json
import logging
from collections.abc import Iterable
from dataclasses import asdict
from datetime import datetime, timezone
from pathlib import Path

from job_harvest.models import Posting, SnapshotMetadata

LOG = logging.getLogger(__name__)

_CHUNK_SIZE = 64 * 1024


class PublishError(Exception):
    pass


def compute_checksum(path: Path | str) -> str:
    """sha256 hex digest of the file's bytes. Only meaningful once the store is sealed."""
    digest = hashlib.sha256()
    with open(path, "rb") as handle:
        for chunk in iter(lambda: handle.read(_CHUNK_SIZE), b""):
            digest.update(chunk)
    return digest.hexdigest()


def _epoch(now_utc: datetime | None) -> int:
    return int((now_utc or datetime.now(timezone.utc)).timestamp())


def _write_json(path: Path, payload: dict) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as handle:
        json.dump(payload, handle, indent=2, ensure_ascii=False)
        handle.write("\n")


def publish_metadata(
    store_path: Path | str,
    processed_count: int,
    *,
    metadata_path: Path | str,
    now_utc: datetime | None = None,
) -> SnapshotMetadata:
    try:
        checksum = compute_checksum(store_path)
    except OSError as exc:
        raise PublishError(f"failed to hash {store_path}: {exc}") from exc

    metadata = SnapshotMetadata(
        last_updated=_epoch(now_utc),
        checksum=checksum,
        job_count=processed_count,
    )
    try:
        _write_json(Path(metadata_path), asdict(metadata))
    except OSError as exc:
        raise PublishError(f"failed to write {metadata_path}: {exc}") from exc

    LOG.info("wrote %s (checksum=%s, job_count=%d)", metadata_path, checksum, processed_count)
    return metadata


def export_snapshot(
    postings: Iterable[Posting],
    *,
    snapshot_path: Path | str,
    now_utc: datetime | None = None,
) -> Path:
    payload = {
        "last_updated": _epoch(now_utc),
        "jobs": [asdict(posting) for posting in postings],
    }
    path = Path(snapshot_path)
    try:
        _write_json(path, payload)
    except OSError as exc:
        raise PublishError(f"failed to write {path}: {exc}") from exc

    LOG.info("exported %d postings to %s", len(payload["jobs"]), path)
    return path
