from __future__ import annotations

import argparse
import logging

from job_harvest.config import load_settings
from job_harvest.pipeline import run_pipeline
from job_harvest.publish import PublishError
from job_harvest.storage import JobStore, StoreError

LOG = logging.getLogger("job_harvest")

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="job-harvest")
    parser.add_argument(
        "--log-level",
        default="INFO",
        choices=("DEBUG", "INFO", "WARNING", "ERROR"),
        help="Logging verbosity",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    run_parser = subparsers.add_parser("run", help="Crawl, persist, seal the job store and publish metadata")
    run_parser.add_argument("--target", default=None, help="Override TARGET_URL for this run")
    run_parser.add_argument(
        "--no-export",
        action="store_true",
        default=False,
        help="Skip writing the raw JSON snapshot of this run",
    )
    subparsers.add_parser("healthcheck", help="Validate config and that the job store can be opened")

    return parser


def _cmd_run(args: argparse.Namespace) -> int:
    settings = load_settings()
    updates = {}
    if args.target:
        updates["target_url"] = args.target
    if args.no_export:
        updates["export_json"] = False
    if updates:
        settings = settings.model_copy(update=updates)

    result = run_pipeline(settings)

    print(
        "run summary:",
        f"candidates={result.candidate_count}",
        f"job_count={result.job_count}",
        f"upserted={result.upserted_count}",
        f"failed_upserts={result.failed_upserts}",
        f"checksum={result.checksum}",
    )
    if result.crawl_error:
        LOG.warning("crawl degraded: %s", result.crawl_error)
    return 0


def _cmd_healthcheck() -> int:
    settings = load_settings()
    if not settings.db_path.exists():
        print(f"job store not created yet: {settings.db_path}")
        print("healthcheck passed")
        return 0

    try:
        with JobStore(settings.db_path, read_only=True) as store:
            count = store.count_jobs()
    except StoreError as exc:
        print(f"job store check failed: {exc}")
        return 1

    print(f"job store ready: {settings.db_path} ({count} jobs)")
    print("healthcheck passed")
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = _build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level), format=LOG_FORMAT)

    try:
        if args.command == "run":
            return _cmd_run(args)
        if args.command == "healthcheck":
            return _cmd_healthcheck()
    except (StoreError, PublishError, ValueError) as exc:
        LOG.error("run failed: %s", exc)
        return 1

    parser.print_help()
    return 1


if __name__ == "__main__":
    raise SystemExit(main())
