"""Cron entry point for trimming finished jobs from the Redis queue lists."""

from __future__ import annotations

import argparse
import sys
from dataclasses import dataclass

from redis.exceptions import RedisError

from src.contentgen.config import load_config
from src.contentgen.dependencies import build_job_queue
from src.contentgen.queue.redis_queue import KEEP_FINISHED_JOBS, RedisJobQueue


@dataclass(slots=True)
class CleanupSummary:
    completed_removed: int
    failed_removed: int
    dry_run: bool


def perform_cleanup(queue: RedisJobQueue, *, dry_run: bool) -> CleanupSummary:
    """Trim the completed and failed lists and return how many entries went away."""
    before = queue.get_queue_stats()
    if dry_run:
        return CleanupSummary(
            completed_removed=max(0, before.completed - KEEP_FINISHED_JOBS),
            failed_removed=max(0, before.failed - KEEP_FINISHED_JOBS),
            dry_run=True,
        )

    queue.cleanup_old_jobs()
    after = queue.get_queue_stats()
    return CleanupSummary(
        completed_removed=before.completed - after.completed,
        failed_removed=before.failed - after.failed,
        dry_run=False,
    )


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Trim finished jobs from the Redis queue.")
    parser.add_argument("--dry-run", action="store_true", help="Only report counts without trimming.")
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv or [])
    queue = build_job_queue(load_config())
    if queue is None:
        print("cleanup skipped, REDIS_URL is not set", file=sys.stderr)
        return 1
    try:
        summary = perform_cleanup(queue, dry_run=args.dry_run)
    except RedisError as exc:
        print(f"cleanup failed: {exc}", file=sys.stderr)
        return 2

    label = "cleanup dry-run" if summary.dry_run else "cleanup done"
    print(
        f"{label}, completed_removed={summary.completed_removed}, failed_removed={summary.failed_removed}",
        file=sys.stdout,
    )
    return 0


if __name__ == "__main__":
    sys.exit(main(sys.argv[1:]))
