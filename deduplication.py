"""
deduplication.py — Remembers which listings were already delivered.

Identity is the listing URL. A URL counts as "already sent" while its record
is inside the retention window; older records are ignored by lookups and
removed by cleanup_old_records(). Listings are only committed after a
successful delivery, so a failed send leaves them eligible for the next run.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Optional

from database import (
    count_sent_by_source, count_sent_jobs, count_sent_since, delete_sent_before,
    find_existing_urls, init_db, store_sent_jobs, url_sent_since,
)
from models import JobListing, SentJob, utcnow
from monitoring import get_logger

logger = get_logger("deduplication")

DEFAULT_RETENTION_DAYS = 30


class DeduplicationStore:
    def __init__(self, db_path: Optional[Path] = None, retention_days: int = DEFAULT_RETENTION_DAYS, clock=utcnow):
        self.db_path = db_path
        self.retention_days = retention_days if retention_days and retention_days > 0 else DEFAULT_RETENTION_DAYS
        self.clock = clock
        init_db(db_path)

    def _window_start(self) -> datetime:
        return self.clock() - timedelta(days=self.retention_days)

    def filter_new(self, listings: list[JobListing]) -> list[JobListing]:
        """
        Keep listings whose URL was not sent inside the retention window.
        Input order is preserved. Repeats of a URL within the batch are dropped
        after the first occurrence, and listings without a URL are skipped.
        """
        if not listings:
            return []

        candidates = [l for l in listings if l is not None and l.url]
        existing = find_existing_urls((l.url for l in candidates), self._window_start(), self.db_path)

        new_listings = []
        seen: set[str] = set()
        for listing in candidates:
            if listing.url in existing or listing.url in seen:
                continue
            seen.add(listing.url)
            new_listings.append(listing)

        filtered = len(listings) - len(new_listings)
        logger.info(f"Already-sent filter: {len(listings)} → {len(new_listings)} ({filtered} already sent)")
        return new_listings

    def mark_as_sent(self, listings: list[JobListing]) -> int:
        """Record delivered listings in one transaction. Returns count stored."""
        now = self.clock()
        records = []
        seen: set[str] = set()
        for listing in listings or []:
            if listing is None or not listing.url or listing.url in seen:
                continue
            seen.add(listing.url)
            records.append(SentJob.from_listing(listing, now))

        stored = store_sent_jobs(records, self.db_path)
        if stored:
            logger.info(f"Marked {stored} jobs as sent")
        return stored

    # The pipeline's "commit" step
    commit = mark_as_sent

    def is_already_sent(self, url: str) -> bool:
        if not url:
            return False
        return url_sent_since(url, self._window_start(), self.db_path)

    def jobs_sent_today(self) -> int:
        start_of_day = self.clock().astimezone(timezone.utc).replace(hour=0, minute=0, second=0, microsecond=0)
        return count_sent_since(start_of_day, self.db_path)

    def total_sent(self) -> int:
        return count_sent_jobs(self.db_path)

    def sent_by_source(self) -> dict[str, int]:
        return count_sent_by_source(self.db_path)

    def cleanup_old_records(self, days: Optional[int] = None) -> int:
        """Delete records older than `days` (default: the retention window)."""
        days = days if days and days > 0 else self.retention_days
        deleted = delete_sent_before(self.clock() - timedelta(days=days), self.db_path)
        logger.info(f"Cleaned up {deleted} sent-job records older than {days} days")
        return deleted
