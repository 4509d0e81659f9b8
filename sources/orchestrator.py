"""
orchestrator.py — Concurrent per-company fan-out for a single source, and the
cross-source fetch that feeds the pipeline.

Failure policy per company:
  - 429 / 5xx / timeout / transport error: one retry after a backoff
  - 404 / 410: classified dead (board likely moved to another ATS)
  - anything else: classified failed
Either way the company contributes zero listings and the batch continues.
"""

import re
import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional

import httpx

from metrics import NoOpMetrics, ScannerMetrics
from models import JobListing
from monitoring import get_logger, log_source_report
from sources.base import JobSource

logger = get_logger("sources.orchestrator")

TRANSIENT_STATUS = {429, 500, 502, 503, 504}
DEAD_STATUS = {404, 410}
RETRY_BACKOFF = 2.0

OK, EMPTY, DEAD, FAILED = "ok", "empty", "dead", "failed"

_WHITESPACE_RE = re.compile(r"\s+")
_ZERO_WIDTH_RE = re.compile("[\u200b-\u200d\ufeff]")


@dataclass
class SourceReport:
    """Outcome of one source's fetch. Company lists are for operator follow-up only."""
    source: str
    listings: list[JobListing] = field(default_factory=list)
    companies_total: int = 0
    empty_companies: list[str] = field(default_factory=list)
    dead_companies: list[str] = field(default_factory=list)
    failed_companies: list[str] = field(default_factory=list)
    duration: float = 0.0


def _status_code(error: Exception) -> Optional[int]:
    if isinstance(error, httpx.HTTPStatusError):
        return error.response.status_code
    return None


def is_transient(error: Exception) -> bool:
    status = _status_code(error)
    if status is not None:
        return status in TRANSIENT_STATUS
    return isinstance(error, (httpx.TimeoutException, httpx.TransportError))


def is_dead(error: Exception) -> bool:
    return _status_code(error) in DEAD_STATUS


def clean_url(url: Optional[str]) -> str:
    """Strip whitespace and zero-width characters; assume https when no scheme."""
    cleaned = _ZERO_WIDTH_RE.sub("", _WHITESPACE_RE.sub("", url or ""))
    if cleaned and not cleaned.startswith("http"):
        cleaned = "https://" + cleaned
    return cleaned


class SourceOrchestrator:
    def __init__(
        self,
        metrics: Optional[ScannerMetrics] = None,
        sleep: Callable[[float], None] = time.sleep,
        retry_backoff: float = RETRY_BACKOFF,
    ):
        self.metrics = metrics or NoOpMetrics()
        self.sleep = sleep
        self.retry_backoff = retry_backoff

    def fetch_source(self, source: JobSource) -> SourceReport:
        companies = source.companies()
        report = SourceReport(source=source.name, companies_total=len(companies))
        if not companies:
            return report

        logger.info(f"Fetching jobs from {source.name} ({len(companies)} companies)")
        start = time.monotonic()

        workers = max(1, min(source.concurrency, len(companies)))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix=f"fetch-{source.key}") as pool:
            futures = []
            for i, company in enumerate(companies):
                if i and source.dispatch_delay:
                    self.sleep(source.dispatch_delay)
                futures.append((company, pool.submit(self._fetch_company, source, company)))

            # Collected in submission order so output is deterministic for a given input
            for company, future in futures:
                outcome, listings = future.result()
                if outcome == EMPTY:
                    report.empty_companies.append(company)
                elif outcome == DEAD:
                    report.dead_companies.append(company)
                elif outcome == FAILED:
                    report.failed_companies.append(company)
                report.listings.extend(listings)

        report.duration = time.monotonic() - start
        if report.listings:
            self.metrics.increment_jobs_discovered(source.name, len(report.listings))
        log_source_report(logger, report)
        return report

    def _fetch_company(self, source: JobSource, company: str) -> tuple[str, list[JobListing]]:
        """Never raises. Returns (outcome, listings)."""
        attempts = 0
        while True:
            attempts += 1
            try:
                listings = source.request_company(company)
            except Exception as e:
                if attempts == 1 and is_transient(e):
                    logger.debug(f"{source.name} - {company} transient error, retrying: {e}")
                    self.sleep(self.retry_backoff)
                    continue
                return self._failure(source, company, e), []
            return (OK if listings else EMPTY), listings

    def _failure(self, source: JobSource, company: str, error: Exception) -> str:
        self.metrics.increment_fetch_failures(source.name)
        if is_dead(error):
            logger.debug(f"{source.name} - {company} likely moved or changed ATS: {error}")
            return DEAD
        logger.warning(f"{source.name} - {company} failed: {error}")
        return FAILED


def fetch_all_sources(
    sources: list[JobSource],
    metrics: Optional[ScannerMetrics] = None,
    parallelism: int = 4,
    orchestrator: Optional[SourceOrchestrator] = None,
) -> tuple[list[JobListing], list[SourceReport]]:
    """
    Fetch every source concurrently. Returns (all listings, per-source reports).
    A source that blows up as a whole yields an empty report. URLs are cleaned
    here and listings left without one are dropped, since the URL is their identity.
    """
    orchestrator = orchestrator or SourceOrchestrator(metrics)
    if not sources:
        return [], []

    reports: list[SourceReport] = []
    with ThreadPoolExecutor(max_workers=max(1, min(parallelism, len(sources))),
                            thread_name_prefix="source") as pool:
        futures = [(source, pool.submit(orchestrator.fetch_source, source)) for source in sources]
        for source, future in futures:
            try:
                reports.append(future.result())
            except Exception as e:
                logger.error(f"{source.name} fetch failed entirely: {e}")
                reports.append(SourceReport(source=source.name))

    listings = []
    dropped = 0
    for report in reports:
        for listing in report.listings:
            listing.url = clean_url(listing.url)
            if listing.url:
                listings.append(listing)
            else:
                dropped += 1
    if dropped:
        logger.warning(f"Dropped {dropped} listings without a URL")

    return listings, reports
