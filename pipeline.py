"""
pipeline.py — One scanner run, start to finish.

Phases: fetch → already-sent filter → eligibility + scoring → sort →
AI enhancement → deliver → mark as sent.

Listings are only marked as sent after the digest went out. A failed
delivery raises DeliveryError and leaves them eligible for the next run.
"""

import time
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass, field
from typing import Callable, Optional

from deduplication import DeduplicationStore
from enhancer import JobEnhancer, NoOpEnhancer, is_discarded
from filters import EligibilityEngine
from metrics import NoOpMetrics, ScannerMetrics
from models import JobListing, RunStats
from monitoring import SEPARATOR, get_logger, log_pipeline_step
from scorer import ScoringEngine
from sources.base import JobSource
from sources.orchestrator import SourceOrchestrator, SourceReport, fetch_all_sources

logger = get_logger("pipeline")

BLOCKED, LOW_SCORE, QUALIFIED = "blocked", "low_score", "qualified"


class DeliveryError(Exception):
    """The digest could not be delivered. Nothing was marked as sent."""

    def __init__(self, message: str, stats: Optional[RunStats] = None):
        super().__init__(message)
        self.stats = stats


@dataclass
class PipelineResult:
    listings: list[JobListing] = field(default_factory=list)
    stats: RunStats = field(default_factory=RunStats)
    reports: list[SourceReport] = field(default_factory=list)
    dry_run: bool = False


class JobScannerPipeline:
    def __init__(
        self,
        sources: list[JobSource],
        eligibility: EligibilityEngine,
        scoring: ScoringEngine,
        dedup: DeduplicationStore,
        deliver: Callable[[list[JobListing]], bool],
        enhancer: Optional[JobEnhancer] = None,
        metrics: Optional[ScannerMetrics] = None,
        dry_run: bool = False,
        scoring_workers: int = 4,
        source_parallelism: int = 4,
        orchestrator: Optional[SourceOrchestrator] = None,
    ):
        self.sources = sources
        self.eligibility = eligibility
        self.scoring = scoring
        self.dedup = dedup
        self.deliver = deliver
        self.enhancer = enhancer or NoOpEnhancer()
        self.metrics = metrics or NoOpMetrics()
        self.dry_run = dry_run
        self.scoring_workers = max(1, scoring_workers)
        self.source_parallelism = max(1, source_parallelism)
        self.orchestrator = orchestrator or SourceOrchestrator(self.metrics)

    def run(self) -> PipelineResult:
        """Execute one run. Raises DeliveryError if the digest could not be sent."""
        run_start = time.time()
        stats = RunStats(dry_run=self.dry_run)
        result = PipelineResult(stats=stats, dry_run=self.dry_run)

        logger.info(SEPARATOR)
        logger.info("JOB SCANNER PIPELINE — Starting run")
        logger.info(f"Sources configured: {len(self.sources)} | Dry run: {self.dry_run}")
        logger.info(SEPARATOR)

        # ===== 1. FETCH ALL SOURCES =====
        logger.info("--- Phase 1: Fetching ---")
        all_listings, result.reports = fetch_all_sources(
            self.sources, self.metrics, self.source_parallelism, self.orchestrator
        )
        for report in result.reports:
            for company in report.failed_companies:
                stats.errors.append(f"{report.source}: {company} failed")

        stats.listings_found = len(all_listings)
        self.metrics.record_jobs_found(len(all_listings))
        log_pipeline_step(logger, "Fetching", 0, len(all_listings))

        if not all_listings:
            logger.warning("No listings fetched from any source")
            return self._finish(result, run_start)

        # ===== 2. FILTER ALREADY-SENT =====
        logger.info("--- Phase 2: Already-sent filter ---")
        new_listings = self.dedup.filter_new(all_listings)
        stats.listings_new = len(new_listings)
        log_pipeline_step(logger, "Already-sent filter", len(all_listings), len(new_listings))

        if not new_listings:
            logger.info("No new jobs to process")
            return self._finish(result, run_start)

        # ===== 3. ELIGIBILITY + SCORING =====
        logger.info("--- Phase 3: Eligibility and scoring ---")
        qualified = []
        with ThreadPoolExecutor(max_workers=self.scoring_workers, thread_name_prefix="score") as pool:
            for outcome, listing in pool.map(self.process_listing, new_listings):
                if outcome == BLOCKED:
                    stats.listings_blocked += 1
                elif outcome == LOW_SCORE:
                    stats.listings_low_score += 1
                else:
                    qualified.append(listing)

        self.metrics.record_jobs_filtered(len(new_listings) - len(qualified))
        self.metrics.record_jobs_qualified(len(qualified))
        log_pipeline_step(logger, "Eligibility + scoring", len(new_listings), len(qualified))
        logger.info(f"Qualified jobs (score >= {self.scoring.threshold}): {len(qualified)}")

        # ===== 4. SORT BY SCORE =====
        qualified.sort(key=lambda l: l.score, reverse=True)

        # ===== 5. AI ENHANCEMENT =====
        if qualified:
            qualified = self._enhance(qualified, stats)
        stats.listings_qualified = len(qualified)
        result.listings = qualified

        if not qualified:
            logger.info("SCAN SUMMARY: No qualifying jobs found")
            return self._finish(result, run_start)

        # ===== 6. DELIVER =====
        if self.dry_run:
            self._log_dry_run(qualified)
            return self._finish(result, run_start)

        logger.info("--- Phase 6: Delivery ---")
        try:
            delivered = self.deliver(qualified)
        except Exception as e:
            logger.error(f"Delivery raised: {e}")
            delivered = False

        if not delivered:
            stats.errors.append("Digest delivery failed")
            logger.error("Failed to send digest - jobs NOT marked as sent")
            self._finish(result, run_start)
            raise DeliveryError("Digest delivery failed", stats)

        # ===== 7. MARK AS SENT =====
        self.dedup.mark_as_sent(qualified)
        stats.listings_sent = len(qualified)
        self.metrics.record_jobs_sent(len(qualified))
        logger.info(f"Digest sent successfully with {len(qualified)} jobs")

        return self._finish(result, run_start)

    def process_listing(self, listing: JobListing) -> tuple[str, Optional[JobListing]]:
        """Run one listing through eligibility and scoring. Annotates it when qualified."""
        eligibility = self.eligibility.check_eligibility(listing)
        if not eligibility.eligible:
            logger.debug(f"'{listing.title}' not eligible: {eligibility.block_reason}")
            return BLOCKED, None

        scoring = self.scoring.calculate_score(listing, eligibility)
        if not scoring.should_apply:
            logger.debug(f"'{listing.title}' score too low: {scoring.score}")
            return LOW_SCORE, None

        listing.is_remote = eligibility.is_remote
        listing.is_contract = eligibility.is_contract
        listing.score = scoring.score
        listing.score_breakdown = dict(scoring.breakdown)
        return QUALIFIED, listing

    def _enhance(self, listings: list[JobListing], stats: RunStats) -> list[JobListing]:
        if not self.enhancer.is_enabled():
            logger.info("AI enhancement disabled - skipping")
            return listings

        logger.info(f"--- Phase 5: AI enhancement ({len(listings)} jobs) ---")
        try:
            enhanced = self.enhancer.enhance_all(listings) or listings
        except Exception as e:
            logger.error(f"AI enhancement failed: {e} - continuing without AI")
            return listings

        kept = [l for l in enhanced if not is_discarded(l)]
        stats.listings_discarded_by_ai = len(enhanced) - len(kept)
        logger.info(f"AI enhancement completed. {len(kept)} jobs remaining after AI filter")
        return kept

    def _log_dry_run(self, listings: list[JobListing]):
        logger.info(f"DRY RUN - Would send digest with {len(listings)} jobs:")
        for listing in listings:
            logger.info(f"  - [{listing.source}] {listing.title} @ {listing.company} (score: {listing.score})")
            if listing.ai_analysis:
                summary = listing.ai_analysis.replace("\n", " ").strip()
                if len(summary) > 150:
                    summary = summary[:150] + "..."
                logger.info(f"    AI Summary: {summary}")

    def _finish(self, result: PipelineResult, run_start: float) -> PipelineResult:
        stats = result.stats
        stats.duration_seconds = time.time() - run_start
        self.metrics.update_last_run_stats(stats.listings_found, stats.listings_qualified, stats.listings_sent)
        return result
