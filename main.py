"""
main.py — Entry point for the Job Scanner.
Loads configuration, wires the pipeline together and runs it once.

Examples:
    python main.py
    python main.py --dry-run
    python main.py --config ./my-preferences.yaml
    python main.py --cleanup 30
    python main.py --stats
"""

import argparse
import sys
from datetime import datetime

import config
from config import AppConfig, ConfigError, load_config, validate_config
from database import get_last_run, log_run
from deduplication import DeduplicationStore
from email_digest import send_digest
from enhancer import build_enhancer
from filters import EligibilityEngine
from metrics import NoOpMetrics, PrometheusMetrics
from monitoring import SEPARATOR, get_logger, log_run_summary, setup_logging
from patterns import PatternCache
from pipeline import DeliveryError, JobScannerPipeline
from scorer import ScoringEngine
from sources import build_sources
from sources.base import SourceToolkit


def parse_args(argv=None) -> argparse.Namespace:
    p = argparse.ArgumentParser(description="Scan ATS job boards and email a digest of qualified jobs.")
    p.add_argument("--dry-run", action="store_true", help="Run every phase but skip sending and marking as sent.")
    p.add_argument("--config", type=str, default=None, help="Path to preferences.yaml.")
    p.add_argument("--cleanup", type=int, metavar="DAYS", default=None,
                   help="Delete sent-job records older than DAYS and exit.")
    p.add_argument("--stats", action="store_true", help="Print sent-job counts and exit.")
    return p.parse_args(argv)


def build_pipeline(app_config: AppConfig, toolkit: SourceToolkit, metrics, dry_run: bool) -> JobScannerPipeline:
    patterns = PatternCache()
    return JobScannerPipeline(
        sources=build_sources(app_config, toolkit),
        eligibility=EligibilityEngine(app_config.rules, patterns),
        scoring=ScoringEngine(app_config.scoring, app_config.rules.primary_domain_term, patterns),
        dedup=DeduplicationStore(retention_days=app_config.scanner.retention_days),
        deliver=send_digest,
        enhancer=build_enhancer(app_config.ai),
        metrics=metrics,
        dry_run=dry_run,
        scoring_workers=app_config.scanner.scoring_workers,
        source_parallelism=app_config.scanner.source_parallelism,
    )


def print_stats(store: DeduplicationStore):
    print(f"Jobs sent today:   {store.jobs_sent_today()}")
    print(f"Jobs sent (total): {store.total_sent()}")
    for source, count in store.sent_by_source().items():
        print(f"  {source:<16} {count}")
    last_run = get_last_run()
    if last_run:
        print(f"Last run: {last_run['run_date']} — found {last_run['listings_found']}, "
              f"qualified {last_run['listings_qualified']}, sent {last_run['listings_sent']}")


def run(args: argparse.Namespace) -> int:
    """Execute the Job Scanner. Returns the process exit code."""
    setup_logging()
    logger = get_logger("main")

    try:
        app_config = load_config(args.config)
    except ConfigError as e:
        logger.error(f"Configuration error: {e}")
        return 1

    if args.cleanup is not None:
        DeduplicationStore(retention_days=app_config.scanner.retention_days).cleanup_old_records(args.cleanup)
        return 0

    if args.stats:
        print_stats(DeduplicationStore(retention_days=app_config.scanner.retention_days))
        return 0

    logger.info(SEPARATOR)
    logger.info("JOB SCANNER — Starting run")
    logger.info(f"Timestamp: {datetime.now().isoformat()}")
    logger.info(f"Companies configured: {app_config.total_companies()}")
    logger.info(SEPARATOR)

    for warning in validate_config(app_config):
        logger.warning(f"Config: {warning}")

    dry_run = args.dry_run or app_config.scanner.dry_run
    metrics = PrometheusMetrics() if config.METRICS_PUSHGATEWAY else NoOpMetrics()

    exit_code = 0
    with SourceToolkit(metrics) as toolkit:
        pipeline = build_pipeline(app_config, toolkit, metrics, dry_run)
        try:
            stats = pipeline.run().stats
        except DeliveryError as e:
            logger.error(f"Run failed: {e}")
            stats = e.stats
            exit_code = 1

    if stats is not None:
        log_run_summary(logger, stats)
        log_run(stats)

    if isinstance(metrics, PrometheusMetrics):
        metrics.push(config.METRICS_PUSHGATEWAY)

    logger.info("JOB SCANNER — Run complete" if exit_code == 0 else "JOB SCANNER — Run FAILED")
    return exit_code


def main(argv=None) -> int:
    return run(parse_args(argv))


if __name__ == "__main__":
    sys.exit(main())
