"""
monitoring.py — Logging setup and run reporting for the Job Scanner pipeline.
"""

import logging
import os
import sys

from config import LOG_DIR, LOG_FILE

APP_LOGGER = "job_scanner"
SEPARATOR = "=" * 60


def setup_logging(level: int = None) -> logging.Logger:
    """
    Set up structured logging to both file and stdout.
    Returns the root logger for the application.
    """
    if level is None:
        level = getattr(logging, os.getenv("LOG_LEVEL", "INFO").upper(), logging.INFO)

    LOG_DIR.mkdir(parents=True, exist_ok=True)

    logger = logging.getLogger(APP_LOGGER)
    logger.setLevel(level)

    # Prevent duplicate handlers on re-init
    if logger.handlers:
        return logger

    formatter = logging.Formatter(
        fmt="%(asctime)s | %(levelname)-8s | %(name)s | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S"
    )

    file_handler = logging.FileHandler(str(LOG_FILE), mode="a", encoding="utf-8")
    file_handler.setLevel(level)
    file_handler.setFormatter(formatter)
    logger.addHandler(file_handler)

    stream_handler = logging.StreamHandler(sys.stdout)
    stream_handler.setLevel(level)
    stream_handler.setFormatter(formatter)
    logger.addHandler(stream_handler)

    return logger


def get_logger(name: str) -> logging.Logger:
    """Get a child logger for a specific module."""
    return logging.getLogger(f"{APP_LOGGER}.{name}")


def log_source_report(logger: logging.Logger, report):
    """Log the outcome of one source's fan-out, including cleanup recommendations."""
    logger.info(
        f"[{report.source}] {len(report.listings)} listings from "
        f"{report.companies_total} companies in {report.duration:.1f}s"
    )
    if report.dead_companies:
        logger.info(
            f"--- CLEANUP RECOMMENDATION (DEAD) for {report.source}: "
            f"{', '.join(sorted(report.dead_companies))} ---"
        )
    if report.empty_companies:
        logger.info(
            f"--- EMPTY COMPANIES for {report.source} (0 jobs): "
            f"{', '.join(sorted(report.empty_companies))} ---"
        )
    if report.failed_companies:
        logger.warning(
            f"[{report.source}] {len(report.failed_companies)} companies failed: "
            f"{', '.join(sorted(report.failed_companies))}"
        )


def log_pipeline_step(logger: logging.Logger, step: str, input_count: int, output_count: int):
    """Log a pipeline step with input/output counts."""
    filtered = input_count - output_count
    logger.info(f"[{step}] {input_count} in → {output_count} out ({filtered} filtered)")


def log_run_summary(logger: logging.Logger, stats):
    """Log a complete run summary."""
    logger.info(SEPARATOR)
    logger.info("RUN SUMMARY" + (" (DRY RUN)" if stats.dry_run else ""))
    logger.info(f"  Total fetched:     {stats.listings_found}")
    logger.info(f"  New (not sent):    {stats.listings_new}")
    logger.info(f"  Blocked by rules:  {stats.listings_blocked}")
    logger.info(f"  Below threshold:   {stats.listings_low_score}")
    logger.info(f"  Qualified:         {stats.listings_qualified}")
    logger.info(f"  Discarded by AI:   {stats.listings_discarded_by_ai}")
    logger.info(f"  Sent:              {stats.listings_sent}")
    logger.info(f"  Errors:            {len(stats.errors)}")
    logger.info(f"  Duration:          {stats.duration_seconds:.1f}s")

    if stats.errors:
        logger.warning("ERRORS:")
        for err in stats.errors:
            logger.warning(f"  - {err}")

    logger.info(SEPARATOR)
