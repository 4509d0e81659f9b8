"""
metrics.py — Prometheus metrics for scanner runs.

Every stage receives a ScannerMetrics instance and only writes to it.
NoOpMetrics is the default when nothing is configured (and in tests).
"""

from prometheus_client import CollectorRegistry, Counter, Gauge, Histogram, push_to_gateway

from monitoring import get_logger

logger = get_logger("metrics")


class ScannerMetrics:
    """Write-only metrics sink. The base class ignores everything."""

    def record_jobs_found(self, count: int):
        pass

    def record_jobs_filtered(self, count: int):
        pass

    def record_jobs_qualified(self, count: int):
        pass

    def record_jobs_sent(self, count: int):
        pass

    def record_api_call(self, source: str):
        pass

    def record_api_error(self, source: str):
        pass

    def increment_fetch_failures(self, source: str):
        pass

    def increment_jobs_discovered(self, source: str, count: int = 1):
        pass

    def record_fetch_latency(self, source: str, seconds: float):
        pass

    def update_last_run_stats(self, found: int, qualified: int, sent: int):
        pass


class NoOpMetrics(ScannerMetrics):
    pass


class PrometheusMetrics(ScannerMetrics):
    """Counters, gauges and a latency histogram on a private registry."""

    def __init__(self, registry: CollectorRegistry = None):
        self.registry = registry or CollectorRegistry()
        r = self.registry

        self.jobs_found = Counter("job_scanner_jobs_found", "Total jobs found from all sources", registry=r)
        self.jobs_filtered = Counter(
            "job_scanner_jobs_filtered", "Total jobs filtered out (ineligible or low score)", registry=r
        )
        self.jobs_qualified = Counter(
            "job_scanner_jobs_qualified", "Total jobs that passed eligibility and score threshold", registry=r
        )
        self.jobs_sent = Counter("job_scanner_jobs_sent", "Total jobs sent via email", registry=r)

        self.api_calls = Counter("job_scanner_api_calls", "API calls to ATS sources", ["source"], registry=r)
        self.api_errors = Counter("job_scanner_api_errors", "API errors from ATS sources", ["source"], registry=r)
        self.fetch_failures = Counter(
            "job_scanner_fetch_failures", "Per-company fetch failures", ["source"], registry=r
        )
        self.jobs_discovered = Counter(
            "job_scanner_jobs_discovered", "Jobs discovered per source", ["source"], registry=r
        )
        self.fetch_latency = Histogram(
            "job_scanner_source_fetch_duration_seconds", "Time to fetch one company from a source",
            ["source"], registry=r,
            buckets=(0.1, 0.25, 0.5, 1, 2, 5, 10, 30),
        )

        self.last_run_found = Gauge("job_scanner_last_run_jobs_found", "Jobs found in last run", registry=r)
        self.last_run_qualified = Gauge(
            "job_scanner_last_run_jobs_qualified", "Jobs qualified in last run", registry=r
        )
        self.last_run_sent = Gauge("job_scanner_last_run_jobs_sent", "Jobs sent in last run", registry=r)

    def record_jobs_found(self, count: int):
        self.jobs_found.inc(count)

    def record_jobs_filtered(self, count: int):
        self.jobs_filtered.inc(count)

    def record_jobs_qualified(self, count: int):
        self.jobs_qualified.inc(count)

    def record_jobs_sent(self, count: int):
        self.jobs_sent.inc(count)

    def record_api_call(self, source: str):
        self.api_calls.labels(source=source).inc()

    def record_api_error(self, source: str):
        self.api_errors.labels(source=source).inc()

    def increment_fetch_failures(self, source: str):
        self.fetch_failures.labels(source=source).inc()

    def increment_jobs_discovered(self, source: str, count: int = 1):
        self.jobs_discovered.labels(source=source).inc(count)

    def record_fetch_latency(self, source: str, seconds: float):
        self.fetch_latency.labels(source=source).observe(seconds)

    def update_last_run_stats(self, found: int, qualified: int, sent: int):
        self.last_run_found.set(found)
        self.last_run_qualified.set(qualified)
        self.last_run_sent.set(sent)

    def push(self, gateway: str, job: str = "job_scanner"):
        """Push the registry to a Pushgateway. Failures are logged, never raised."""
        try:
            push_to_gateway(gateway, job=job, registry=self.registry)
            logger.info(f"Metrics pushed to {gateway}")
        except Exception as e:
            logger.warning(f"Failed to push metrics to {gateway}: {e}")
