"""
Shared fixtures. The project uses a flat module layout, so the repository
root is put on sys.path the same way the scripts expect it.
"""

import sys
from datetime import datetime, timezone
from pathlib import Path

import httpx
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from config import RulesConfig, ScoringConfig, SourceSettings  # noqa: E402
from deduplication import DeduplicationStore  # noqa: E402
from models import JobListing  # noqa: E402
from patterns import PatternCache  # noqa: E402
from sources.base import JobSource  # noqa: E402

FIXED_NOW = datetime(2026, 3, 10, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def rules_config():
    return RulesConfig(
        block_terms=["security clearance", "us citizens only"],
        remote_indicators=["remote", "work from anywhere"],
        contract_indicators=["b2b", "contract"],
        domain_terms=["java", "kotlin"],
        primary_domain_term="java",
        target_technologies=["spring boot"],
    )


@pytest.fixture
def scoring_config():
    return ScoringConfig()


@pytest.fixture
def patterns():
    return PatternCache()


@pytest.fixture
def store(tmp_path):
    return DeduplicationStore(db_path=tmp_path / "jobs.db", retention_days=30, clock=lambda: FIXED_NOW)


def make_listing(n=0, **overrides) -> JobListing:
    fields = dict(
        title="Senior Java Developer",
        url=f"https://jobs.example.com/{n}",
        company="Acme",
        location="Remote",
        description="Spring Boot microservices. Remote, B2B contract.",
        source="Greenhouse",
    )
    fields.update(overrides)
    return JobListing(**fields)


@pytest.fixture
def listing_factory():
    return make_listing


def http_status_error(status: int, url: str = "https://api.example.com/jobs") -> httpx.HTTPStatusError:
    request = httpx.Request("GET", url)
    response = httpx.Response(status, request=request)
    return httpx.HTTPStatusError(f"HTTP {status}", request=request, response=response)


class ScriptedSource(JobSource):
    """
    A source whose per-company responses are scripted. Each company maps to a
    list of outcomes consumed one per call: a list of listings or an exception.
    """

    name = "Scripted"
    key = "scripted"
    default_dispatch_delay = 0.0

    def __init__(self, script: dict, concurrency: int = 3, name: str = "Scripted"):
        super().__init__(toolkit=None, settings=SourceSettings(companies=list(script), concurrency=concurrency))
        self.name = name
        self.script = {company: list(outcomes) for company, outcomes in script.items()}
        self.calls: dict[str, int] = {}

    def request_company(self, company):
        self.calls[company] = self.calls.get(company, 0) + 1
        outcomes = self.script[company]
        outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
        if isinstance(outcome, Exception):
            raise outcome
        return outcome
