"""
models.py — Data models for the Job Scanner application.
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class JobListing:
    """A job posting normalized from one ATS. The URL is its identity."""
    title: str
    url: str
    company: str
    location: str = ""
    description: str = ""
    source: str = ""
    discovered_at: datetime = field(default_factory=utcnow)
    is_remote: bool = False
    is_contract: bool = False
    score: int = 0
    score_breakdown: dict[str, int] = field(default_factory=dict)
    ai_analysis: Optional[str] = None


@dataclass(frozen=True)
class EligibilityResult:
    """Outcome of the eligibility gate for one listing."""
    eligible: bool
    block_reason: Optional[str] = None
    is_remote: bool = False
    is_contract: bool = False
    is_domain_relevant: bool = False

    @classmethod
    def blocked(cls, reason: str) -> "EligibilityResult":
        return cls(eligible=False, block_reason=reason)

    @classmethod
    def passed(cls, is_remote: bool, is_contract: bool) -> "EligibilityResult":
        return cls(eligible=True, is_remote=is_remote, is_contract=is_contract, is_domain_relevant=True)


@dataclass(frozen=True)
class ScoringResult:
    score: int
    should_apply: bool
    breakdown: dict[str, int] = field(default_factory=dict)


@dataclass
class SentJob:
    """A listing that was delivered in a digest. Persisted for deduplication."""
    url: str
    title: str
    company: str
    source: str
    score: int
    location: str
    sent_at: datetime

    @classmethod
    def from_listing(cls, listing: JobListing, sent_at: datetime) -> "SentJob":
        return cls(
            url=listing.url,
            title=listing.title or "",
            company=listing.company or "",
            source=listing.source or "",
            score=listing.score,
            location=listing.location or "",
            sent_at=sent_at,
        )


@dataclass
class RunStats:
    """Counts for a single pipeline run."""
    run_date: str = field(default_factory=lambda: utcnow().isoformat())
    listings_found: int = 0
    listings_new: int = 0
    listings_blocked: int = 0
    listings_low_score: int = 0
    listings_qualified: int = 0
    listings_discarded_by_ai: int = 0
    listings_sent: int = 0
    dry_run: bool = False
    errors: list[str] = field(default_factory=list)
    duration_seconds: float = 0.0
