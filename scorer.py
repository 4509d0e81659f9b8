"""
scorer.py — Additive weighted scoring for eligible listings.

Each signal that holds adds its weight to the total and is recorded in the
breakdown under its name. The tech-stack signal is itself a capped sum.
The total is capped at 100; should_apply = total >= threshold.
"""

from typing import Optional

from config import ScoringConfig
from models import EligibilityResult, JobListing, ScoringResult
from monitoring import get_logger
from patterns import DEFAULT_CACHE, PatternCache

logger = get_logger("scorer")

MAX_SCORE = 100
DEFAULT_THRESHOLD = 70

DEFAULT_WEIGHTS = {
    "java_in_title": 20,
    "senior_level": 10,
    "remote_explicit": 15,
    "no_us_only": 20,
    "contract_b2b": 15,
    "latam_brazil_boost": 10,
    "tech_stack_max": 20,
}

DEFAULT_SENIORITY_TERMS = ["senior", "sr", "lead", "staff", "principal", "specialist"]

DEFAULT_REGION_TERMS = [
    "brazil", "brasil", "latam", "latin america", "south america",
    "são paulo", "sao paulo", "rio de janeiro", "curitiba", "belo horizonte",
    "florianopolis", "remoto brasil", "remote brazil",
]

DEFAULT_TECH_STACK_WEIGHTS = {
    "spring boot": 5,
    "spring": 3,
    "microservices": 4,
    "kafka": 4,
    "aws": 3,
    "docker": 2,
    "kubernetes": 3,
    "postgresql": 2,
    "hibernate": 2,
    "rest": 2,
}


class ScoringEngine:
    def __init__(
        self,
        config: ScoringConfig,
        primary_term: str = "java",
        patterns: Optional[PatternCache] = None,
    ):
        self.config = config
        self.primary_term = primary_term
        self.patterns = patterns or DEFAULT_CACHE

        self.seniority_terms = [t.lower() for t in (config.seniority_terms or DEFAULT_SENIORITY_TERMS)]
        self.region_terms = [t.lower() for t in (config.region_terms or DEFAULT_REGION_TERMS)]
        self.tech_stack_weights = config.tech_stack_weights or DEFAULT_TECH_STACK_WEIGHTS

    @property
    def threshold(self) -> int:
        if self.config.threshold and self.config.threshold > 0:
            return self.config.threshold
        return DEFAULT_THRESHOLD

    def weight(self, key: str) -> int:
        return max(0, self.config.weights.get(key, DEFAULT_WEIGHTS[key]))

    def calculate_score(self, listing: Optional[JobListing], eligibility: EligibilityResult) -> ScoringResult:
        if listing is None:
            return ScoringResult(score=0, should_apply=False, breakdown={})

        title = (listing.title or "").lower()
        description = (listing.description or "").lower()
        combined = f"{title} {description}"

        signals = [
            ("java_in_title", self.patterns.contains_word(title, self.primary_term)),
            ("senior_level", self._has_seniority(title)),
            ("remote_explicit", eligibility.is_remote),
            ("no_us_only", eligibility.eligible),
            ("contract_b2b", eligibility.is_contract),
            ("latam_brazil_boost", self._in_target_region(listing)),
        ]

        breakdown: dict[str, int] = {}
        for key, holds in signals:
            if holds:
                breakdown[key] = self.weight(key)

        tech_points = self._tech_stack_points(combined)
        if tech_points > 0:
            breakdown["tech_stack"] = min(tech_points, self.weight("tech_stack_max"))

        total = min(sum(breakdown.values()), MAX_SCORE)
        should_apply = total >= self.threshold

        logger.debug(
            f"'{listing.title}' scored {total} (threshold: {self.threshold}, should apply: {should_apply})"
        )
        return ScoringResult(score=total, should_apply=should_apply, breakdown=breakdown)

    def _has_seniority(self, title: str) -> bool:
        return any(self.patterns.contains_word(title, term) for term in self.seniority_terms)

    def _in_target_region(self, listing: JobListing) -> bool:
        location = (listing.location or "").lower()
        description = (listing.description or "").lower()
        return any(term in location or term in description for term in self.region_terms)

    def _tech_stack_points(self, text: str) -> int:
        return sum(
            points for term, points in self.tech_stack_weights.items()
            if points > 0 and self.patterns.contains_word(text, term)
        )
