"""
filters.py — Hard pass/fail eligibility gate applied before scoring.
If a listing fails this gate it's excluded entirely.

Order matters:
  1. Block terms (substring). First hit wins, nothing else is evaluated.
  2. Domain relevance: target technology phrase in title/description, OR a
     domain term in the title (word boundary), OR the primary domain term
     in the description (word boundary).
  3. Remote and contract indicators (substring) for relevant listings.
"""

from typing import Optional

from config import RulesConfig
from models import EligibilityResult, JobListing
from monitoring import get_logger
from patterns import DEFAULT_CACHE, PatternCache, contains_phrase

logger = get_logger("filters")

NOT_DOMAIN_RELEVANT = "not domain-relevant"


class EligibilityEngine:
    def __init__(self, rules: RulesConfig, patterns: Optional[PatternCache] = None):
        self.rules = rules
        self.patterns = patterns or DEFAULT_CACHE

    def check_eligibility(self, listing: Optional[JobListing]) -> EligibilityResult:
        if listing is None:
            return EligibilityResult.blocked("null listing")

        title = (listing.title or "").lower()
        description = (listing.description or "").lower()
        combined = f"{title} {description}"

        for term in self.rules.block_terms:
            if contains_phrase(combined, term):
                logger.debug(f"'{listing.title}' blocked by term: {term}")
                return EligibilityResult.blocked(term)

        if not self._is_domain_relevant(title, description):
            logger.debug(f"'{listing.title}' not domain-relevant")
            return EligibilityResult.blocked(NOT_DOMAIN_RELEVANT)

        is_remote = any(contains_phrase(combined, i) for i in self.rules.remote_indicators)
        is_contract = any(contains_phrase(combined, i) for i in self.rules.contract_indicators)

        return EligibilityResult.passed(is_remote=is_remote, is_contract=is_contract)

    def _is_domain_relevant(self, title: str, description: str) -> bool:
        for tech in self.rules.target_technologies:
            if contains_phrase(title, tech) or contains_phrase(description, tech):
                return True

        for term in self.rules.domain_terms:
            if self.patterns.contains_word(title, term):
                return True

        return self.patterns.contains_word(description, self.rules.primary_domain_term)
