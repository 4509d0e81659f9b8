"""
enhancer.py — Optional AI analysis of qualified listings.

One strategy is chosen at startup by build_enhancer():
  - NoOpEnhancer            (default, AI disabled)
  - ClaudeEnhancer          (Anthropic API)
  - OpenAICompatibleEnhancer (Groq, OpenRouter, Gemini chat-completions endpoints)

Listings are analysed in batches. Each analysis is stored on the listing;
a DISCARD verdict replaces it with DISCARD_MARKER so the pipeline drops it.
A failed batch is returned un-enhanced.
"""

import re
import time
from abc import ABC, abstractmethod
from typing import Optional

import anthropic
import httpx

from config import AIConfig, get_ai_api_key
from models import JobListing
from monitoring import get_logger

logger = get_logger("enhancer")

DISCARD_MARKER = "REMOVE_JOB_AI_FILTER"
DISCARD_VERDICTS = ("Verdict: DISCARD", "Verdict: LOW RELEVANCE")

ANALYSIS_MARKER = "###ANALYSIS ID: {}###"
_MARKER_RE = re.compile(r"###ANALYSIS ID:\s*(\d+)\s*###")

BATCH_PROMPT_HEADER = (
    "You are a technical recruiter screening backend job postings for a senior candidate. "
    "Analyse each posting below and answer for every one of them.\n\n"
)

BATCH_PROMPT_FORMAT = """For EACH posting, use EXACTLY this format:
###ANALYSIS ID: [ID]###
Verdict: [EXCELLENT / GOOD / LOW RELEVANCE / DISCARD]
AI Score: [0-100]
Stack: [comma-separated tags]
Match: [two short sentences]
"""

OPENAI_COMPATIBLE_PROVIDERS = {
    "groq": ("https://api.groq.com/openai/v1/chat/completions", "llama-3.3-70b-versatile"),
    "openrouter": ("https://openrouter.ai/api/v1/chat/completions", "meta-llama/llama-3.3-70b-instruct:free"),
    "gemini": (
        "https://generativelanguage.googleapis.com/v1beta/openai/chat/completions",
        "gemini-2.0-flash",
    ),
}

DEFAULT_CLAUDE_MODEL = "claude-haiku-4-5-20251001"


def is_discarded(listing: JobListing) -> bool:
    """True if the AI verdict says this listing should be dropped."""
    analysis = listing.ai_analysis
    if not analysis:
        return False
    return DISCARD_MARKER in analysis or any(v in analysis for v in DISCARD_VERDICTS)


def truncate_description(description: Optional[str], limit: int = 1000) -> str:
    if not description:
        return ""
    return description[:limit] + "..." if len(description) > limit else description


def build_batch_prompt(batch: list[JobListing]) -> str:
    parts = [BATCH_PROMPT_HEADER]
    for i, listing in enumerate(batch):
        parts.append(ANALYSIS_MARKER.format(i) + "\n")
        parts.append(
            f"Posting: {listing.title} @ {listing.company}\n"
            f"Location: {listing.location or 'Not specified'}\n"
            f"Description: {truncate_description(listing.description)}\n\n"
        )
    parts.append(BATCH_PROMPT_FORMAT)
    return "".join(parts)


def apply_batch_response(batch: list[JobListing], content: str):
    """Split a batch response on its ID markers and attach each analysis."""
    matches = list(_MARKER_RE.finditer(content))
    for n, match in enumerate(matches):
        idx = int(match.group(1))
        if idx >= len(batch):
            continue
        end = matches[n + 1].start() if n + 1 < len(matches) else len(content)
        analysis = content[match.end():end].strip()
        if not analysis:
            continue
        batch[idx].ai_analysis = DISCARD_MARKER if "Verdict: DISCARD" in analysis else analysis


class JobEnhancer:
    """Common contract. enhance_all() must never raise."""

    def is_enabled(self) -> bool:
        return False

    def enhance_all(self, listings: list[JobListing]) -> list[JobListing]:
        return listings


class NoOpEnhancer(JobEnhancer):
    pass


class BatchEnhancer(JobEnhancer, ABC):
    """Shared batching loop. Subclasses implement _complete(prompt) -> text."""

    provider = "ai"

    def __init__(self, batch_size: int = 10, max_jobs: int = 0, batch_delay: float = 0.0):
        self.batch_size = max(1, batch_size)
        self.max_jobs = max_jobs
        self.batch_delay = batch_delay

    def is_enabled(self) -> bool:
        return True

    @abstractmethod
    def _complete(self, prompt: str) -> Optional[str]:
        """Send one prompt, return the raw reply text."""

    def enhance_all(self, listings: list[JobListing]) -> list[JobListing]:
        if not listings:
            return listings

        # Listings arrive sorted by score, so the cap keeps the best ones
        to_enhance = listings[:self.max_jobs] if self.max_jobs > 0 else listings
        logger.info(f"Starting {self.provider} enhancement for {len(to_enhance)} of {len(listings)} jobs")

        for start in range(0, len(to_enhance), self.batch_size):
            batch = to_enhance[start:start + self.batch_size]
            if start and self.batch_delay:
                time.sleep(self.batch_delay)
            self._enhance_batch(batch)

        return listings

    def _enhance_batch(self, batch: list[JobListing]):
        logger.info(f"{self.provider} processing batch of {len(batch)} jobs...")
        try:
            content = self._complete(build_batch_prompt(batch))
        except Exception as e:
            logger.error(f"{self.provider} batch failed: {e}")
            return
        if content:
            apply_batch_response(batch, content)


class ClaudeEnhancer(BatchEnhancer):
    provider = "Claude"

    def __init__(self, api_key: str, model: str = "", client=None, **kwargs):
        super().__init__(**kwargs)
        self.model = model or DEFAULT_CLAUDE_MODEL
        self.client = client or anthropic.Anthropic(api_key=api_key)
        logger.info(f"Claude AI enhancement enabled with model: {self.model}")

    def _complete(self, prompt: str) -> Optional[str]:
        try:
            response = self.client.messages.create(
                model=self.model,
                max_tokens=2048,
                messages=[{"role": "user", "content": prompt}],
            )
        except anthropic.APIError as e:
            logger.error(f"Claude API error: {e}")
            return None
        if not response.content:
            return None
        return response.content[0].text.strip()


class OpenAICompatibleEnhancer(BatchEnhancer):
    """Chat-completions client for providers exposing the OpenAI wire format."""

    def __init__(self, provider: str, api_key: str, model: str = "", client: httpx.Client = None, **kwargs):
        super().__init__(**kwargs)
        if provider not in OPENAI_COMPATIBLE_PROVIDERS:
            raise ValueError(f"Unknown AI provider: {provider}")
        self.provider = provider
        self.url, default_model = OPENAI_COMPATIBLE_PROVIDERS[provider]
        self.model = model or default_model
        self.client = client or httpx.Client(timeout=30.0)
        self.headers = {
            "Authorization": f"Bearer {api_key}",
            "Content-Type": "application/json",
        }
        logger.info(f"{provider} AI enhancement enabled with model: {self.model}")

    def _complete(self, prompt: str) -> Optional[str]:
        payload = {
            "model": self.model,
            "messages": [{"role": "user", "content": prompt}],
            "temperature": 0.2,
            "max_tokens": 2048,
        }
        response = self.client.post(self.url, json=payload, headers=self.headers)
        if response.status_code in (429, 500, 503):
            # One retry for rate limits and transient server errors
            time.sleep(2)
            response = self.client.post(self.url, json=payload, headers=self.headers)
        response.raise_for_status()
        choices = response.json().get("choices") or []
        if not choices:
            return None
        return ((choices[0].get("message") or {}).get("content") or "").strip() or None


def build_enhancer(ai: AIConfig) -> JobEnhancer:
    """Select the enhancement strategy once, from configuration."""
    provider = (ai.provider or "none").lower()
    if provider in ("none", "", "disabled"):
        logger.info("AI enhancement disabled - using no-op enhancer")
        return NoOpEnhancer()

    api_key = get_ai_api_key(provider)
    if not api_key:
        logger.warning(f"AI provider '{provider}' has no API key - using no-op enhancer")
        return NoOpEnhancer()

    options = {"batch_size": ai.batch_size, "max_jobs": ai.max_jobs}
    if provider == "claude":
        return ClaudeEnhancer(api_key, ai.model, **options)
    if provider in OPENAI_COMPATIBLE_PROVIDERS:
        # Free tiers rate-limit by requests per minute
        return OpenAICompatibleEnhancer(provider, api_key, ai.model, batch_delay=3.0, **options)

    logger.warning(f"Unknown AI provider '{provider}' - using no-op enhancer")
    return NoOpEnhancer()
