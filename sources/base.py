"""
base.py — Common contract for ATS sources and the shared toolkit they use.

A source knows its upstream URL and JSON shape. Everything else (HTTP client,
timing, HTML stripping, company-name formatting) lives on the SourceToolkit,
which is injected so one client and one metrics sink serve every source.
"""

import time
from abc import ABC, abstractmethod
from datetime import datetime
from typing import Optional

import httpx
from bs4 import BeautifulSoup

from config import SourceSettings
from metrics import NoOpMetrics, ScannerMetrics
from models import JobListing, utcnow
from monitoring import get_logger

logger = get_logger("sources.base")

REQUEST_TIMEOUT = 30.0

DEFAULT_HEADERS = {
    "User-Agent": (
        "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 "
        "(KHTML, like Gecko) Chrome/121.0.0.0 Safari/537.36"
    ),
    "Accept": "application/json, text/plain, */*",
    "Accept-Language": "en-US,en;q=0.9",
}


def dig(data, *keys, default=""):
    """
    Walk nested dicts/lists, returning `default` on any missing or null step.
    dig(job, "location", "name") -> job["location"]["name"] or "".
    """
    current = data
    for key in keys:
        if current is None:
            return default
        if isinstance(key, int):
            if not isinstance(current, list) or not -len(current) <= key < len(current):
                return default
            current = current[key]
        elif isinstance(current, dict):
            current = current.get(key)
        else:
            return default
    return default if current is None else current


def as_list(value) -> list:
    return value if isinstance(value, list) else []


def _text(value) -> str:
    if value is None or isinstance(value, (dict, list)):
        return ""
    return str(value).strip()


class SourceToolkit:
    """Shared HTTP and normalization helpers. Thread-safe: httpx.Client may be shared."""

    def __init__(
        self,
        metrics: Optional[ScannerMetrics] = None,
        client: Optional[httpx.Client] = None,
        timeout: float = REQUEST_TIMEOUT,
    ):
        self.metrics = metrics or NoOpMetrics()
        self.client = client or httpx.Client(timeout=timeout, headers=DEFAULT_HEADERS, follow_redirects=True)

    def close(self):
        self.client.close()

    def __enter__(self):
        return self

    def __exit__(self, *args):
        self.close()

    # --- HTTP ---

    def timed_get(self, source: str, url: str, headers: Optional[dict] = None):
        return self._timed(source, "GET", url, headers=headers)

    def timed_post(self, source: str, url: str, payload: dict, headers: Optional[dict] = None):
        return self._timed(source, "POST", url, json=payload, headers=headers)

    def _timed(self, source: str, method: str, url: str, **kwargs):
        """Issue one request and return the decoded JSON body. HTTP errors raise."""
        self.metrics.record_api_call(source)
        start = time.monotonic()
        try:
            response = self.client.request(method, url, **kwargs)
            if response.is_error:
                self.metrics.record_api_error(source)
            response.raise_for_status()
            return response.json()
        finally:
            self.metrics.record_fetch_latency(source, time.monotonic() - start)

    # --- Normalization ---

    @staticmethod
    def strip_html(html: Optional[str]) -> str:
        """Reduce an HTML fragment to its visible text on a single line."""
        if not html or not html.strip():
            return ""
        text = BeautifulSoup(html, "html.parser").get_text(" ")
        return " ".join(text.split())

    @staticmethod
    def format_company_name(slug: Optional[str]) -> str:
        """'nubank-brazil' -> 'Nubank brazil'. Only the first letter is capitalized."""
        if not slug or not slug.strip():
            return ""
        spaced = slug.strip().replace("-", " ").replace("_", " ")
        return spaced[:1].upper() + spaced[1:]

    @staticmethod
    def new_listing(source: str, title, url, company, location="", description="",
                    discovered_at: Optional[datetime] = None) -> JobListing:
        return JobListing(
            title=_text(title),
            url=_text(url),
            company=_text(company),
            location=_text(location),
            description=_text(description),
            source=source,
            discovered_at=discovered_at or utcnow(),
        )


class JobSource(ABC):
    """
    One upstream ATS. Subclasses set `name`/`key` and implement request_company().

    request_company() may raise on HTTP or transport errors so the orchestrator
    can classify and retry them; fetch_company() is the never-raising variant.
    """

    name: str = ""
    key: str = ""
    default_concurrency: int = 3
    default_dispatch_delay: float = 0.3

    def __init__(self, toolkit: SourceToolkit, settings: Optional[SourceSettings] = None):
        self.toolkit = toolkit
        self.settings = settings or SourceSettings()

    def companies(self) -> list[str]:
        return list(self.settings.companies)

    @property
    def concurrency(self) -> int:
        value = self.settings.concurrency
        return value if value and value > 0 else self.default_concurrency

    @property
    def dispatch_delay(self) -> float:
        value = self.settings.dispatch_delay
        return value if value is not None and value >= 0 else self.default_dispatch_delay

    @abstractmethod
    def request_company(self, company: str) -> list[JobListing]:
        pass

    def fetch_company(self, company: str) -> list[JobListing]:
        try:
            return self.request_company(company)
        except Exception as e:
            logger.warning(f"{self.name} - {company} failed: {e}")
            return []

    # Shorthands over the toolkit

    def get_json(self, url: str, headers: Optional[dict] = None):
        return self.toolkit.timed_get(self.name, url, headers=headers)

    def post_json(self, url: str, payload: dict, headers: Optional[dict] = None):
        return self.toolkit.timed_post(self.name, url, payload, headers=headers)

    def listing(self, **fields) -> JobListing:
        return self.toolkit.new_listing(self.name, **fields)

    def __repr__(self):
        return f"<{self.__class__.__name__} {self.name} ({len(self.settings.companies)} companies)>"
