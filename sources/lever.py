"""
lever.py — Lever postings API (public, JSON array per company).
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://api.lever.co/v0/postings/{company}?mode=json"


class LeverSource(JobSource):
    name = "Lever"
    key = "lever"
    default_concurrency = 10

    def request_company(self, company: str) -> list[JobListing]:
        data = self.get_json(API_URL.format(company=company))
        return [self._to_listing(job, company) for job in as_list(data)]

    def _to_listing(self, job: dict, company: str) -> JobListing:
        return self.listing(
            title=dig(job, "text"),
            url=dig(job, "hostedUrl"),
            company=self.toolkit.format_company_name(company),
            location=dig(job, "categories", "location"),
            description=dig(job, "descriptionPlain"),
        )
