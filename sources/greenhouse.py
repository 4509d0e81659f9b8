"""
greenhouse.py — Greenhouse job board API.
One GET per board returns every open job with its HTML content.
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://boards-api.greenhouse.io/v1/boards/{company}/jobs?content=true"


class GreenhouseSource(JobSource):
    name = "Greenhouse"
    key = "greenhouse"
    default_concurrency = 10

    def api_url(self, company: str) -> str:
        return API_URL.format(company=company)

    def request_company(self, company: str) -> list[JobListing]:
        data = self.get_json(self.api_url(company))
        return [self._to_listing(job, company) for job in as_list(dig(data, "jobs", default=None))]

    def _to_listing(self, job: dict, company: str) -> JobListing:
        return self.listing(
            title=dig(job, "title"),
            url=dig(job, "absolute_url"),
            company=self.toolkit.format_company_name(company),
            location=dig(job, "location", "name"),
            description=self.toolkit.strip_html(dig(job, "content")),
        )
