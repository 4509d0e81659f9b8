"""
homerun.py — Homerun public jobs feed.
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://{company}.homerun.co/jobs.json"


class HomerunSource(JobSource):
    name = "Homerun"
    key = "homerun"
    default_concurrency = 3

    def request_company(self, company: str) -> list[JobListing]:
        data = self.get_json(API_URL.format(company=company))
        return [self._to_listing(job, company) for job in as_list(dig(data, "jobs", default=None))]

    def _to_listing(self, job: dict, company: str) -> JobListing:
        return self.listing(
            title=dig(job, "title"),
            url=dig(job, "url"),
            company=self.toolkit.format_company_name(company),
            location=dig(job, "location", "city"),
            description=self.toolkit.strip_html(dig(job, "description")),
        )
