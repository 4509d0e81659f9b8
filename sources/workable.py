"""
workable.py — Workable public accounts API (v3).
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://apply.workable.com/api/v3/accounts/{company}/jobs"
JOB_URL = "https://apply.workable.com/{company}/j/{shortcode}/"


class WorkableSource(JobSource):
    name = "Workable"
    key = "workable"
    default_concurrency = 3

    def request_company(self, company: str) -> list[JobListing]:
        data = self.get_json(API_URL.format(company=company))
        return [self._to_listing(job, company) for job in as_list(dig(data, "results", default=None))]

    def _to_listing(self, job: dict, company: str) -> JobListing:
        shortcode = dig(job, "shortcode")
        location = dig(job, "location", "location_str") or dig(job, "location", "locationStr")
        if not location:
            location = ", ".join(
                part for part in (dig(job, "location", "city"), dig(job, "location", "country")) if part
            )
        return self.listing(
            title=dig(job, "title"),
            url=JOB_URL.format(company=company, shortcode=shortcode) if shortcode else "",
            company=self.toolkit.format_company_name(company),
            location=location,
            description=self.toolkit.strip_html(dig(job, "description")),
        )
