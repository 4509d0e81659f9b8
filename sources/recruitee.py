"""
recruitee.py — Recruitee careers-site offers API (one subdomain per company).
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://{company}.recruitee.com/api/offers"
JOB_URL = "https://{company}.recruitee.com/o/{slug}"


class RecruiteeSource(JobSource):
    name = "Recruitee"
    key = "recruitee"
    default_concurrency = 5

    def request_company(self, company: str) -> list[JobListing]:
        data = self.get_json(API_URL.format(company=company))
        return [self._to_listing(job, company) for job in as_list(dig(data, "offers", default=None))]

    def _to_listing(self, job: dict, company: str) -> JobListing:
        url = dig(job, "careers_url")
        if not url and dig(job, "slug"):
            url = JOB_URL.format(company=company, slug=dig(job, "slug"))
        return self.listing(
            title=dig(job, "title"),
            url=url,
            company=dig(job, "company_name") or self.toolkit.format_company_name(company),
            location=dig(job, "location"),
            description=self.toolkit.strip_html(dig(job, "description")),
        )
