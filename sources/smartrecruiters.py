"""
smartrecruiters.py — SmartRecruiters public postings API.
Description is assembled from the job-description and qualifications sections.
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://api.smartrecruiters.com/v1/companies/{company}/postings"
JOB_URL = "https://jobs.smartrecruiters.com/{company}/{job_id}"


class SmartRecruitersSource(JobSource):
    name = "SmartRecruiters"
    key = "smartrecruiters"
    default_concurrency = 5

    def request_company(self, company: str) -> list[JobListing]:
        data = self.get_json(API_URL.format(company=company))
        return [self._to_listing(job, company) for job in as_list(dig(data, "content", default=None))]

    def _to_listing(self, job: dict, company: str) -> JobListing:
        url = dig(job, "ref")
        if not url and dig(job, "id"):
            url = JOB_URL.format(company=company, job_id=dig(job, "id"))
        return self.listing(
            title=dig(job, "name"),
            url=url,
            company=dig(job, "company", "name") or self.toolkit.format_company_name(company),
            location=dig(job, "location", "city") or dig(job, "location", "country"),
            description=self._description(job),
        )

    def _description(self, job: dict) -> str:
        sections = dig(job, "jobAd", "sections", default={})
        parts = [
            self.toolkit.strip_html(dig(sections, "jobDescription", "text")),
            self.toolkit.strip_html(dig(sections, "qualifications", "text")),
        ]
        return " ".join(p for p in parts if p).strip()
