"""
bamboohr.py — BambooHR embedded careers widget.
The endpoint only answers XHR-style requests with a matching Referer, and it
carries no description, so the title doubles as the description.
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://{company}.bamboohr.com/jobs/jobs.php?inline=true"
JOB_URL = "https://{company}.bamboohr.com/jobs/view.php?id={job_id}"


class BambooHRSource(JobSource):
    name = "BambooHR"
    key = "bamboohr"
    default_concurrency = 3

    def request_company(self, company: str) -> list[JobListing]:
        headers = {
            "X-Requested-With": "XMLHttpRequest",
            "Referer": f"https://{company}.bamboohr.com/jobs/",
        }
        data = self.get_json(API_URL.format(company=company), headers=headers)
        return [self._to_listing(job, company) for job in as_list(data)]

    def _to_listing(self, job: dict, company: str) -> JobListing:
        title = dig(job, "jobTitle")
        job_id = dig(job, "id")
        location = dig(job, "location")
        if isinstance(location, dict):
            location = ", ".join(str(v) for v in (location.get("city"), location.get("state")) if v)
        return self.listing(
            title=title,
            url=JOB_URL.format(company=company, job_id=job_id) if job_id else "",
            company=self.toolkit.format_company_name(company),
            location=location,
            description=title,
        )
