"""
teamtailor.py — Teamtailor JSON:API jobs endpoint.
Locations are not inline: each job references location ids that resolve
against the top-level `included` array.
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://{company}.teamtailor.com/api/v1/jobs"
JOB_URL = "https://{company}.teamtailor.com/jobs/{job_id}"


class TeamtailorSource(JobSource):
    name = "Teamtailor"
    key = "teamtailor"
    default_concurrency = 3

    def request_company(self, company: str) -> list[JobListing]:
        data = self.get_json(API_URL.format(company=company))
        locations = self._location_names(as_list(dig(data, "included", default=None)))
        return [
            self._to_listing(job, company, locations)
            for job in as_list(dig(data, "data", default=None))
        ]

    @staticmethod
    def _location_names(included: list) -> dict[str, str]:
        return {
            str(dig(item, "id")): dig(item, "attributes", "name")
            for item in included
            if dig(item, "type") == "locations" and dig(item, "attributes", "name")
        }

    def _to_listing(self, job: dict, company: str, locations: dict[str, str]) -> JobListing:
        location = ""
        for ref in as_list(dig(job, "relationships", "locations", "data", default=None)):
            location = locations.get(str(dig(ref, "id")), "")
            if location:
                break

        url = dig(job, "attributes", "careersite-job-url")
        if not url and dig(job, "id"):
            url = JOB_URL.format(company=company, job_id=dig(job, "id"))
        return self.listing(
            title=dig(job, "attributes", "title"),
            url=url,
            company=self.toolkit.format_company_name(company),
            location=location,
            description=self.toolkit.strip_html(dig(job, "attributes", "body")),
        )
