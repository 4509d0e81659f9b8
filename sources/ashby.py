"""
ashby.py — Ashby hosted job boards via their public GraphQL endpoint.
Listings have no URL in the payload; it is built from the board name and job id.
"""

from models import JobListing
from sources.base import JobSource, as_list, dig

API_URL = "https://jobs.ashbyhq.com/api/non-user-graphql?op=ApiJobBoardWithTeams"
JOB_URL = "https://jobs.ashbyhq.com/{company}/{job_id}"

GRAPHQL_QUERY = """
query ApiJobBoardWithTeams($organizationHostedJobsPageName: String!) {
    jobBoard: jobBoardWithTeams(organizationHostedJobsPageName: $organizationHostedJobsPageName) {
        jobPostings { id title locationName descriptionPlain }
    }
}
"""


class AshbySource(JobSource):
    name = "Ashby"
    key = "ashby"
    default_concurrency = 5

    def request_company(self, company: str) -> list[JobListing]:
        payload = {
            "operationName": "ApiJobBoardWithTeams",
            "variables": {"organizationHostedJobsPageName": company},
            "query": GRAPHQL_QUERY,
        }
        data = self.post_json(API_URL, payload)
        postings = dig(data, "data", "jobBoard", "jobPostings", default=None)
        return [self._to_listing(job, company) for job in as_list(postings)]

    def _to_listing(self, job: dict, company: str) -> JobListing:
        job_id = dig(job, "id")
        return self.listing(
            title=dig(job, "title"),
            url=JOB_URL.format(company=company, job_id=job_id) if job_id else "",
            company=self.toolkit.format_company_name(company),
            location=dig(job, "locationName"),
            description=dig(job, "descriptionPlain"),
        )
