"""
comeet.py — Comeet careers API.
Company identifiers are configured as "uid:token"; anything else is skipped.
"""

from models import JobListing
from monitoring import get_logger
from sources.base import JobSource, as_list, dig

logger = get_logger("sources.comeet")

API_URL = "https://www.comeet.co/careers-api/2.0/company/{uid}/positions?token={token}"


def parse_company(identifier: str):
    """'uid:token' -> (uid, token), or None when malformed."""
    parts = (identifier or "").split(":")
    if len(parts) != 2 or not all(p.strip() for p in parts):
        return None
    return parts[0].strip(), parts[1].strip()


class ComeetSource(JobSource):
    name = "Comeet"
    key = "comeet"
    default_concurrency = 3

    def request_company(self, company: str) -> list[JobListing]:
        parsed = parse_company(company)
        if parsed is None:
            logger.warning(f"Comeet company must be in format 'uid:token', got: {company}")
            return []
        uid, token = parsed
        data = self.get_json(API_URL.format(uid=uid, token=token))
        return [self._to_listing(job, uid) for job in as_list(data)]

    def _to_listing(self, job: dict, uid: str) -> JobListing:
        return self.listing(
            title=dig(job, "name"),
            url=dig(job, "url_comeet"),
            company=dig(job, "company_name") or self.toolkit.format_company_name(uid),
            location=dig(job, "location", "display_name"),
            description=self.toolkit.strip_html(dig(job, "description")),
        )
