import json
from unittest.mock import MagicMock

import httpx
import pytest

from config import AppConfig, SourceSettings
from metrics import ScannerMetrics
from sources import SOURCE_CLASSES, build_sources
from sources.ashby import AshbySource
from sources.bamboohr import BambooHRSource
from sources.base import SourceToolkit, dig
from sources.comeet import ComeetSource, parse_company
from sources.greenhouse import GreenhouseSource
from sources.homerun import HomerunSource
from sources.lever import LeverSource
from sources.recruitee import RecruiteeSource
from sources.smartrecruiters import SmartRecruitersSource
from sources.teamtailor import TeamtailorSource
from sources.workable import WorkableSource


def toolkit_for(routes: dict, requests: list = None, metrics=None) -> SourceToolkit:
    """Toolkit whose client answers from `routes` (url -> JSON body or status code)."""

    def handler(request: httpx.Request) -> httpx.Response:
        if requests is not None:
            requests.append(request)
        body = routes.get(str(request.url))
        if body is None:
            return httpx.Response(404)
        if isinstance(body, int):
            return httpx.Response(body)
        return httpx.Response(200, json=body)

    return SourceToolkit(metrics=metrics, client=httpx.Client(transport=httpx.MockTransport(handler)))


def make_source(cls, routes, company, requests=None, metrics=None):
    return cls(toolkit_for(routes, requests, metrics), SourceSettings(companies=[company]))


# --- Toolkit ---

def test_strip_html():
    assert SourceToolkit.strip_html("<p>Hello <b>World</b></p>") == "Hello World"
    assert SourceToolkit.strip_html("<ul><li>Java</li><li>Kafka</li></ul>") == "Java Kafka"
    assert SourceToolkit.strip_html(None) == ""
    assert SourceToolkit.strip_html("   ") == ""
    assert SourceToolkit.strip_html("Plain Text") == "Plain Text"


def test_format_company_name():
    assert SourceToolkit.format_company_name("google") == "Google"
    assert SourceToolkit.format_company_name("nu-bank") == "Nu bank"
    assert SourceToolkit.format_company_name("a") == "A"
    assert SourceToolkit.format_company_name(None) == ""
    assert SourceToolkit.format_company_name("") == ""


def test_dig_defaults_on_missing_or_null():
    data = {"a": {"b": None, "c": [{"d": "x"}]}}
    assert dig(data, "a", "c", 0, "d") == "x"
    assert dig(data, "a", "b") == ""
    assert dig(data, "a", "missing", "deeper") == ""
    assert dig(data, "a", "c", 5, "d") == ""
    assert dig(None, "a") == ""
    assert dig("text", "a", default=None) is None


def test_timed_requests_record_metrics():
    metrics = MagicMock(spec=ScannerMetrics)
    toolkit = toolkit_for({"https://ok.example.com/": {"jobs": []}}, metrics=metrics)

    assert toolkit.timed_get("Greenhouse", "https://ok.example.com/") == {"jobs": []}
    with pytest.raises(httpx.HTTPStatusError):
        toolkit.timed_get("Greenhouse", "https://missing.example.com/")

    assert metrics.record_api_call.call_count == 2
    assert metrics.record_fetch_latency.call_count == 2
    metrics.record_api_error.assert_called_once_with("Greenhouse")


def test_fetch_company_never_raises():
    source = make_source(GreenhouseSource, {}, "gone")
    assert source.fetch_company("gone") == []
    with pytest.raises(httpx.HTTPStatusError):
        source.request_company("gone")


# --- Adapters ---

def test_greenhouse():
    routes = {
        "https://boards-api.greenhouse.io/v1/boards/acme-corp/jobs?content=true": {
            "jobs": [
                {
                    "title": "Senior Java Engineer",
                    "absolute_url": "https://boards.greenhouse.io/acme/jobs/1",
                    "content": "<p>Spring <b>Boot</b></p>",
                    "location": {"name": "Remote - Brazil"},
                },
                {"title": "Designer", "absolute_url": "https://boards.greenhouse.io/acme/jobs/2",
                 "content": None, "location": None},
            ]
        }
    }
    listings = make_source(GreenhouseSource, routes, "acme-corp").request_company("acme-corp")

    assert [l.title for l in listings] == ["Senior Java Engineer", "Designer"]
    first, second = listings
    assert first.company == "Acme corp"
    assert first.location == "Remote - Brazil"
    assert first.description == "Spring Boot"
    assert first.source == "Greenhouse"
    assert first.discovered_at is not None
    assert second.location == "" and second.description == ""


def test_greenhouse_without_jobs_key():
    routes = {"https://boards-api.greenhouse.io/v1/boards/acme/jobs?content=true": {"meta": {}}}
    assert make_source(GreenhouseSource, routes, "acme").request_company("acme") == []


def test_lever():
    routes = {
        "https://api.lever.co/v0/postings/acme?mode=json": [
            {"text": "Backend Engineer", "hostedUrl": "https://jobs.lever.co/acme/1",
             "descriptionPlain": "Java and Kafka", "categories": {"location": "LATAM"}},
            {"text": "No categories", "hostedUrl": "https://jobs.lever.co/acme/2"},
        ]
    }
    first, second = make_source(LeverSource, routes, "acme").request_company("acme")
    assert first.url == "https://jobs.lever.co/acme/1"
    assert first.location == "LATAM"
    assert first.description == "Java and Kafka"
    assert second.location == "" and second.description == ""


def test_ashby_posts_graphql_and_builds_urls():
    requests = []
    routes = {
        "https://jobs.ashbyhq.com/api/non-user-graphql?op=ApiJobBoardWithTeams": {
            "data": {"jobBoard": {"jobPostings": [
                {"id": "abc-123", "title": "Java Engineer", "locationName": None, "descriptionPlain": "Quarkus"},
            ]}}
        }
    }
    listings = make_source(AshbySource, routes, "acme", requests).request_company("acme")

    assert requests[0].method == "POST"
    payload = json.loads(requests[0].content)
    assert payload["variables"] == {"organizationHostedJobsPageName": "acme"}
    assert listings[0].url == "https://jobs.ashbyhq.com/acme/abc-123"
    assert listings[0].location == ""


def test_ashby_null_job_board():
    routes = {"https://jobs.ashbyhq.com/api/non-user-graphql?op=ApiJobBoardWithTeams": {"data": {"jobBoard": None}}}
    assert make_source(AshbySource, routes, "acme").request_company("acme") == []


def test_workable():
    routes = {
        "https://apply.workable.com/api/v3/accounts/acme/jobs": {
            "results": [
                {"shortcode": "ABC123", "title": "Java Dev", "description": "<p>B2B</p>",
                 "location": {"city": "Curitiba", "country": "Brazil"}},
            ]
        }
    }
    (listing,) = make_source(WorkableSource, routes, "acme").request_company("acme")
    assert listing.url == "https://apply.workable.com/acme/j/ABC123/"
    assert listing.location == "Curitiba, Brazil"
    assert listing.description == "B2B"


def test_smartrecruiters():
    routes = {
        "https://api.smartrecruiters.com/v1/companies/acme/postings": {
            "content": [
                {
                    "id": "99", "name": "Java Developer", "ref": None,
                    "company": {"name": "Acme Inc"},
                    "location": {"city": None, "country": "br"},
                    "jobAd": {"sections": {
                        "jobDescription": {"text": "<p>Build services</p>"},
                        "qualifications": {"text": "<p>Java 17</p>"},
                    }},
                }
            ]
        }
    }
    (listing,) = make_source(SmartRecruitersSource, routes, "acme").request_company("acme")
    assert listing.url == "https://jobs.smartrecruiters.com/acme/99"
    assert listing.company == "Acme Inc"
    assert listing.location == "br"
    assert listing.description == "Build services Java 17"


def test_recruitee():
    routes = {
        "https://acme.recruitee.com/api/offers": {
            "offers": [
                {"slug": "java-dev", "title": "Java Dev", "description": "<p>Remote</p>",
                 "location": "Lisbon", "company_name": None, "careers_url": None},
            ]
        }
    }
    (listing,) = make_source(RecruiteeSource, routes, "acme").request_company("acme")
    assert listing.url == "https://acme.recruitee.com/o/java-dev"
    assert listing.company == "Acme"
    assert listing.description == "Remote"


def test_teamtailor_resolves_included_locations():
    routes = {
        "https://acme.teamtailor.com/api/v1/jobs": {
            "data": [
                {
                    "id": "7", "type": "jobs",
                    "attributes": {"title": "Kotlin Engineer", "body": "<div>JVM</div>",
                                   "careersite-job-url": "https://acme.teamtailor.com/jobs/7-kotlin"},
                    "relationships": {"locations": {"data": [{"id": "42", "type": "locations"}]}},
                },
                {"id": "8", "type": "jobs", "attributes": {"title": "No location"}},
            ],
            "included": [
                {"id": "41", "type": "locations", "attributes": {"name": "Stockholm"}},
                {"id": "42", "type": "locations", "attributes": {"name": "São Paulo"}},
            ],
        }
    }
    first, second = make_source(TeamtailorSource, routes, "acme").request_company("acme")
    assert first.location == "São Paulo"
    assert first.url == "https://acme.teamtailor.com/jobs/7-kotlin"
    assert first.description == "JVM"
    assert second.location == ""
    assert second.url == "https://acme.teamtailor.com/jobs/8"


def test_bamboohr_sends_xhr_headers_and_uses_title_as_description():
    requests = []
    routes = {
        "https://acme.bamboohr.com/jobs/jobs.php?inline=true": [
            {"id": "15", "jobTitle": "Senior Java Developer", "location": "Remote"},
        ]
    }
    (listing,) = make_source(BambooHRSource, routes, "acme", requests).request_company("acme")

    assert requests[0].headers["X-Requested-With"] == "XMLHttpRequest"
    assert requests[0].headers["Referer"] == "https://acme.bamboohr.com/jobs/"
    assert listing.url == "https://acme.bamboohr.com/jobs/view.php?id=15"
    assert listing.description == "Senior Java Developer"


def test_comeet():
    routes = {
        "https://www.comeet.co/careers-api/2.0/company/AB.123/positions?token=tok": [
            {"name": "Java Dev", "url_comeet": "https://www.comeet.com/jobs/acme/AB.123/java-dev",
             "description": "<p>Spring</p>", "location": {"display_name": "Tel Aviv"}},
        ]
    }
    (listing,) = make_source(ComeetSource, routes, "AB.123:tok").request_company("AB.123:tok")
    assert listing.location == "Tel Aviv"
    assert listing.description == "Spring"


def test_comeet_malformed_identifier_skips_request():
    requests = []
    source = make_source(ComeetSource, {}, "no-token", requests)
    assert source.request_company("no-token") == []
    assert requests == []
    assert parse_company("a:b:c") is None
    assert parse_company("uid:token") == ("uid", "token")


def test_homerun():
    routes = {
        "https://acme.homerun.co/jobs.json": {
            "jobs": [{"title": "Java Dev", "url": "https://acme.homerun.co/java-dev",
                      "description": "<p>Kafka</p>", "location": None}]
        }
    }
    (listing,) = make_source(HomerunSource, routes, "acme").request_company("acme")
    assert listing.location == ""
    assert listing.description == "Kafka"


# --- Registry ---

def test_registry_covers_every_source_key():
    assert set(SOURCE_CLASSES) == {
        "greenhouse", "lever", "ashby", "workable", "smartrecruiters",
        "recruitee", "teamtailor", "bamboohr", "comeet", "homerun",
    }


def test_build_sources_skips_empty_and_unknown():
    config = AppConfig(sources={
        "greenhouse": SourceSettings(companies=["acme"], concurrency=12),
        "lever": SourceSettings(companies=[]),
        "myspace": SourceSettings(companies=["x"]),
    })
    sources = build_sources(config, toolkit_for({}))

    assert [s.name for s in sources] == ["Greenhouse"]
    assert sources[0].concurrency == 12
    assert sources[0].companies() == ["acme"]
