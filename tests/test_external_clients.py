from __future__ import annotations

import asyncio
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest
import requests

from skillgap.errors import MalformedUpstreamResponseError, UpstreamUnavailableError
from skillgap.models import OccupationCacheEntry
from skillgap.schemas.analysis import ResumeSkill
from skillgap.schemas.occupation import OccupationSkill
from skillgap.services.course_catalog import CourseCatalogClient, map_coursera, map_udemy, parse_price
from skillgap.services.llm_client import OpenAITransferClient, build_transfer_prompt
from skillgap.services.occupation_provider import OnetOccupationProvider, map_skill, normalize_importance
from skillgap.services.performance_monitor import PerformanceMonitor


class FakeResponse:
    def __init__(self, status_code: int = 200, payload=None, invalid_json: bool = False) -> None:
        self.status_code = status_code
        self._payload = payload
        self._invalid_json = invalid_json

    def json(self):
        if self._invalid_json:
            raise ValueError("not json")
        return self._payload


class FakeSession:
    """Routes GET calls by URL suffix; unknown URLs raise a connection error."""

    def __init__(self, routes: dict[str, FakeResponse] | None = None, error: Exception | None = None) -> None:
        self.routes = routes or {}
        self.error = error
        self.calls: list[str] = []

    def get(self, url: str, **kwargs) -> FakeResponse:
        self.calls.append(url)
        if self.error is not None:
            raise self.error
        for suffix, response in self.routes.items():
            if url.endswith(suffix):
                return response
        raise requests.ConnectionError(f"no route for {url}")


ONET_ROUTES = {
    "/online/occupations/15-1252.00": FakeResponse(payload={"code": "15-1252.00", "title": "Software Developers"}),
    "/online/occupations/15-1252.00/skills": FakeResponse(
        payload={
            "skill": [
                {"element_id": "2.A.2.a", "element_name": "Critical Thinking", "im_value": 4, "lv_value": 4.5},
                {"element_id": "2.B.3.e", "element_name": "Programming", "im_value": 4.5, "lv_value": 5.2},
                {"element_id": "2.B.9.z", "element_name": ""},
            ]
        }
    ),
    "/online/occupations/15-1252.00/knowledge": FakeResponse(
        payload={"knowledge": [{"element_name": "Computers and Electronics", "im_value": 5, "lv_value": 6}]}
    ),
    "/online/occupations/15-1252.00/abilities": FakeResponse(payload={"ability": []}),
}


def _provider(session: FakeSession, **kwargs) -> OnetOccupationProvider:
    return OnetOccupationProvider("https://onet.test/ws/", "user", "secret", session=session, **kwargs)


def test_onet_value_mapping() -> None:
    assert normalize_importance(4) == 80
    assert normalize_importance("bad") == 50
    skill = map_skill({"element_id": "2.B.3.e", "element_name": " Programming ", "im_value": 4.5, "lv_value": 9})
    assert skill.skill_name == "Programming"
    assert skill.importance == 90
    assert skill.level == 7
    assert skill.category == "Technical Skills"
    assert map_skill({"element_name": ""}) is None


def test_fetch_then_serve_from_cache(db_session) -> None:
    session = FakeSession(ONET_ROUTES)
    monitor = PerformanceMonitor()
    provider = _provider(session, monitor=monitor)

    first = provider.get_occupation_skills(db_session, "15-1252.00")
    assert first.stale is False
    assert first.occupation.occupation_title == "Software Developers"
    assert [skill.skill_name for skill in first.occupation.skills] == ["Critical Thinking", "Programming"]
    assert first.occupation.skills[0].category == "Basic Skills"
    assert first.occupation.knowledge_areas[0].importance == 100
    assert len(session.calls) == 4

    second = provider.get_occupation_skills(db_session, "15-1252.00")
    assert second.occupation.skills == first.occupation.skills
    assert len(session.calls) == 4
    assert monitor.cache_metrics("occupation") == {"hits": 1, "misses": 1, "hit_rate": 0.5}


def test_expired_cache_is_served_stale_when_upstream_fails(db_session) -> None:
    provider = _provider(FakeSession(ONET_ROUTES))
    provider.get_occupation_skills(db_session, "15-1252.00")
    entry = db_session.query(OccupationCacheEntry).one()
    entry.expires_at = datetime.now(timezone.utc) - timedelta(days=1)
    db_session.commit()

    broken = _provider(FakeSession(error=requests.ConnectionError("down")))
    lookup = broken.get_occupation_skills(db_session, "15-1252.00")
    assert lookup.stale is True
    assert lookup.occupation.occupation_code == "15-1252.00"

    assert broken.get_occupation_skills(db_session, "99-9999.00").occupation is None


def test_unconfigured_provider_never_calls_upstream(db_session) -> None:
    session = FakeSession(ONET_ROUTES)
    provider = OnetOccupationProvider("https://onet.test/ws", None, None, session=session)
    assert provider.get_occupation_skills(db_session, "15-1252.00").occupation is None
    assert provider.search_occupations(db_session, "software") == []
    assert session.calls == []


def test_search_prefers_cached_titles(db_session) -> None:
    session = FakeSession(ONET_ROUTES)
    provider = _provider(session)
    provider.get_occupation_skills(db_session, "15-1252.00")
    calls = len(session.calls)

    results = provider.search_occupations(db_session, "software")
    assert [result.code for result in results] == ["15-1252.00"]
    assert len(session.calls) == calls


def test_onet_status_errors_are_domain_errors() -> None:
    provider = _provider(FakeSession({"/online/occupations/1": FakeResponse(status_code=503)}))
    with pytest.raises(UpstreamUnavailableError) as excinfo:
        provider.fetch_occupation("1")
    assert excinfo.value.status_code == 503


def test_course_mappers() -> None:
    coursera = map_coursera(
        {"name": "SQL for Data Science", "slug": "sql-for-data-science", "productDifficultyLevel": "Beginner",
         "averageProductRating": 4.6, "numProductRatings": "12,034", "workload": "14 hours"}
    )
    assert coursera.url == "https://www.coursera.org/learn/sql-for-data-science"
    assert coursera.review_count == 12034
    assert coursera.estimated_hours == 14
    assert coursera.price == 49.0

    udemy = map_udemy(
        {"title": "The Complete SQL Bootcamp", "url": "/course/the-complete-sql-bootcamp/", "price": "Free",
         "rating": 4.7, "num_reviews": 150000, "content_info_short": "9 total hours", "instructional_level": "All Levels"}
    )
    assert udemy.price == 0.0
    assert udemy.estimated_hours == 9
    assert udemy.level == "Beginner"
    assert parse_price(None, 19.99) == 19.99


def test_catalog_skips_unconfigured_providers_and_maps_errors() -> None:
    session = FakeSession(
        {
            "/api-2.0/courses/": FakeResponse(
                payload={"results": [{"title": "Python", "url": "/course/python/", "price": "$19.99", "rating": 4.5}]}
            )
        }
    )
    catalog = CourseCatalogClient(udemy_client_id="id", udemy_client_secret="secret", session=session)
    courses = catalog.search("Python")
    assert [course.provider for course in courses] == ["Udemy"]
    assert courses[0].price == 19.99
    assert len(session.calls) == 1

    failing = CourseCatalogClient(coursera_api_key="key", session=FakeSession({"courses.v1": FakeResponse(status_code=429)}))
    with pytest.raises(UpstreamUnavailableError):
        failing.search("Python", providers=["Coursera"])

    garbled = CourseCatalogClient(coursera_api_key="key", session=FakeSession({"courses.v1": FakeResponse(invalid_json=True)}))
    with pytest.raises(MalformedUpstreamResponseError):
        garbled.search("Python", providers=["Coursera"])


class FakeCompletions:
    def __init__(self, content: str) -> None:
        self.content = content
        self.requests: list[dict] = []

    async def create(self, **kwargs):
        self.requests.append(kwargs)
        message = SimpleNamespace(content=self.content)
        return SimpleNamespace(choices=[SimpleNamespace(message=message)])


def _openai_client(content: str) -> tuple[OpenAITransferClient, FakeCompletions]:
    completions = FakeCompletions(content)
    fake = SimpleNamespace(chat=SimpleNamespace(completions=completions))
    return OpenAITransferClient(api_key="test", model="gpt-test", client=fake), completions


def test_openai_client_parses_json_object() -> None:
    client, completions = _openai_client('{"transferableSkills": [], "transferPatterns": ["x"]}')
    payload = asyncio.run(
        client.analyze_transfers([ResumeSkill(name="SQL")], [OccupationSkill(skill_name="Python")], "Analyst", "Engineer")
    )
    assert payload["transferPatterns"] == ["x"]
    request = completions.requests[0]
    assert request["model"] == "gpt-test"
    assert request["response_format"] == {"type": "json_object"}
    assert "SQL (intermediate)" in request["messages"][1]["content"]


@pytest.mark.parametrize("content", ["", "not json", "[1, 2]"])
def test_openai_client_rejects_unusable_content(content: str) -> None:
    client, _ = _openai_client(content)
    with pytest.raises(MalformedUpstreamResponseError):
        asyncio.run(client.explain_transfer("SQL", "analytics", "engineering"))


def test_transfer_prompt_lists_requirements() -> None:
    prompt = build_transfer_prompt(
        [ResumeSkill(name="Budgeting", level="advanced")],
        [OccupationSkill(skill_name="Financial Planning", importance=80, level=4.5)],
        "Chef",
        "Operations Manager",
    )
    assert "- Budgeting (advanced)" in prompt
    assert "- Financial Planning (importance 80/100, level 4.5/7)" in prompt
