# course_catalog.py
from __future__ import annotations

import logging
import re
from typing import Any, Iterable

import requests

from skillgap.errors import MalformedUpstreamResponseError, UpstreamTimeoutError, UpstreamUnavailableError
from skillgap.schemas.affiliate import CourseCandidate


logger = logging.getLogger(__name__)

COURSERA_API = "https://api.coursera.org/api/courses.v1"
UDEMY_API = "https://www.udemy.com/api-2.0/courses/"
PAGE_SIZE = 10

_LEADING_NUMBER = re.compile(r"\d+(?:\.\d+)?")


def parse_number(value: Any, default: float) -> float:
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return float(value)
    if isinstance(value, str):
        match = _LEADING_NUMBER.search(value.replace(",", ""))
        if match:
            return float(match.group())
    return default


def parse_price(value: Any, default: float) -> float:
    if isinstance(value, str) and value.strip().lower() == "free":
        return 0.0
    return parse_number(value, default) if value not in (None, "") else default


def map_level(value: Any) -> str:
    lowered = str(value or "").lower()
    if "advanced" in lowered or "expert" in lowered:
        return "Advanced"
    if "intermediate" in lowered:
        return "Intermediate"
    return "Beginner"


def map_coursera(item: dict) -> CourseCandidate:
    difficulty = item.get("productDifficultyLevel")
    return CourseCandidate(
        title=item.get("name") or "Untitled Course",
        provider="Coursera",
        url=f"https://www.coursera.org/learn/{item.get('slug', '')}",
        price=0.0 if difficulty == "Free" else parse_price(item.get("price"), 49.0),
        rating=min(parse_number(item.get("averageProductRating"), 4.0), 5.0),
        review_count=int(parse_number(item.get("numProductRatings"), 0)),
        estimated_hours=parse_number(item.get("workload"), 20.0),
        level=map_level(difficulty),
        topics=[str(topic) for topic in item.get("domainTypes") or [] if topic],
    )


def map_udemy(item: dict) -> CourseCandidate:
    return CourseCandidate(
        title=item.get("title") or "Untitled Course",
        provider="Udemy",
        url=f"https://www.udemy.com{item.get('url', '')}",
        price=parse_price(item.get("price"), 19.99),
        rating=min(parse_number(item.get("rating"), 4.0), 5.0),
        review_count=int(parse_number(item.get("num_reviews"), 0)),
        estimated_hours=parse_number(item.get("content_info_short"), 10.0),
        level=map_level(item.get("instructional_level")),
        topics=[
            instructor.get("display_name")
            for instructor in item.get("visible_instructors") or []
            if isinstance(instructor, dict) and instructor.get("display_name")
        ],
    )


class CourseCatalogClient:
    """Read-only search over the Coursera and Udemy partner APIs.

    Providers without credentials are skipped. Transport failures raise the
    domain upstream errors so callers can decide whether to retry.
    """

    def __init__(
        self,
        coursera_api_key: str | None = None,
        udemy_client_id: str | None = None,
        udemy_client_secret: str | None = None,
        timeout: float = 10.0,
        session: requests.Session | None = None,
    ) -> None:
        self.coursera_api_key = coursera_api_key
        self.udemy_client_id = udemy_client_id
        self.udemy_client_secret = udemy_client_secret
        self.timeout = timeout
        self.session = session or requests.Session()

    def search(self, skill_name: str, providers: Iterable[str] = ("Coursera", "Udemy")) -> list[CourseCandidate]:
        wanted = {provider.lower() for provider in providers}
        courses: list[CourseCandidate] = []
        if "coursera" in wanted:
            courses.extend(self.search_coursera(skill_name))
        if "udemy" in wanted:
            courses.extend(self.search_udemy(skill_name))
        return courses

    def search_coursera(self, skill_name: str) -> list[CourseCandidate]:
        if not self.coursera_api_key:
            logger.info("Coursera API key not configured")
            return []
        data = self._get(
            COURSERA_API,
            params={"q": "search", "query": skill_name, "limit": PAGE_SIZE},
            headers={"Authorization": f"Bearer {self.coursera_api_key}"},
        )
        return [map_coursera(item) for item in data.get("elements") or [] if isinstance(item, dict)]

    def search_udemy(self, skill_name: str) -> list[CourseCandidate]:
        if not (self.udemy_client_id and self.udemy_client_secret):
            logger.info("Udemy API credentials not configured")
            return []
        data = self._get(
            UDEMY_API,
            params={"search": skill_name, "page_size": PAGE_SIZE, "ordering": "relevance"},
            auth=(self.udemy_client_id, self.udemy_client_secret),
        )
        return [map_udemy(item) for item in data.get("results") or [] if isinstance(item, dict)]

    def _get(self, url: str, **kwargs: Any) -> dict:
        try:
            response = self.session.get(url, timeout=self.timeout, **kwargs)
        except requests.Timeout as exc:
            raise UpstreamTimeoutError(f"Course catalog request timed out: {url}") from exc
        except requests.RequestException as exc:
            raise UpstreamUnavailableError(f"Course catalog request failed: {exc}") from exc
        if response.status_code != 200:
            raise UpstreamUnavailableError(f"Course catalog returned {response.status_code}", response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedUpstreamResponseError("Course catalog returned invalid JSON") from exc
        return payload if isinstance(payload, dict) else {}
