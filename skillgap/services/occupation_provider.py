# occupation_provider.py
from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any

import requests
from sqlalchemy.orm import Session

from skillgap.errors import MalformedUpstreamResponseError, SkillGapError, UpstreamTimeoutError, UpstreamUnavailableError
from skillgap.models.occupation_cache import OccupationCacheEntry
from skillgap.schemas.occupation import KnowledgeArea, LaborMarketData, OccupationSkill, OccupationSkills, OccupationSummary
from skillgap.services.scoring import clamp, round_half_up


logger = logging.getLogger(__name__)

SEARCH_LIMIT = 20


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def normalize_importance(value: Any) -> float:
    # O*NET importance is reported on a 1-5 scale.
    try:
        return clamp(round_half_up(float(value) / 5 * 100), 0.0, 100.0)
    except (TypeError, ValueError):
        return 50.0


def normalize_onet_level(value: Any) -> float:
    try:
        return clamp(float(value), 0.0, 7.0)
    except (TypeError, ValueError):
        return 3.5


def map_skill(raw: dict) -> OccupationSkill | None:
    name = (raw.get("element_name") or "").strip()
    if not name:
        return None
    element_id = raw.get("element_id") or ""
    return OccupationSkill(
        skill_name=name,
        skill_code=element_id or None,
        importance=normalize_importance(raw.get("im_value", raw.get("value"))),
        level=normalize_onet_level(raw.get("lv_value", raw.get("scale_value"))),
        category="Basic Skills" if element_id.startswith("2.A") else "Technical Skills",
    )


def map_element(raw: dict) -> KnowledgeArea | None:
    name = (raw.get("element_name") or "").strip()
    if not name:
        return None
    return KnowledgeArea(
        name=name,
        level=normalize_onet_level(raw.get("lv_value", raw.get("scale_value"))),
        importance=normalize_importance(raw.get("im_value", raw.get("value"))),
    )


@dataclass(frozen=True)
class OccupationLookup:
    occupation: OccupationSkills | None
    stale: bool = False


class OnetOccupationProvider:
    """O*NET web services client backed by the ``occupation_cache`` table."""

    def __init__(
        self,
        base_url: str,
        username: str | None,
        password: str | None,
        data_version: str = "29.0",
        cache_ttl_days: int = 30,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        monitor: Any = None,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.username = username
        self.password = password
        self.data_version = data_version
        self.cache_ttl = timedelta(days=cache_ttl_days)
        self.timeout = timeout
        self.session = session or requests.Session()
        self.monitor = monitor

    @property
    def configured(self) -> bool:
        return bool(self.username and self.password)

    def _fetch(self, path: str, params: dict | None = None) -> dict:
        url = f"{self.base_url}/online{path}"
        started = time.perf_counter()
        try:
            response = self.session.get(
                url,
                params=params,
                auth=(self.username, self.password),
                headers={"Accept": "application/json"},
                timeout=self.timeout,
            )
        except requests.Timeout as exc:
            self._record(started, success=False, timed_out=True, error="timeout")
            raise UpstreamTimeoutError(f"O*NET request timed out: {path}") from exc
        except requests.RequestException as exc:
            self._record(started, success=False, error=str(exc))
            raise UpstreamUnavailableError(f"O*NET request failed: {exc}") from exc

        if response.status_code != 200:
            self._record(started, success=False, error=f"status {response.status_code}")
            raise UpstreamUnavailableError(f"O*NET returned {response.status_code} for {path}", response.status_code)
        try:
            payload = response.json()
        except ValueError as exc:
            self._record(started, success=False, error="invalid json")
            raise MalformedUpstreamResponseError(f"O*NET returned invalid JSON for {path}") from exc
        self._record(started, success=True)
        return payload if isinstance(payload, dict) else {}

    def _record(self, started: float, *, success: bool, timed_out: bool = False, error: str | None = None) -> None:
        if self.monitor is not None:
            duration = (time.perf_counter() - started) * 1000
            self.monitor.record("onet_api_request", duration, success=success, timed_out=timed_out, error=error)

    def _track_cache(self, hit: bool) -> None:
        if self.monitor is not None:
            self.monitor.record_cache_access("occupation", hit=hit)

    def search_occupations(self, db: Session, query: str) -> list[OccupationSummary]:
        query = (query or "").strip()
        if not query:
            return []
        cached = (
            db.query(OccupationCacheEntry)
            .filter(OccupationCacheEntry.occupation_title.ilike(f"%{query}%"))
            .order_by(OccupationCacheEntry.occupation_title)
            .limit(SEARCH_LIMIT)
            .all()
        )
        if cached:
            self._track_cache(True)
            return [
                OccupationSummary(
                    code=entry.occupation_code,
                    title=entry.occupation_title,
                    description=f"{len(entry.skills or [])} skills, {len(entry.knowledge_areas or [])} knowledge areas",
                )
                for entry in cached
            ]
        self._track_cache(False)
        if not self.configured:
            logger.warning("O*NET credentials not configured; search for %r returns no results", query)
            return []
        try:
            data = self._fetch("/search", params={"keyword": query})
        except SkillGapError as exc:
            logger.warning("O*NET search failed for %r: %s", query, exc)
            return []
        results: list[OccupationSummary] = []
        for raw in data.get("occupation") or []:
            if isinstance(raw, dict) and raw.get("code") and raw.get("title"):
                results.append(OccupationSummary(code=raw["code"], title=raw["title"], description=raw.get("description") or ""))
        return results[:SEARCH_LIMIT]

    def get_cached_occupation(self, db: Session, code: str, allow_stale: bool = False) -> OccupationSkills | None:
        entry = db.query(OccupationCacheEntry).filter(OccupationCacheEntry.occupation_code == code).first()
        if not entry:
            return None
        if not allow_stale and _as_utc(entry.expires_at) <= _utc_now():
            return None
        return OccupationSkills(
            occupation_code=entry.occupation_code,
            occupation_title=entry.occupation_title,
            skills=entry.skills or [],
            knowledge_areas=entry.knowledge_areas or [],
            abilities=entry.abilities or [],
            labor_market_data=entry.labor_market_data or {},
            cache_version=entry.cache_version,
        )

    def cache_occupation(self, db: Session, data: OccupationSkills) -> OccupationCacheEntry:
        payload = data.model_dump(mode="json")
        entry = db.query(OccupationCacheEntry).filter(OccupationCacheEntry.occupation_code == data.occupation_code).first()
        if not entry:
            entry = OccupationCacheEntry(occupation_code=data.occupation_code)
            db.add(entry)
        entry.occupation_title = data.occupation_title
        entry.skills = payload["skills"]
        entry.knowledge_areas = payload["knowledge_areas"]
        entry.abilities = payload["abilities"]
        entry.labor_market_data = payload["labor_market_data"]
        entry.cache_version = data.cache_version
        entry.expires_at = _utc_now() + self.cache_ttl
        db.commit()
        db.refresh(entry)
        logger.info("Cached occupation %s (expires %s)", data.occupation_code, entry.expires_at)
        return entry

    def fetch_occupation(self, code: str) -> OccupationSkills:
        occupation = self._fetch(f"/occupations/{code}")
        title = occupation.get("title")
        if not title:
            raise MalformedUpstreamResponseError(f"O*NET occupation {code} has no title")
        skills = self._fetch(f"/occupations/{code}/skills").get("skill") or []
        knowledge = self._fetch(f"/occupations/{code}/knowledge").get("knowledge") or []
        abilities = self._fetch(f"/occupations/{code}/abilities").get("ability") or []
        return OccupationSkills(
            occupation_code=code,
            occupation_title=title,
            skills=[item for item in (map_skill(raw) for raw in skills if isinstance(raw, dict)) if item],
            knowledge_areas=[item for item in (map_element(raw) for raw in knowledge if isinstance(raw, dict)) if item],
            abilities=[item for item in (map_element(raw) for raw in abilities if isinstance(raw, dict)) if item],
            labor_market_data=LaborMarketData(),
            cache_version=self.data_version,
        )

    def get_occupation_skills(self, db: Session, code: str) -> OccupationLookup:
        """Fresh cache, then the O*NET API, then an expired cache entry as a last resort."""

        cached = self.get_cached_occupation(db, code)
        self._track_cache(cached is not None)
        if cached is not None:
            return OccupationLookup(cached)

        if not self.configured:
            logger.warning("O*NET credentials not configured; cannot fetch occupation %s", code)
        else:
            try:
                data = self.fetch_occupation(code)
            except SkillGapError as exc:
                logger.warning("O*NET fetch failed for %s: %s", code, exc)
            else:
                self.cache_occupation(db, data)
                return OccupationLookup(data)

        stale = self.get_cached_occupation(db, code, allow_stale=True)
        if stale is not None:
            logger.warning("Serving stale occupation data for %s", code)
            return OccupationLookup(stale, stale=True)
        return OccupationLookup(None)
