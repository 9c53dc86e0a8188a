# affiliate_service.py
from __future__ import annotations

import hashlib
import logging
import re
from datetime import datetime, timezone
from typing import Any, Callable, Sequence
from urllib.parse import urlencode

from sqlalchemy import distinct, func
from sqlalchemy.orm import Session

from skillgap.errors import warning
from skillgap.models.affiliate_event import AffiliateEvent
from skillgap.models.skill_gap_analysis import SkillGapAnalysis
from skillgap.schemas.affiliate import (
    AffiliateMetrics,
    ClickEventRequest,
    ClickEventResponse,
    ConversionEventRequest,
    ConversionEventResponse,
    Course,
    CourseCandidate,
    CourseRecommendation,
    GapReference,
    UserPreferences,
)
from skillgap.schemas.analysis import AnalysisMetadata, UserWarning
from skillgap.services.scoring import round_half_up
from skillgap.utils.retry import is_retryable_error, retry_with_backoff


logger = logging.getLogger(__name__)

FTC_DISCLOSURE = (
    "We may earn a commission from course purchases made through our links, at no additional cost to you."
)

QUICK_WIN_PRIORITY = 70
QUICK_WIN_MAX_HOURS = 20
REVIEW_COUNT_CAP = 10_000

_SORTERS: dict[str, tuple[Callable[[Course], Any], bool]] = {
    "relevance": (lambda course: course.score, True),
    "rating": (lambda course: course.rating, True),
    "price_asc": (lambda course: course.price, False),
    "price_desc": (lambda course: course.price, True),
    "duration_asc": (lambda course: course.estimated_hours, False),
    "duration_desc": (lambda course: course.estimated_hours, True),
}

_SLUG = re.compile(r"[^a-z0-9]+")


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def slugify(value: str) -> str:
    return _SLUG.sub("-", value.lower()).strip("-")


def tracking_id(prefix: str, user_id: str, analysis_id: int, skill_name: str) -> str:
    """Readable campaign id, unique per (user, analysis, skill).

    Slugs lose punctuation ("C++" and "C#" both slug to "c"), so a digest of
    the raw user id and skill name keeps ids distinct.
    """

    digest = hashlib.sha1(f"{user_id}\x1f{skill_name}".encode("utf-8")).hexdigest()[:8]
    return f"{prefix}-{slugify(user_id)}-{analysis_id}-{slugify(skill_name)}-{digest}"


def affiliate_url(course: CourseCandidate, tracking: str, prefix: str, affiliate_ids: dict[str, str]) -> str:
    params: dict[str, str] = {}
    if course.provider == "Udemy":
        params["couponCode"] = affiliate_ids.get("Udemy", prefix)
    params["utm_source"] = prefix
    params["utm_campaign"] = tracking
    if course.provider == "Coursera":
        params["affiliateId"] = affiliate_ids.get("Coursera", prefix)
    separator = "&" if "?" in course.url else "?"
    return f"{course.url}{separator}{urlencode(params)}"


def course_score(course: CourseCandidate, gap_priority: float) -> int:
    rating = course.rating / 5
    reviews = min(course.review_count, REVIEW_COUNT_CAP) / REVIEW_COUNT_CAP
    price = 1.0 if course.price == 0 else 0.5
    priority = gap_priority / 100
    return int(round_half_up((rating * 0.35 + reviews * 0.25 + price * 0.2 + priority * 0.2) * 100))


def is_quick_win(gap_priority: float, estimated_hours: float) -> bool:
    return gap_priority >= QUICK_WIN_PRIORITY and estimated_hours <= QUICK_WIN_MAX_HOURS


def rank_courses(
    candidates: Sequence[CourseCandidate],
    gap: GapReference,
    *,
    user_id: str,
    analysis_id: int,
    prefix: str = "skillgap",
    affiliate_ids: dict[str, str] | None = None,
    sort_by: str = "relevance",
    top_n: int = 3,
    max_price: float | None = None,
) -> list[Course]:
    """Tag, score and order the candidates for one gap, keeping the top ``top_n``."""

    tracking = tracking_id(prefix, user_id, analysis_id, gap.skill_name)
    courses = [
        Course(
            **candidate.model_dump(),
            affiliate_url=affiliate_url(candidate, tracking, prefix, affiliate_ids or {}),
            tracking_id=tracking,
            is_quick_win=is_quick_win(gap.priority_score, candidate.estimated_hours),
            score=course_score(candidate, gap.priority_score),
        )
        for candidate in candidates
        if max_price is None or candidate.price <= max_price
    ]
    # Relevance first so ties under the other keys stay relevance-ordered.
    courses.sort(key=lambda course: course.score, reverse=True)
    key, reverse = _SORTERS.get(sort_by, _SORTERS["relevance"])
    courses.sort(key=key, reverse=reverse)
    return courses[:top_n]


def gaps_for_analysis(analysis: SkillGapAnalysis) -> list[GapReference]:
    return [
        GapReference(skill_name=gap["skill_name"], priority_score=gap.get("priority_score", 0))
        for gap in analysis.all_gaps()
        if gap.get("skill_name")
    ]


def build_recommendations(
    catalog: Any,
    gaps: Sequence[GapReference],
    *,
    user_id: str,
    analysis_id: int,
    preferences: UserPreferences,
    prefix: str = "skillgap",
    affiliate_ids: dict[str, str] | None = None,
    max_attempts: int = 2,
    initial_delay: float = 1.0,
    sleep: Callable[[float], None] | None = None,
) -> tuple[list[CourseRecommendation], list[UserWarning]]:
    """Fetch and rank courses per gap.

    Each catalog search is retried with backoff; a gap whose search still
    fails gets an empty course list and the response carries a warning.
    """

    retry_kwargs: dict[str, Any] = {
        "max_attempts": max_attempts,
        "initial_delay": initial_delay,
        "should_retry": is_retryable_error,
    }
    if sleep is not None:
        retry_kwargs["sleep"] = sleep

    recommendations: list[CourseRecommendation] = []
    failed = False
    for gap in gaps:
        try:
            candidates = retry_with_backoff(lambda: catalog.search(gap.skill_name, preferences.providers), **retry_kwargs)
        except Exception as exc:
            logger.warning("Course search failed for %s: %s", gap.skill_name, exc)
            candidates = []
            failed = True
        courses = rank_courses(
            candidates,
            gap,
            user_id=user_id,
            analysis_id=analysis_id,
            prefix=prefix,
            affiliate_ids=affiliate_ids,
            sort_by=preferences.sort_by,
            top_n=preferences.top_n,
            max_price=preferences.max_price,
        )
        recommendations.append(CourseRecommendation(skill_name=gap.skill_name, skill_priority=gap.priority_score, courses=courses))

    recommendations.sort(key=lambda item: item.skill_priority, reverse=True)
    warnings = [UserWarning(**warning("COURSES_UNAVAILABLE"))] if failed else []
    return recommendations, warnings


def record_impression(db: Session, analysis: SkillGapAnalysis) -> AffiliateEvent:
    event = AffiliateEvent(analysis_id=analysis.id, user_id=analysis.user_id, event_type="impression")
    db.add(event)
    db.commit()
    db.refresh(event)
    return event


def _record_event(db: Session, analysis: SkillGapAnalysis, event_type: str, payload: ClickEventRequest, **extra: Any) -> AffiliateEvent:
    event = AffiliateEvent(
        analysis_id=analysis.id,
        user_id=analysis.user_id,
        event_type=event_type,
        skill_name=payload.skill_name,
        course_provider=payload.course_provider,
        course_url=payload.course_url,
        course_title=payload.course_title,
        tracking_id=payload.tracking_id,
        **extra,
    )
    db.add(event)
    return event


def track_click(db: Session, analysis: SkillGapAnalysis, payload: ClickEventRequest) -> ClickEventResponse:
    now = _utc_now()
    _record_event(db, analysis, "click", payload)
    metadata = AnalysisMetadata(**(analysis.analysis_metadata or {}))
    analysis.patch_metadata(affiliate_click_count=metadata.affiliate_click_count + 1, last_click_at=now.isoformat())
    db.commit()
    db.refresh(analysis)
    logger.info("Affiliate click analysis_id=%s skill=%s provider=%s", analysis.id, payload.skill_name, payload.course_provider)
    return ClickEventResponse(
        analysis_id=analysis.id,
        skill_name=payload.skill_name,
        course_provider=payload.course_provider,
        click_count=analysis.analysis_metadata["affiliate_click_count"],
        tracked_at=now,
    )


def track_conversion(db: Session, analysis: SkillGapAnalysis, payload: ConversionEventRequest) -> ConversionEventResponse:
    now = _utc_now()
    _record_event(db, analysis, "conversion", payload, conversion_type=payload.conversion_type, revenue=payload.revenue)
    metadata = AnalysisMetadata(**(analysis.analysis_metadata or {}))
    analysis.patch_metadata(
        affiliate_conversions=metadata.affiliate_conversions + 1,
        total_revenue=round_half_up(metadata.total_revenue + payload.revenue, 2),
        last_conversion_at=now.isoformat(),
    )
    db.commit()
    db.refresh(analysis)
    logger.info(
        "Affiliate conversion analysis_id=%s type=%s revenue=%.2f", analysis.id, payload.conversion_type, payload.revenue
    )
    return ConversionEventResponse(
        analysis_id=analysis.id,
        conversion_type=payload.conversion_type,
        revenue=payload.revenue,
        conversion_count=analysis.analysis_metadata["affiliate_conversions"],
        total_revenue=analysis.analysis_metadata["total_revenue"],
        tracked_at=now,
        metrics=compute_affiliate_metrics(db),
    )


def affiliate_rates(analyses_shown: int, clicks: int, conversions: int, revenue: float) -> dict[str, float]:
    return {
        "conversion_rate": conversions / clicks if clicks else 0.0,
        "click_through_rate": clicks / analyses_shown if analyses_shown else 0.0,
        "revenue_per_analysis": revenue / analyses_shown if analyses_shown else 0.0,
    }


def compute_affiliate_metrics(db: Session, since: datetime | None = None) -> AffiliateMetrics:
    def scoped(query):
        return query.filter(AffiliateEvent.created_at >= since) if since else query

    shown = scoped(
        db.query(func.count(distinct(AffiliateEvent.analysis_id))).filter(AffiliateEvent.event_type == "impression")
    ).scalar() or 0
    clicks = scoped(db.query(func.count(AffiliateEvent.id)).filter(AffiliateEvent.event_type == "click")).scalar() or 0
    conversions = scoped(
        db.query(func.count(AffiliateEvent.id)).filter(AffiliateEvent.event_type == "conversion")
    ).scalar() or 0
    revenue = scoped(
        db.query(func.coalesce(func.sum(AffiliateEvent.revenue), 0.0)).filter(AffiliateEvent.event_type == "conversion")
    ).scalar() or 0.0
    return AffiliateMetrics(
        analyses_shown=shown,
        total_clicks=clicks,
        total_conversions=conversions,
        total_revenue=round_half_up(float(revenue), 2),
        **affiliate_rates(shown, clicks, conversions, float(revenue)),
    )
