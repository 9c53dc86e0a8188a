# recommendations.py
from datetime import datetime, timedelta, timezone

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from skillgap.config import settings
from skillgap.database import get_db
from skillgap.routers.dependencies import get_course_catalog, get_monitor, get_revenue_validator
from skillgap.schemas.affiliate import (
    ClickEventRequest,
    ClickEventResponse,
    ConversionEventRequest,
    ConversionEventResponse,
    CourseRecommendationRequest,
    CourseRecommendationResponse,
    RevenueReport,
)
from skillgap.services import affiliate_service
from skillgap.services.analysis_service import get_analysis
from skillgap.services.course_catalog import CourseCatalogClient
from skillgap.services.performance_monitor import PerformanceMonitor
from skillgap.services.revenue_validation import RevenueValidator


router = APIRouter(tags=["recommendations"])


def _load_analysis(db: Session, analysis_id: int):
    analysis = get_analysis(db, analysis_id)
    if not analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    return analysis


@router.post("/recommendations/courses", response_model=CourseRecommendationResponse)
def recommend_courses(
    payload: CourseRecommendationRequest,
    db: Session = Depends(get_db),
    catalog: CourseCatalogClient = Depends(get_course_catalog),
    monitor: PerformanceMonitor = Depends(get_monitor),
) -> CourseRecommendationResponse:
    analysis = _load_analysis(db, payload.analysis_id)
    if analysis.user_id != payload.user_id:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")

    gaps = payload.skill_gaps if payload.skill_gaps is not None else affiliate_service.gaps_for_analysis(analysis)
    recommendations, warnings = affiliate_service.build_recommendations(
        catalog,
        gaps,
        user_id=payload.user_id,
        analysis_id=analysis.id,
        preferences=payload.preferences,
        prefix=settings.tracking_prefix,
        affiliate_ids={"Coursera": settings.coursera_affiliate_id, "Udemy": settings.udemy_affiliate_id},
        max_attempts=settings.course_retry_attempts,
        initial_delay=settings.course_retry_initial_delay_seconds,
    )
    if any(item.courses for item in recommendations):
        affiliate_service.record_impression(db, analysis)
        monitor.record_affiliate("view")
    return CourseRecommendationResponse(
        analysis_id=analysis.id,
        recommendations=recommendations,
        disclosure=affiliate_service.FTC_DISCLOSURE,
        warnings=warnings,
    )


@router.post("/recommendations/track-click", response_model=ClickEventResponse)
def track_click(
    payload: ClickEventRequest,
    db: Session = Depends(get_db),
    monitor: PerformanceMonitor = Depends(get_monitor),
) -> ClickEventResponse:
    analysis = _load_analysis(db, payload.analysis_id)
    result = affiliate_service.track_click(db, analysis, payload)
    monitor.record_affiliate("click")
    return result


@router.post("/analytics/conversion", response_model=ConversionEventResponse)
def track_conversion(payload: ConversionEventRequest, db: Session = Depends(get_db)) -> ConversionEventResponse:
    analysis = _load_analysis(db, payload.analysis_id)
    return affiliate_service.track_conversion(db, analysis, payload)


@router.get("/analytics/revenue", response_model=RevenueReport)
def revenue_report(
    days: int | None = Query(None, ge=1, le=365),
    db: Session = Depends(get_db),
    validator: RevenueValidator = Depends(get_revenue_validator),
) -> RevenueReport:
    since = datetime.now(timezone.utc) - timedelta(days=days) if days else None
    metrics = affiliate_service.compute_affiliate_metrics(db, since)
    validation = validator.validate(metrics.click_through_rate, metrics.conversion_rate, metrics.revenue_per_analysis)
    validator.log_result(validation)
    return RevenueReport(metrics=metrics, validation=validation)
