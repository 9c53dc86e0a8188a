# dependencies.py
from fastapi import Depends, HTTPException, Request, status
from sqlalchemy.orm import Session

from skillgap.database import get_db
from skillgap.models.skill_gap_analysis import SkillGapAnalysis
from skillgap.services.analysis_cache import KeyedLocks
from skillgap.services.analysis_service import get_analysis
from skillgap.services.course_catalog import CourseCatalogClient
from skillgap.services.occupation_provider import OnetOccupationProvider
from skillgap.services.performance_monitor import PerformanceMonitor
from skillgap.services.revenue_validation import RevenueValidator
from skillgap.services.transferable_matcher import TransferableSkillsMatcher


# Collaborators are built once in the app lifespan and parked on app.state.
def get_matcher(request: Request) -> TransferableSkillsMatcher:
    return request.app.state.matcher


def get_occupation_provider(request: Request) -> OnetOccupationProvider:
    return request.app.state.occupation_provider


def get_course_catalog(request: Request) -> CourseCatalogClient:
    return request.app.state.course_catalog


def get_monitor(request: Request) -> PerformanceMonitor:
    return request.app.state.monitor


def get_analysis_locks(request: Request) -> KeyedLocks:
    return request.app.state.analysis_locks


def get_revenue_validator(request: Request) -> RevenueValidator:
    return request.app.state.revenue_validator


def get_analysis_or_404(analysis_id: int, db: Session = Depends(get_db)) -> SkillGapAnalysis:
    analysis = get_analysis(db, analysis_id)
    if not analysis:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Analysis not found")
    return analysis
