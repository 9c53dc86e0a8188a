# skill_gap.py
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.orm import Session

from skillgap.config import settings
from skillgap.database import get_db
from skillgap.errors import InvalidAnalysisRequestError, NotFoundError
from skillgap.models.skill_gap_analysis import SkillGapAnalysis
from skillgap.routers.dependencies import (
    get_analysis_locks,
    get_analysis_or_404,
    get_matcher,
    get_monitor,
    get_occupation_provider,
)
from skillgap.schemas.analysis import (
    AnalyzeRequest,
    AnalyzeResponse,
    ExplainTransferRequest,
    SkillGapAnalysisRead,
    TransferableSkillsRequest,
    TransferableSkillsResult,
    TransferExplanation,
)
from skillgap.schemas.progress import (
    HistoryResponse,
    ProgressReport,
    ProgressSyncResponse,
    ProgressUpdateRequest,
    TrajectoryResponse,
)
from skillgap.services import roadmap_service
from skillgap.services.analysis_cache import KeyedLocks
from skillgap.services.analysis_service import run_analysis
from skillgap.services.occupation_provider import OnetOccupationProvider
from skillgap.services.performance_monitor import PerformanceMonitor
from skillgap.services.resume_service import list_tracked_skills
from skillgap.services.transferable_matcher import TransferableSkillsMatcher


router = APIRouter(prefix="/skill-gap", tags=["skill-gap"])


@router.post("/analyze", response_model=AnalyzeResponse)
async def analyze(
    payload: AnalyzeRequest,
    db: Session = Depends(get_db),
    matcher: TransferableSkillsMatcher = Depends(get_matcher),
    provider: OnetOccupationProvider = Depends(get_occupation_provider),
    locks: KeyedLocks = Depends(get_analysis_locks),
    monitor: PerformanceMonitor = Depends(get_monitor),
) -> AnalyzeResponse:
    try:
        return await run_analysis(
            db,
            payload,
            matcher=matcher,
            occupation_provider=provider,
            locks=locks,
            analysis_version=settings.analysis_version,
            monitor=monitor,
        )
    except NotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except InvalidAnalysisRequestError as exc:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc)) from exc


@router.get("/history", response_model=HistoryResponse)
def read_history(
    user_id: str = Query(..., min_length=1),
    target_role: str | None = Query(None),
    limit: int = Query(20, ge=1, le=100),
    db: Session = Depends(get_db),
) -> HistoryResponse:
    records = roadmap_service.list_history(db, user_id, target_role.strip() if target_role else None, limit)
    summaries = roadmap_service.summarize_history(records)
    return HistoryResponse(analyses=summaries, count=len(summaries), target_role=target_role)


@router.get("/trajectory", response_model=TrajectoryResponse)
def read_trajectory(
    user_id: str = Query(..., min_length=1),
    target_role: str = Query(..., min_length=1),
    db: Session = Depends(get_db),
) -> TrajectoryResponse:
    records = roadmap_service.list_history(db, user_id, target_role.strip())
    return TrajectoryResponse(
        user_id=user_id,
        target_role=target_role,
        trajectory=roadmap_service.compute_trajectory(records),
    )


@router.post("/transferable-skills", response_model=TransferableSkillsResult)
async def find_transferable_skills(
    payload: TransferableSkillsRequest,
    matcher: TransferableSkillsMatcher = Depends(get_matcher),
) -> TransferableSkillsResult:
    return await matcher.find_transferable_skills(
        payload.current_skills, payload.target_skills, payload.current_role, payload.target_role
    )


@router.post("/explain-transfer", response_model=TransferExplanation)
async def explain_transfer(
    payload: ExplainTransferRequest,
    matcher: TransferableSkillsMatcher = Depends(get_matcher),
) -> TransferExplanation:
    return await matcher.explain_transfer(payload.skill_name, payload.current_context, payload.target_context)


@router.get("/{analysis_id}", response_model=SkillGapAnalysisRead)
def read_analysis(analysis: SkillGapAnalysis = Depends(get_analysis_or_404)) -> SkillGapAnalysisRead:
    return SkillGapAnalysisRead.from_record(analysis)


@router.put("/{analysis_id}/progress", response_model=ProgressReport)
def update_progress(
    payload: ProgressUpdateRequest,
    analysis: SkillGapAnalysis = Depends(get_analysis_or_404),
    db: Session = Depends(get_db),
) -> ProgressReport:
    return roadmap_service.set_progress(db, analysis, payload.completion_progress)


@router.post("/{analysis_id}/progress/sync", response_model=ProgressSyncResponse)
def sync_progress(
    analysis: SkillGapAnalysis = Depends(get_analysis_or_404),
    db: Session = Depends(get_db),
) -> ProgressSyncResponse:
    tracked = list_tracked_skills(db, analysis.user_id)
    return roadmap_service.sync_progress_from_tracker(db, analysis, tracked)
