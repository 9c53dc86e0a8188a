# analysis_service.py
from __future__ import annotations

import logging
import time
from typing import Any

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from skillgap.errors import InvalidAnalysisRequestError, NotFoundError, warning
from skillgap.models.skill_gap_analysis import SkillGapAnalysis
from skillgap.schemas.analysis import AnalysisMetadata, AnalyzeRequest, AnalyzeResponse, SkillGapAnalysisRead, UserWarning
from skillgap.schemas.occupation import OccupationSkill
from skillgap.services.analysis_cache import KeyedLocks, analysis_fingerprint, insert_if_absent, resolve
from skillgap.services.gap_service import analyze_gaps, calculate_learning_velocity, determine_transition_type
from skillgap.services.occupation_provider import OnetOccupationProvider
from skillgap.services.resume_service import get_resume, list_tracked_skills, resume_skills
from skillgap.services.roadmap_service import generate_roadmap
from skillgap.services.transferable_matcher import TransferableSkillsMatcher


logger = logging.getLogger(__name__)

CUSTOM_DATA_SOURCE = "custom"
DEFAULT_CURRENT_ROLE = "Current role"


def get_analysis(db: Session, analysis_id: int) -> SkillGapAnalysis | None:
    return db.query(SkillGapAnalysis).filter(SkillGapAnalysis.id == analysis_id).first()


def _timed_resolve(db: Session, monitor: Any, resume_id: int, target_role: str, content_hash: str):
    started = time.perf_counter()
    decision = resolve(db, resume_id, target_role, content_hash)
    if monitor is not None:
        monitor.record("storage_query", (time.perf_counter() - started) * 1000, cached=decision.reuse)
    return decision


async def _target_skills(
    db: Session, request: AnalyzeRequest, provider: OnetOccupationProvider
) -> tuple[list[OccupationSkill], str, list[UserWarning]]:
    if request.target_skills:
        return list(request.target_skills), CUSTOM_DATA_SOURCE, []
    if not request.target_role_code:
        raise InvalidAnalysisRequestError("Either target_role_code or target_skills is required")

    lookup = await run_in_threadpool(provider.get_occupation_skills, db, request.target_role_code)
    if lookup.occupation is None:
        raise NotFoundError(f"Occupation {request.target_role_code} not found")
    warnings = [UserWarning(**warning("OCCUPATION_STALE_CACHE"))] if lookup.stale else []
    return list(lookup.occupation.skills), lookup.occupation.cache_version, warnings


async def run_analysis(
    db: Session,
    request: AnalyzeRequest,
    *,
    matcher: TransferableSkillsMatcher,
    occupation_provider: OnetOccupationProvider,
    locks: KeyedLocks,
    analysis_version: str = "1.0",
    monitor: Any = None,
) -> AnalyzeResponse:
    """Return the stored analysis for this resume content and role, computing it on a miss.

    Check-then-create is serialized per (resume, target role), and the
    storage unique constraint covers writers in other processes.
    """

    started = time.perf_counter()
    try:
        response = await _run_analysis(
            db,
            request,
            matcher=matcher,
            occupation_provider=occupation_provider,
            locks=locks,
            analysis_version=analysis_version,
            monitor=monitor,
        )
    except Exception as exc:
        if monitor is not None:
            monitor.record("initial_analysis", (time.perf_counter() - started) * 1000, success=False, error=str(exc))
        raise
    if monitor is not None:
        monitor.record("initial_analysis", (time.perf_counter() - started) * 1000, cached=response.cached)
    return response


async def _run_analysis(
    db: Session,
    request: AnalyzeRequest,
    *,
    matcher: TransferableSkillsMatcher,
    occupation_provider: OnetOccupationProvider,
    locks: KeyedLocks,
    analysis_version: str,
    monitor: Any,
) -> AnalyzeResponse:
    resume = await run_in_threadpool(get_resume, db, request.resume_id)
    if resume is None or resume.user_id != request.user_id:
        raise NotFoundError(f"Resume {request.resume_id} not found")

    target_role = request.target_role.strip()
    content_hash = analysis_fingerprint(
        resume.content_hash,
        current_skills=request.current_skills,
        current_role=request.current_role,
        target_skills=request.target_skills,
    )
    async with locks.hold((resume.id, target_role)):
        decision = await run_in_threadpool(_timed_resolve, db, monitor, resume.id, target_role, content_hash)
        if decision.reuse:
            stored = SkillGapAnalysisRead.from_record(decision.analysis)
            return AnalyzeResponse(
                analysis_id=stored.id,
                cached=True,
                analysis=stored,
                transfer_patterns=stored.metadata.transfer_patterns,
            )

        target_skills, data_source_version, warnings = await _target_skills(db, request, occupation_provider)
        current_skills = request.current_skills if request.current_skills is not None else resume_skills(resume)
        current_role = request.current_role or resume.current_role or DEFAULT_CURRENT_ROLE

        velocity = calculate_learning_velocity(await run_in_threadpool(list_tracked_skills, db, request.user_id))
        gaps = analyze_gaps(current_skills, target_skills, request.user_availability, velocity)
        transfer = await matcher.find_transferable_skills(current_skills, target_skills, current_role, target_role)
        if transfer.source == "baseline":
            warnings.append(UserWarning(**warning("AI_BASELINE_FALLBACK")))

        metadata = AnalysisMetadata(
            data_source_version=data_source_version,
            ai_model=matcher.model_name if transfer.source == "ai" else "baseline",
            transfer_source=transfer.source,
            learning_velocity=velocity,
            transfer_patterns=transfer.transfer_patterns,
        )
        record = SkillGapAnalysis(
            user_id=request.user_id,
            resume_id=resume.id,
            target_role=target_role,
            target_role_code=request.target_role_code,
            critical_gaps=[gap.model_dump(mode="json") for gap in gaps.critical_gaps],
            nice_to_have_gaps=[gap.model_dump(mode="json") for gap in gaps.nice_to_have_gaps],
            transferable_skills=[skill.model_dump(mode="json") for skill in transfer.transferable_skills],
            prioritized_roadmap=[
                phase.model_dump(mode="json") for phase in generate_roadmap(gaps.all_gaps, request.user_availability)
            ],
            user_availability=request.user_availability,
            transition_type=determine_transition_type(len(gaps.critical_gaps), len(transfer.transferable_skills)),
            completion_progress=0.0,
            content_hash=content_hash,
            analysis_version=analysis_version,
            analysis_metadata=metadata.model_dump(mode="json"),
        )
        stored_record, created = await run_in_threadpool(insert_if_absent, db, record)
        logger.info(
            "Analysis %s for resume_id=%s target_role=%s: %s critical, %s nice-to-have, %s transferable (%s)",
            stored_record.id,
            resume.id,
            target_role,
            len(gaps.critical_gaps),
            len(gaps.nice_to_have_gaps),
            len(transfer.transferable_skills),
            transfer.source,
        )
        stored = SkillGapAnalysisRead.from_record(stored_record)
        return AnalyzeResponse(
            analysis_id=stored.id,
            cached=not created,
            analysis=stored,
            transfer_patterns=stored.metadata.transfer_patterns,
            warnings=warnings if created else [],
        )
