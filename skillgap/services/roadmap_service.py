# roadmap_service.py
from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import Any, Iterable, Sequence

from sqlalchemy.orm import Session

from skillgap.models.skill_gap_analysis import SkillGapAnalysis
from skillgap.schemas.analysis import RoadmapPhase, SkillGap
from skillgap.schemas.progress import (
    GapBreakdown,
    HistoricalAnalysisSummary,
    ProgressReport,
    ProgressSyncResponse,
    Trajectory,
)
from skillgap.services.scoring import clamp, round_half_up


PHASE_TITLES = (
    "Critical Skills Foundation",
    "Core Competencies Development",
    "Advanced Skills Mastery",
)

PROGRESS_TIERS = {
    "congratulations": "Congratulations! You've closed every gap for this role.",
    "almost_there": "You're almost there. Only a few skills left to close.",
    "great_progress": "Great progress. Keep building on your momentum.",
    "keep_learning": "Keep learning. Every skill you close moves you closer to your target role.",
}

CLOSED_STATUSES = {"practicing", "mastered"}


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    # sqlite hands back naive datetimes even for timezone-aware columns.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def generate_roadmap(ranked_gaps: Sequence[SkillGap], user_availability: float) -> list[RoadmapPhase]:
    """Split gaps (already ranked) into up to three phases of roughly equal size."""

    band = math.ceil(len(ranked_gaps) / 3)
    bands = [ranked_gaps[:band], ranked_gaps[band : band * 2], ranked_gaps[band * 2 :]]
    phases: list[RoadmapPhase] = []
    for number, (gaps, title) in enumerate(zip(bands, PHASE_TITLES), start=1):
        if not gaps:
            continue
        hours = sum(gap.time_estimate for gap in gaps)
        phases.append(
            RoadmapPhase(
                phase=number,
                skills=[gap.skill_name for gap in gaps],
                estimated_duration=math.ceil(hours / user_availability) if user_availability > 0 else 0,
                milestone_title=title,
            )
        )
    return phases


def clamp_progress(value: float) -> float:
    return clamp(float(value), 0.0, 100.0)


def progress_tier(progress: float) -> str:
    if progress >= 100:
        return "congratulations"
    if progress > 75:
        return "almost_there"
    if progress > 25:
        return "great_progress"
    return "keep_learning"


def closed_gap_count(progress: float, total_gaps: int) -> int:
    return int(round_half_up(clamp_progress(progress) / 100 * total_gaps))


def build_progress_report(analysis_id: int, progress: float, total_gaps: int, previous: float | None = None) -> ProgressReport:
    progress = clamp_progress(progress)
    previous = progress if previous is None else previous
    tier = progress_tier(progress)
    return ProgressReport(
        analysis_id=analysis_id,
        completion_progress=progress,
        previous_progress=previous,
        progress_change=round_half_up(progress - previous, 2),
        total_gaps=total_gaps,
        closed_gaps=closed_gap_count(progress, total_gaps),
        tier=tier,
        message=PROGRESS_TIERS[tier],
    )


def set_progress(db: Session, analysis: SkillGapAnalysis, value: float) -> ProgressReport:
    previous = analysis.completion_progress or 0.0
    analysis.completion_progress = clamp_progress(value)
    analysis.patch_metadata(last_progress_update=_utc_now().isoformat())
    db.commit()
    db.refresh(analysis)
    return build_progress_report(analysis.id, analysis.completion_progress, len(analysis.all_gaps()), previous)


def _tracker_statuses(tracked_skills: Iterable[Any]) -> dict[str, str]:
    statuses: dict[str, str] = {}
    for skill in tracked_skills:
        name = skill.get("name") if isinstance(skill, dict) else getattr(skill, "name", None)
        status = skill.get("status") if isinstance(skill, dict) else getattr(skill, "status", None)
        if name:
            statuses[name.strip().lower()] = status or ""
    return statuses


def sync_progress_from_tracker(db: Session, analysis: SkillGapAnalysis, tracked_skills: Iterable[Any]) -> ProgressSyncResponse:
    statuses = _tracker_statuses(tracked_skills)

    def is_closed(gap: dict) -> bool:
        return statuses.get((gap.get("skill_name") or "").strip().lower()) in CLOSED_STATUSES

    critical = list(analysis.critical_gaps or [])
    nice = list(analysis.nice_to_have_gaps or [])
    gaps = critical + nice
    closed_names = [gap["skill_name"] for gap in gaps if is_closed(gap)]
    open_names = [gap["skill_name"] for gap in gaps if not is_closed(gap)]
    progress = round_half_up(len(closed_names) / len(gaps) * 100) if gaps else 0.0

    report = set_progress(db, analysis, progress)
    return ProgressSyncResponse(
        report=report,
        critical_gaps=GapBreakdown(total=len(critical), closed=sum(1 for gap in critical if is_closed(gap))),
        nice_to_have_gaps=GapBreakdown(total=len(nice), closed=sum(1 for gap in nice if is_closed(gap))),
        closed_gap_names=closed_names,
        open_gap_names=open_names,
    )


def list_history(db: Session, user_id: str, target_role: str | None = None, limit: int | None = None) -> list[SkillGapAnalysis]:
    query = db.query(SkillGapAnalysis).filter(SkillGapAnalysis.user_id == user_id)
    if target_role:
        query = query.filter(SkillGapAnalysis.target_role == target_role)
    query = query.order_by(SkillGapAnalysis.created_at.desc(), SkillGapAnalysis.id.desc())
    if limit:
        query = query.limit(limit)
    return query.all()


def summarize_history(analyses: Iterable[SkillGapAnalysis]) -> list[HistoricalAnalysisSummary]:
    summaries: list[HistoricalAnalysisSummary] = []
    for analysis in analyses:
        metadata = analysis.analysis_metadata or {}
        summaries.append(
            HistoricalAnalysisSummary(
                id=analysis.id,
                target_role=analysis.target_role,
                target_role_code=analysis.target_role_code,
                transition_type=analysis.transition_type,
                completion_progress=analysis.completion_progress,
                critical_gaps_count=len(analysis.critical_gaps or []),
                nice_to_have_gaps_count=len(analysis.nice_to_have_gaps or []),
                transferable_skills_count=len(analysis.transferable_skills or []),
                roadmap_phases=len(analysis.prioritized_roadmap or []),
                user_availability=analysis.user_availability,
                analysis_version=analysis.analysis_version,
                data_source_version=metadata.get("data_source_version"),
                ai_model=metadata.get("ai_model"),
                last_progress_update=metadata.get("last_progress_update"),
                created_at=analysis.created_at,
                updated_at=analysis.updated_at,
            )
        )
    return summaries


def compute_trajectory(history: Iterable[Any]) -> Trajectory | None:
    """Progress delta between the earliest and latest analysis.

    Accepts ORM records or summaries; anything with ``completion_progress``
    and ``created_at``. Fewer than two points yield no trajectory.
    """

    points = sorted(history, key=lambda item: _as_utc(item.created_at))
    if len(points) < 2:
        return None
    first, latest = points[0], points[-1]
    delta = latest.completion_progress - first.completion_progress
    elapsed_days = (_as_utc(latest.created_at) - _as_utc(first.created_at)).total_seconds() / 86400
    return Trajectory(
        points=len(points),
        first_progress=first.completion_progress,
        latest_progress=latest.completion_progress,
        delta=round_half_up(delta, 2),
        elapsed_days=round_half_up(elapsed_days, 2),
        improvement_rate_per_day=round_half_up(delta / elapsed_days, 4) if elapsed_days > 0 else None,
        first_created_at=first.created_at,
        latest_created_at=latest.created_at,
    )
