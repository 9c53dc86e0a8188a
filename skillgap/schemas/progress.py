from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


class ProgressUpdateRequest(BaseModel):
    # Out-of-range values are clamped to [0, 100].
    completion_progress: float


class ProgressReport(BaseModel):
    analysis_id: int
    completion_progress: float
    previous_progress: float
    progress_change: float
    total_gaps: int
    closed_gaps: int
    tier: str
    message: str


class GapBreakdown(BaseModel):
    total: int
    closed: int


class ProgressSyncResponse(BaseModel):
    report: ProgressReport
    critical_gaps: GapBreakdown
    nice_to_have_gaps: GapBreakdown
    closed_gap_names: list[str] = Field(default_factory=list)
    open_gap_names: list[str] = Field(default_factory=list)


class HistoricalAnalysisSummary(BaseModel):
    id: int
    target_role: str
    target_role_code: str | None = None
    transition_type: str
    completion_progress: float
    critical_gaps_count: int
    nice_to_have_gaps_count: int
    transferable_skills_count: int
    roadmap_phases: int
    user_availability: float
    analysis_version: str
    data_source_version: str | None = None
    ai_model: str | None = None
    last_progress_update: datetime | None = None
    created_at: datetime
    updated_at: datetime


class HistoryResponse(BaseModel):
    analyses: list[HistoricalAnalysisSummary]
    count: int
    target_role: str | None = None


class Trajectory(BaseModel):
    points: int
    first_progress: float
    latest_progress: float
    delta: float
    elapsed_days: float
    # Progress points gained per day; None when both points share a timestamp.
    improvement_rate_per_day: float | None = None
    first_created_at: datetime
    latest_created_at: datetime


class TrajectoryResponse(BaseModel):
    user_id: str
    target_role: str
    trajectory: Trajectory | None = None
