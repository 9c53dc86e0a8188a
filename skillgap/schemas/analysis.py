from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, Field

from skillgap.schemas.occupation import OccupationSkill


TransitionType = Literal["lateral", "upward", "career-change"]


class ResumeSkill(BaseModel):
    name: str = Field(min_length=1)
    # beginner | intermediate | advanced | expert (unknown values score as intermediate)
    level: str = "intermediate"


class SkillGap(BaseModel):
    skill_name: str
    skill_code: str | None = None
    importance: float = Field(ge=0, le=100)
    current_level: float = Field(ge=0, le=100)
    target_level: float = Field(ge=0, le=100)
    priority_score: float
    # Hours to close the gap.
    time_estimate: float
    market_demand: float | None = Field(default=None, ge=0, le=100)
    career_capital: float = Field(default=0.0, ge=0, le=100)


class TransferableSkill(BaseModel):
    skill_name: str
    current_level: float = Field(ge=0, le=100)
    applicability_to_target: float = Field(ge=0, le=100)
    transfer_rationale: str
    confidence: float = Field(ge=0, le=1)


class TransferableSkillsResult(BaseModel):
    transferable_skills: list[TransferableSkill] = Field(default_factory=list)
    transfer_patterns: list[str] = Field(default_factory=list)
    # "ai" when the semantic match succeeded, "baseline" for the deterministic fallback.
    source: Literal["ai", "baseline"] = "baseline"


class RoadmapPhase(BaseModel):
    phase: int
    skills: list[str]
    # Weeks, given the user's weekly availability.
    estimated_duration: int
    milestone_title: str


class AnalysisMetadata(BaseModel):
    data_source_version: str = ""
    ai_model: str = ""
    transfer_source: str = "baseline"
    learning_velocity: float = 1.0
    transfer_patterns: list[str] = Field(default_factory=list)
    affiliate_click_count: int = 0
    affiliate_conversions: int = 0
    total_revenue: float = 0.0
    last_progress_update: datetime | None = None
    last_click_at: datetime | None = None
    last_conversion_at: datetime | None = None


class SkillGapAnalysisRead(BaseModel):
    id: int
    user_id: str
    resume_id: int
    target_role: str
    target_role_code: str | None = None
    critical_gaps: list[SkillGap] = Field(default_factory=list)
    nice_to_have_gaps: list[SkillGap] = Field(default_factory=list)
    transferable_skills: list[TransferableSkill] = Field(default_factory=list)
    prioritized_roadmap: list[RoadmapPhase] = Field(default_factory=list)
    user_availability: float
    transition_type: TransitionType
    completion_progress: float
    content_hash: str
    analysis_version: str
    metadata: AnalysisMetadata
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_record(cls, record: Any) -> "SkillGapAnalysisRead":
        return cls(
            id=record.id,
            user_id=record.user_id,
            resume_id=record.resume_id,
            target_role=record.target_role,
            target_role_code=record.target_role_code,
            critical_gaps=record.critical_gaps or [],
            nice_to_have_gaps=record.nice_to_have_gaps or [],
            transferable_skills=record.transferable_skills or [],
            prioritized_roadmap=record.prioritized_roadmap or [],
            user_availability=record.user_availability,
            transition_type=record.transition_type,
            completion_progress=record.completion_progress,
            content_hash=record.content_hash,
            analysis_version=record.analysis_version,
            metadata=AnalysisMetadata(**(record.analysis_metadata or {})),
            created_at=record.created_at,
            updated_at=record.updated_at,
        )


class UserWarning(BaseModel):
    title: str
    message: str
    action: str


class AnalyzeRequest(BaseModel):
    user_id: str = Field(min_length=1)
    resume_id: int
    target_role: str = Field(min_length=1, max_length=255)
    target_role_code: str | None = None
    user_availability: float = Field(gt=0, le=168)
    # Optional overrides; by default skills and current role come from the stored resume.
    current_skills: list[ResumeSkill] | None = Field(default=None, max_length=200)
    current_role: str | None = None
    # Custom requirements for roles the occupation provider does not know.
    target_skills: list[OccupationSkill] | None = Field(default=None, max_length=200)


class AnalyzeResponse(BaseModel):
    analysis_id: int
    cached: bool
    analysis: SkillGapAnalysisRead
    transfer_patterns: list[str] = Field(default_factory=list)
    warnings: list[UserWarning] = Field(default_factory=list)


class TransferableSkillsRequest(BaseModel):
    current_skills: list[ResumeSkill] = Field(max_length=200)
    target_skills: list[OccupationSkill] = Field(max_length=200)
    current_role: str = Field(min_length=1)
    target_role: str = Field(min_length=1)


class ExplainTransferRequest(BaseModel):
    skill_name: str = Field(min_length=1)
    current_context: str = Field(min_length=1)
    target_context: str = Field(min_length=1)


class TransferExplanation(BaseModel):
    explanation: str
    confidence: float = Field(ge=0, le=1)
