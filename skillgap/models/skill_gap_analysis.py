from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, JSON, String, UniqueConstraint

from skillgap.database import Base


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class SkillGapAnalysis(Base):
    __tablename__ = "skill_gap_analyses"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    resume_id = Column(Integer, ForeignKey("resumes.id"), nullable=False, index=True)
    target_role = Column(String(255), nullable=False, index=True)
    target_role_code = Column(String(32), nullable=True)

    # Stored as list[{skill_name, skill_code, importance, current_level, target_level,
    # priority_score, time_estimate, market_demand}]
    critical_gaps = Column(JSON, nullable=False, default=list)
    nice_to_have_gaps = Column(JSON, nullable=False, default=list)
    # Stored as list[{skill_name, current_level, applicability_to_target, transfer_rationale, confidence}]
    transferable_skills = Column(JSON, nullable=False, default=list)
    # Stored as list[{phase, skills, estimated_duration, milestone_title}]
    prioritized_roadmap = Column(JSON, nullable=False, default=list)

    user_availability = Column(Float, nullable=False)
    transition_type = Column(String(32), nullable=False)
    completion_progress = Column(Float, nullable=False, default=0.0)
    content_hash = Column(String(64), nullable=False, index=True)
    analysis_version = Column(String(16), nullable=False)

    # See schemas.analysis.AnalysisMetadata for the shape.
    analysis_metadata = Column("metadata", JSON, nullable=False, default=dict)

    created_at = Column(DateTime(timezone=True), default=_utc_now, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utc_now, onupdate=_utc_now, nullable=False)

    __table_args__ = (
        UniqueConstraint("resume_id", "target_role", "content_hash", name="uq_skill_gap_analyses_fingerprint"),
    )

    def all_gaps(self) -> list[dict]:
        return list(self.critical_gaps or []) + list(self.nice_to_have_gaps or [])

    def patch_metadata(self, **changes) -> dict:
        merged = dict(self.analysis_metadata or {})
        merged.update(changes)
        # Reassign so the JSON column is flagged dirty.
        self.analysis_metadata = merged
        self.updated_at = _utc_now()
        return merged
