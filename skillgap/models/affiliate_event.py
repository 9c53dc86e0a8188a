from __future__ import annotations

from sqlalchemy import Column, DateTime, Float, ForeignKey, Integer, String
from sqlalchemy.sql import func

from skillgap.database import Base


class AffiliateEvent(Base):
    __tablename__ = "affiliate_events"

    id = Column(Integer, primary_key=True, index=True)
    analysis_id = Column(Integer, ForeignKey("skill_gap_analyses.id"), nullable=False, index=True)
    user_id = Column(String(64), nullable=True, index=True)

    # impression | click | conversion
    event_type = Column(String(16), nullable=False, index=True)
    skill_name = Column(String(255), nullable=True)
    course_provider = Column(String(64), nullable=True)
    course_url = Column(String(1024), nullable=True)
    course_title = Column(String(512), nullable=True)
    tracking_id = Column(String(512), nullable=True)

    # enrollment | purchase | completion (conversions only)
    conversion_type = Column(String(16), nullable=True)
    revenue = Column(Float, nullable=False, default=0.0)

    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
