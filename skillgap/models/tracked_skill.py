# tracked_skill.py
from sqlalchemy import Column, DateTime, Float, Integer, String, UniqueConstraint
from sqlalchemy.sql import func

from skillgap.database import Base


class TrackedSkill(Base):
    __tablename__ = "tracked_skills"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(String(64), nullable=False, index=True)
    name = Column(String(255), nullable=False)

    # learning | practicing | mastered
    status = Column(String(32), nullable=False, default="learning")
    progress = Column(Float, nullable=False, default=0.0)
    time_spent = Column(Float, nullable=False, default=0.0)
    estimated_time_to_target = Column(Float, nullable=False, default=0.0)

    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

    __table_args__ = (
        UniqueConstraint("user_id", "name", name="uq_tracked_skills_user_name"),
    )
