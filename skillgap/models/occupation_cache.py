from __future__ import annotations

from sqlalchemy import Column, DateTime, Integer, JSON, String
from sqlalchemy.sql import func

from skillgap.database import Base


class OccupationCacheEntry(Base):
    __tablename__ = "occupation_cache"

    id = Column(Integer, primary_key=True, index=True)
    occupation_code = Column(String(32), unique=True, nullable=False, index=True)
    occupation_title = Column(String(255), nullable=False, index=True)

    # Stored as list[{skill_name, skill_code, importance, level, category}]
    skills = Column(JSON, nullable=False, default=list)
    knowledge_areas = Column(JSON, nullable=False, default=list)
    abilities = Column(JSON, nullable=False, default=list)
    labor_market_data = Column(JSON, nullable=False, default=dict)

    cache_version = Column(String(32), nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
