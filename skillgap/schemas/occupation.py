from __future__ import annotations

from pydantic import BaseModel, Field


class OccupationSummary(BaseModel):
    code: str
    title: str
    description: str = ""


class OccupationSkill(BaseModel):
    skill_name: str = Field(min_length=1)
    skill_code: str | None = None
    # O*NET importance rescaled to 0-100.
    importance: float = Field(default=50.0, ge=0, le=100)
    # O*NET level scale 0-7.
    level: float = Field(default=4.0, ge=0, le=7)
    category: str = ""


class KnowledgeArea(BaseModel):
    name: str
    level: float = 0.0
    importance: float = 0.0


class LaborMarketData(BaseModel):
    employment_outlook: str = "Average"
    median_salary: float | None = None
    growth_rate: float | None = None


class OccupationSkills(BaseModel):
    occupation_code: str
    occupation_title: str
    skills: list[OccupationSkill] = Field(default_factory=list)
    knowledge_areas: list[KnowledgeArea] = Field(default_factory=list)
    abilities: list[KnowledgeArea] = Field(default_factory=list)
    labor_market_data: LaborMarketData = Field(default_factory=LaborMarketData)
    cache_version: str
