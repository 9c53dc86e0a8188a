from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

from skillgap.schemas.analysis import ResumeSkill


class ResumeCreate(BaseModel):
    user_id: str = Field(min_length=1)
    title: str = Field(min_length=1, max_length=255)
    content: str = Field(min_length=1)
    file_path: str | None = None
    skills: list[ResumeSkill] = Field(default_factory=list, max_length=200)
    current_role: str | None = None


class ResumeUpdate(BaseModel):
    title: str | None = Field(default=None, min_length=1, max_length=255)
    content: str | None = Field(default=None, min_length=1)
    file_path: str | None = None
    skills: list[ResumeSkill] | None = Field(default=None, max_length=200)
    current_role: str | None = None


class ResumeRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    title: str
    content: str
    file_path: str | None = None
    skills: list[ResumeSkill] = Field(default_factory=list)
    current_role: str | None = None
    content_hash: str
    created_at: datetime
    updated_at: datetime


class TrackedSkillUpsert(BaseModel):
    user_id: str = Field(min_length=1)
    name: str = Field(min_length=1, max_length=255)
    status: Literal["learning", "practicing", "mastered"] = "learning"
    progress: float = Field(default=0.0, ge=0, le=100)
    time_spent: float = Field(default=0.0, ge=0)
    estimated_time_to_target: float = Field(default=0.0, ge=0)


class TrackedSkillRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    user_id: str
    name: str
    status: str
    progress: float
    time_spent: float
    estimated_time_to_target: float
