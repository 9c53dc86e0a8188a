# gap_service.py
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterable, Sequence

from skillgap.schemas.analysis import ResumeSkill, SkillGap
from skillgap.schemas.occupation import OccupationSkill
from skillgap.services.scoring import (
    career_capital,
    estimate_market_demand,
    estimate_timeline,
    normalize_level,
    onet_level_to_percent,
    priority_score,
    rank_gaps,
    round_half_up,
)


CRITICAL_IMPORTANCE = 70


@dataclass
class GapAnalysisResult:
    critical_gaps: list[SkillGap] = field(default_factory=list)
    nice_to_have_gaps: list[SkillGap] = field(default_factory=list)
    existing_skills: list[str] = field(default_factory=list)

    @property
    def all_gaps(self) -> list[SkillGap]:
        return rank_gaps(self.critical_gaps + self.nice_to_have_gaps)


def build_gap(
    target: OccupationSkill,
    current_level: float,
    user_availability: float,
    learning_velocity: float = 1.0,
) -> SkillGap:
    target_level = onet_level_to_percent(target.level)
    hours = estimate_timeline(target.level, current_level, target_level, user_availability, learning_velocity).estimated_hours
    demand = estimate_market_demand(target.category)
    capital = career_capital(target.importance, target.level)
    return SkillGap(
        skill_name=target.skill_name,
        skill_code=target.skill_code,
        importance=target.importance,
        current_level=current_level,
        target_level=target_level,
        priority_score=priority_score(target.importance, hours, demand, capital, learning_velocity),
        time_estimate=hours,
        market_demand=demand,
        career_capital=capital,
    )


def analyze_gaps(
    resume_skills: Sequence[ResumeSkill],
    target_skills: Sequence[OccupationSkill],
    user_availability: float,
    learning_velocity: float = 1.0,
) -> GapAnalysisResult:
    by_name = {skill.name.strip().lower(): skill for skill in resume_skills if skill.name}
    result = GapAnalysisResult()
    for target in target_skills:
        held = by_name.get(target.skill_name.strip().lower())
        current_level = normalize_level(held.level) if held else 0
        if held and current_level >= onet_level_to_percent(target.level):
            result.existing_skills.append(target.skill_name)
            continue
        gap = build_gap(target, current_level, user_availability, learning_velocity)
        if target.importance >= CRITICAL_IMPORTANCE:
            result.critical_gaps.append(gap)
        else:
            result.nice_to_have_gaps.append(gap)
    result.critical_gaps = rank_gaps(result.critical_gaps)
    result.nice_to_have_gaps = rank_gaps(result.nice_to_have_gaps)
    return result


def _field(entry: Any, name: str, default: Any = None) -> Any:
    if isinstance(entry, dict):
        return entry.get(name, default)
    return getattr(entry, name, default)


def calculate_learning_velocity(tracked_skills: Iterable[Any]) -> float:
    """Average ratio of time spent to estimated time over finished skills.

    1.0 is an average learner. Users without finished skills get 1.0.
    """

    velocities: list[float] = []
    for skill in tracked_skills:
        status = _field(skill, "status")
        finished = status == "mastered" or (status == "practicing" and float(_field(skill, "progress", 0) or 0) >= 100)
        estimate = float(_field(skill, "estimated_time_to_target", 0) or 0)
        if not finished or estimate <= 0:
            continue
        velocities.append(float(_field(skill, "time_spent", 0) or 0) / estimate)
    if not velocities:
        return 1.0
    return round_half_up(sum(velocities) / len(velocities), 2)


def determine_transition_type(critical_gap_count: int, transferable_count: int) -> str:
    ratio = critical_gap_count / transferable_count if transferable_count > 0 else float(critical_gap_count)
    if ratio > 2:
        return "career-change"
    if ratio > 1:
        return "upward"
    return "lateral"
