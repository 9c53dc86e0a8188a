# scoring.py
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Iterable


LEVEL_SCORES = {
    "beginner": 25,
    "intermediate": 50,
    "advanced": 75,
    "expert": 95,
}
DEFAULT_LEVEL_SCORE = 50

# Gaps needing this many hours or more get no credit for being quick.
TIME_CAP_HOURS = 200.0

PRIORITY_WEIGHTS = {
    "impact": 0.30,
    "time": 0.25,
    "demand": 0.20,
    "capital": 0.15,
    "velocity": 0.10,
}

HIGH_DEMAND_CATEGORIES = ("technical skills", "computer skills", "systems skills")


def round_half_up(value: float, digits: int = 0) -> float:
    factor = 10 ** digits
    return math.floor(value * factor + 0.5) / factor


def clamp(value: float, lower: float, upper: float) -> float:
    return max(lower, min(upper, value))


def similarity(a: str, b: str) -> float:
    """Score how alike two skill names are, from 0 to 1.

    Exact (case-insensitive) matches score 1.0, containment scores 0.9, and
    everything else falls back to the Jaccard index of whitespace tokens.
    """

    first = (a or "").strip().lower()
    second = (b or "").strip().lower()
    if first == second:
        return 1.0 if first else 0.0
    if first and second and (first in second or second in first):
        return 0.9
    first_tokens = set(first.split())
    second_tokens = set(second.split())
    union = first_tokens | second_tokens
    if not union:
        return 0.0
    return len(first_tokens & second_tokens) / len(union)


def normalize_level(level: str | None) -> int:
    if not level:
        return DEFAULT_LEVEL_SCORE
    return LEVEL_SCORES.get(level.strip().lower(), DEFAULT_LEVEL_SCORE)


def priority_score(
    importance: float,
    time_to_acquire_hours: float,
    market_demand: float,
    career_capital: float,
    learning_velocity: float = 1.0,
) -> float:
    impact = importance / 100
    time_score = 1 - min(max(time_to_acquire_hours, 0.0) / TIME_CAP_HOURS, 1.0)
    demand = market_demand / 100
    capital = career_capital / 100
    raw = 100 * (
        PRIORITY_WEIGHTS["impact"] * impact
        + PRIORITY_WEIGHTS["time"] * time_score
        + PRIORITY_WEIGHTS["demand"] * demand
        + PRIORITY_WEIGHTS["capital"] * capital
        + PRIORITY_WEIGHTS["velocity"] * learning_velocity
    )
    return clamp(round_half_up(raw, 2), 0.0, 100.0)


def _gap_sort_key(gap) -> tuple:
    if isinstance(gap, dict):
        score, importance, name = gap.get("priority_score", 0), gap.get("importance", 0), gap.get("skill_name", "")
    else:
        score, importance, name = gap.priority_score, gap.importance, gap.skill_name
    return (-float(score or 0), -float(importance or 0), (name or "").lower())


def rank_gaps(gaps: Iterable) -> list:
    # Ties: higher importance first, then alphabetical for determinism.
    return sorted(gaps, key=_gap_sort_key)


def onet_level_to_percent(level: float) -> int:
    return int(round_half_up(level / 7 * 100))


def base_hours_for_level(level: float) -> int:
    if level <= 3:
        return 60
    if level <= 5:
        return 120
    return 280


def complexity_for_level(level: float) -> str:
    if level <= 3:
        return "basic"
    if level <= 5:
        return "intermediate"
    return "advanced"


def estimate_market_demand(category: str | None) -> float:
    lowered = (category or "").lower()
    if any(name in lowered for name in HIGH_DEMAND_CATEGORIES):
        return 80.0
    return 50.0


def career_capital(importance: float, level: float) -> float:
    # Rarer (higher level) skills build more capital.
    return min(importance * level / 7, 100.0)


def velocity_multiplier(learning_velocity: float) -> float:
    if learning_velocity > 1.2:
        return 0.8
    if learning_velocity >= 0.8:
        return 1.0
    return 1.3


def gap_multiplier(current_level: float, target_level: float) -> float:
    if target_level <= 0:
        return 1.0
    gap_percentage = (target_level - current_level) / target_level * 100
    if gap_percentage <= 30:
        return 1.0
    if gap_percentage <= 60:
        return 1.5
    return 2.0


@dataclass(frozen=True)
class TimelineEstimate:
    estimated_hours: int
    weeks_to_complete: int
    complexity: str


def estimate_timeline(
    onet_level: float,
    current_level: float,
    target_level: float,
    user_availability: float,
    learning_velocity: float = 1.0,
) -> TimelineEstimate:
    hours = int(
        round_half_up(
            base_hours_for_level(onet_level)
            * velocity_multiplier(learning_velocity)
            * gap_multiplier(current_level, target_level)
        )
    )
    weeks = math.ceil(hours / user_availability) if user_availability > 0 else 0
    return TimelineEstimate(estimated_hours=hours, weeks_to_complete=weeks, complexity=complexity_for_level(onet_level))
