from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from skillgap.schemas.analysis import SkillGap
from skillgap.services.roadmap_service import (
    PHASE_TITLES,
    build_progress_report,
    clamp_progress,
    closed_gap_count,
    compute_trajectory,
    generate_roadmap,
    progress_tier,
)


def _gaps(count: int, hours: float = 100) -> list[SkillGap]:
    return [
        SkillGap(
            skill_name=f"skill-{index}",
            importance=80,
            current_level=0,
            target_level=70,
            priority_score=100 - index,
            time_estimate=hours,
        )
        for index in range(count)
    ]


def test_roadmap_splits_into_three_bands() -> None:
    phases = generate_roadmap(_gaps(7), user_availability=10)
    assert [len(phase.skills) for phase in phases] == [3, 3, 1]
    assert [phase.milestone_title for phase in phases] == list(PHASE_TITLES)
    assert phases[0].skills == ["skill-0", "skill-1", "skill-2"]
    assert phases[0].estimated_duration == 30
    assert phases[2].estimated_duration == 10


def test_roadmap_omits_empty_phases() -> None:
    phases = generate_roadmap(_gaps(2, hours=15), user_availability=4)
    assert [phase.phase for phase in phases] == [1, 2]
    assert phases[0].estimated_duration == 4
    assert generate_roadmap([], user_availability=10) == []


def test_progress_is_clamped() -> None:
    assert clamp_progress(150) == 100
    assert clamp_progress(-5) == 0
    assert clamp_progress(42.5) == 42.5


@pytest.mark.parametrize(
    ("progress", "tier"),
    [(100, "congratulations"), (76, "almost_there"), (75, "great_progress"), (26, "great_progress"), (25, "keep_learning"), (0, "keep_learning")],
)
def test_progress_tiers(progress: float, tier: str) -> None:
    assert progress_tier(progress) == tier


def test_closed_gaps_round_to_nearest() -> None:
    assert closed_gap_count(33, 3) == 1
    assert closed_gap_count(50, 3) == 2
    assert closed_gap_count(0, 0) == 0


def test_progress_report_tracks_change() -> None:
    report = build_progress_report(7, 60, total_gaps=5, previous=20)
    assert report.completion_progress == 60
    assert report.progress_change == 40
    assert report.closed_gaps == 3
    assert report.tier == "great_progress"

    unchanged = build_progress_report(7, 120, total_gaps=4)
    assert unchanged.completion_progress == 100
    assert unchanged.progress_change == 0
    assert unchanged.tier == "congratulations"


def test_trajectory_over_ninety_days() -> None:
    start = datetime(2024, 1, 1, tzinfo=timezone.utc)
    history = [
        SimpleNamespace(completion_progress=40.0, created_at=start + timedelta(days=90)),
        SimpleNamespace(completion_progress=0.0, created_at=start),
    ]
    trajectory = compute_trajectory(history)
    assert trajectory is not None
    assert trajectory.points == 2
    assert trajectory.delta == 40
    assert trajectory.elapsed_days == 90
    assert trajectory.improvement_rate_per_day == pytest.approx(0.4444)


def test_trajectory_needs_two_points() -> None:
    now = datetime.now(timezone.utc)
    assert compute_trajectory([]) is None
    assert compute_trajectory([SimpleNamespace(completion_progress=10.0, created_at=now)]) is None


def test_trajectory_without_elapsed_time_has_no_rate() -> None:
    naive = datetime(2024, 5, 1)
    history = [
        SimpleNamespace(completion_progress=10.0, created_at=naive),
        SimpleNamespace(completion_progress=30.0, created_at=naive),
    ]
    trajectory = compute_trajectory(history)
    assert trajectory.delta == 20
    assert trajectory.improvement_rate_per_day is None
