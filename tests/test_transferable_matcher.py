from __future__ import annotations

import asyncio

import pytest

from conftest import FakeAIClient
from skillgap.errors import MalformedUpstreamResponseError, UpstreamUnavailableError
from skillgap.schemas.analysis import ResumeSkill
from skillgap.schemas.occupation import OccupationSkill
from skillgap.services.performance_monitor import PerformanceMonitor
from skillgap.services.transferable_matcher import (
    MatcherCache,
    TransferableSkillsMatcher,
    build_cache_key,
    calculate_transfer_confidence,
    detect_baseline,
    explanation_strength,
    validate_ai_response,
)


CURRENT = [
    ResumeSkill(name="React", level="advanced"),
    ResumeSkill(name="Project Management", level="intermediate"),
    ResumeSkill(name="Cooking", level="expert"),
]
TARGET = [
    OccupationSkill(skill_name="React", importance=80, level=5),
    OccupationSkill(skill_name="Management", importance=60, level=4),
    OccupationSkill(skill_name="Welding", importance=90, level=5),
]

AI_PAYLOAD = {
    "transferableSkills": [
        {
            "skillName": "Project Management",
            "currentLevel": 120,
            "applicabilityToTarget": 85,
            "transferRationale": "Planning work maps onto sprint planning.",
            "confidence": 0.8,
        },
        {"skillName": "Incomplete"},
    ],
    "transferPatterns": ["Leadership carries over", ""],
}


def _find(matcher: TransferableSkillsMatcher):
    return asyncio.run(matcher.find_transferable_skills(CURRENT, TARGET, "Chef", "Frontend Developer"))


def test_baseline_matches_similar_names_only() -> None:
    matches = detect_baseline(CURRENT, TARGET)
    names = [match.skill_name for match in matches]
    assert names == ["React", "Project Management"]
    assert matches[0].transfer_rationale == "Direct match with target skill: React"
    assert matches[1].transfer_rationale == "Similar to target skill: Management"
    assert matches[0].applicability_to_target == 80
    assert matches[1].applicability_to_target == 54
    assert all(match.confidence > 0.5 for match in matches)


def test_without_ai_client_uses_baseline() -> None:
    result = _find(TransferableSkillsMatcher())
    assert result.source == "baseline"
    assert result.transfer_patterns == ["Direct skill overlap"]
    assert len(result.transferable_skills) == 2


def test_ai_timeout_falls_back_to_baseline_and_cancels_call() -> None:
    client = FakeAIClient(payload=AI_PAYLOAD, delay=1.0)
    monitor = PerformanceMonitor()
    matcher = TransferableSkillsMatcher(ai_client=client, timeout_seconds=0.05, monitor=monitor)

    result = _find(matcher)

    assert result.source == "baseline"
    assert result.transferable_skills
    assert all(skill.confidence > 0.5 for skill in result.transferable_skills)
    assert client.cancelled is True
    assert monitor.operation_metrics("ai_transferable_skills")["timeouts"] == 1


def test_ai_error_falls_back_to_baseline() -> None:
    client = FakeAIClient(error=UpstreamUnavailableError("down", status_code=503))
    result = _find(TransferableSkillsMatcher(ai_client=client))
    assert result.source == "baseline"
    assert client.calls == 1


def test_malformed_ai_payload_falls_back_to_baseline() -> None:
    client = FakeAIClient(payload={"transferableSkills": "nope"})
    assert _find(TransferableSkillsMatcher(ai_client=client)).source == "baseline"


def test_valid_ai_payload_is_normalized() -> None:
    result = _find(TransferableSkillsMatcher(ai_client=FakeAIClient(payload=AI_PAYLOAD)))
    assert result.source == "ai"
    assert [skill.skill_name for skill in result.transferable_skills] == ["Project Management"]
    assert result.transferable_skills[0].current_level == 100
    assert result.transfer_patterns == ["Leadership carries over"]


def test_validate_ai_response_edge_cases() -> None:
    assert validate_ai_response({"transferableSkills": []}).transferable_skills == []
    with pytest.raises(MalformedUpstreamResponseError):
        validate_ai_response([])
    with pytest.raises(MalformedUpstreamResponseError):
        validate_ai_response({})
    with pytest.raises(MalformedUpstreamResponseError):
        validate_ai_response({"transferableSkills": [{"skillName": "x", "confidence": True}]})


def test_repeat_calls_are_served_from_cache() -> None:
    client = FakeAIClient(payload=AI_PAYLOAD)
    monitor = PerformanceMonitor()
    matcher = TransferableSkillsMatcher(ai_client=client, monitor=monitor)

    first = _find(matcher)
    second = _find(matcher)

    assert first == second
    assert client.calls == 1
    assert monitor.cache_metrics("ai")["hits"] == 1
    assert monitor.cache_metrics("ai")["misses"] == 1


def test_cache_key_ignores_order_and_case() -> None:
    reordered = list(reversed(CURRENT))
    assert build_cache_key(CURRENT, TARGET, "Chef", "Dev") == build_cache_key(reordered, TARGET, "chef ", "DEV")


def test_matcher_cache_expires_entries() -> None:
    now = [1000.0]
    cache = MatcherCache(maxsize=10, ttl_seconds=60, clock=lambda: now[0])
    client = FakeAIClient(payload=AI_PAYLOAD)
    matcher = TransferableSkillsMatcher(ai_client=client, cache=cache)

    _find(matcher)
    now[0] += 59
    _find(matcher)
    assert client.calls == 1

    now[0] += 2
    _find(matcher)
    assert client.calls == 2


def test_matcher_cache_evicts_least_recently_used() -> None:
    cache = MatcherCache(maxsize=2)
    result = validate_ai_response({"transferableSkills": []})
    cache.set("a", result)
    cache.set("b", result)
    assert cache.get("a") is not None
    cache.set("c", result)
    assert cache.get("b") is None
    assert cache.get("a") is not None
    assert len(cache) == 2


def test_explanation_strength_and_confidence() -> None:
    assert explanation_strength("short") == 0.3
    strong = explanation_strength("This is a core and essential capability used directly in the new role every day.")
    weak = explanation_strength("This might possibly help somewhat in the new role depending on the team you join.")
    assert strong > weak

    skill = ResumeSkill(name="React", level="expert")
    direct = calculate_transfer_confidence(skill, "", TARGET[0])
    indirect = calculate_transfer_confidence(skill, "", TARGET[2])
    assert direct > indirect
    assert 0 <= indirect <= direct <= 1


def test_explain_transfer_uses_template_on_failure() -> None:
    matcher = TransferableSkillsMatcher(ai_client=FakeAIClient(explanation=None, delay=1.0), timeout_seconds=0.05)
    explanation = asyncio.run(matcher.explain_transfer("Budgeting", "restaurant", "operations"))
    assert "Budgeting" in explanation.explanation
    assert explanation.confidence == 0.5


def test_explain_transfer_uses_ai_answer() -> None:
    client = FakeAIClient(explanation={"explanation": "  Menu costing is budgeting.  ", "confidence": 1.4})
    explanation = asyncio.run(TransferableSkillsMatcher(ai_client=client).explain_transfer("Budgeting", "a", "b"))
    assert explanation.explanation == "Menu costing is budgeting."
    assert explanation.confidence == 1.0
