# transferable_matcher.py
from __future__ import annotations

import logging
import threading
import time
from collections import OrderedDict
from typing import Any, Callable, Sequence

from skillgap.errors import MalformedUpstreamResponseError
from skillgap.schemas.analysis import ResumeSkill, TransferableSkill, TransferableSkillsResult, TransferExplanation
from skillgap.schemas.occupation import OccupationSkill
from skillgap.services.scoring import clamp, normalize_level, round_half_up, similarity
from skillgap.utils.deadline import call_with_deadline, describe


logger = logging.getLogger(__name__)


BASELINE_THRESHOLD = 0.5
DIRECT_MATCH_THRESHOLD = 0.9
FALLBACK_EXPLANATION_CONFIDENCE = 0.5

STRONG_WORDS = ("directly", "essential", "critical", "fundamental", "core", "extensively", "proven")
WEAK_WORDS = ("might", "could", "possibly", "maybe", "somewhat", "partially")


class MatcherCache:
    """Bounded LRU map with per-entry expiry.

    The clock is injectable so tests can move time forward without sleeping.
    """

    def __init__(self, maxsize: int = 256, ttl_seconds: float = 3600.0, clock: Callable[[], float] = time.monotonic) -> None:
        self.maxsize = maxsize
        self.ttl_seconds = ttl_seconds
        self._clock = clock
        self._entries: OrderedDict[str, tuple[float, TransferableSkillsResult]] = OrderedDict()
        self._lock = threading.Lock()

    def get(self, key: str) -> TransferableSkillsResult | None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is None:
                return None
            stored_at, value = entry
            if self._clock() - stored_at >= self.ttl_seconds:
                del self._entries[key]
                return None
            self._entries.move_to_end(key)
            return value

    def set(self, key: str, value: TransferableSkillsResult) -> None:
        with self._lock:
            self._entries[key] = (self._clock(), value)
            self._entries.move_to_end(key)
            while len(self._entries) > self.maxsize:
                self._entries.popitem(last=False)

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


def build_cache_key(
    current_skills: Sequence[ResumeSkill],
    target_skills: Sequence[OccupationSkill],
    current_role: str,
    target_role: str,
) -> str:
    current_names = sorted(skill.name.strip().lower() for skill in current_skills)
    target_names = sorted(skill.skill_name.strip().lower() for skill in target_skills)
    return "|".join(
        [
            current_role.strip().lower(),
            target_role.strip().lower(),
            ",".join(current_names),
            ",".join(target_names),
        ]
    )


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def _is_text(value: Any) -> bool:
    return isinstance(value, str) and bool(value.strip())


def validate_ai_response(payload: Any) -> TransferableSkillsResult:
    """Check and normalize an AI payload, dropping entries with missing fields.

    Raises MalformedUpstreamResponseError when there is no usable
    ``transferableSkills`` list, so the caller can fall back to the baseline.
    """

    if not isinstance(payload, dict):
        raise MalformedUpstreamResponseError("AI payload is not an object")
    raw_skills = payload.get("transferableSkills")
    if not isinstance(raw_skills, list):
        raise MalformedUpstreamResponseError("AI payload has no transferableSkills list")

    skills: list[TransferableSkill] = []
    for entry in raw_skills:
        if not isinstance(entry, dict):
            continue
        if not (
            _is_text(entry.get("skillName"))
            and _is_number(entry.get("currentLevel"))
            and _is_number(entry.get("applicabilityToTarget"))
            and _is_text(entry.get("transferRationale"))
            and _is_number(entry.get("confidence"))
        ):
            continue
        skills.append(
            TransferableSkill(
                skill_name=entry["skillName"].strip(),
                current_level=clamp(float(entry["currentLevel"]), 0.0, 100.0),
                applicability_to_target=clamp(float(entry["applicabilityToTarget"]), 0.0, 100.0),
                transfer_rationale=entry["transferRationale"].strip(),
                confidence=clamp(float(entry["confidence"]), 0.0, 1.0),
            )
        )
    if raw_skills and not skills:
        raise MalformedUpstreamResponseError("AI payload had no valid transferable skill entries")

    raw_patterns = payload.get("transferPatterns")
    patterns = [item.strip() for item in raw_patterns if _is_text(item)] if isinstance(raw_patterns, list) else []
    return TransferableSkillsResult(transferable_skills=skills, transfer_patterns=patterns, source="ai")


def detect_baseline(current_skills: Sequence[ResumeSkill], target_skills: Sequence[OccupationSkill]) -> list[TransferableSkill]:
    matches: list[TransferableSkill] = []
    for current in current_skills:
        for target in target_skills:
            score = similarity(current.name, target.skill_name)
            if score <= BASELINE_THRESHOLD:
                continue
            if score > DIRECT_MATCH_THRESHOLD:
                rationale = f"Direct match with target skill: {target.skill_name}"
            else:
                rationale = f"Similar to target skill: {target.skill_name}"
            matches.append(
                TransferableSkill(
                    skill_name=current.name,
                    current_level=normalize_level(current.level),
                    applicability_to_target=round_half_up(score * target.importance),
                    transfer_rationale=rationale,
                    confidence=clamp(score, 0.0, 1.0),
                )
            )
    matches.sort(key=lambda item: item.confidence, reverse=True)
    return matches


def baseline_result(current_skills: Sequence[ResumeSkill], target_skills: Sequence[OccupationSkill]) -> TransferableSkillsResult:
    skills = detect_baseline(current_skills, target_skills)
    return TransferableSkillsResult(
        transferable_skills=skills,
        transfer_patterns=["Direct skill overlap"] if skills else [],
        source="baseline",
    )


def explanation_strength(explanation: str | None) -> float:
    if not explanation or len(explanation) < 20:
        return 0.3
    lowered = explanation.lower()
    strong = sum(1 for word in STRONG_WORDS if word in lowered)
    weak = sum(1 for word in WEAK_WORDS if word in lowered)
    length_factor = min(len(explanation) / 200, 1.0)
    return clamp(0.5 + length_factor * 0.3 + strong * 0.1 - weak * 0.05, 0.0, 1.0)


def calculate_transfer_confidence(skill: ResumeSkill, explanation: str, target_skill: OccupationSkill) -> float:
    level_factor = normalize_level(skill.level) / 100
    importance_factor = target_skill.importance / 100
    direct_bonus = 0.2 if skill.name.strip().lower() == target_skill.skill_name.strip().lower() else 0.0
    confidence = level_factor * 0.3 + importance_factor * 0.3 + explanation_strength(explanation) * 0.2 + direct_bonus
    return clamp(confidence, 0.0, 1.0)


def fallback_explanation(skill_name: str, current_context: str, target_context: str) -> TransferExplanation:
    return TransferExplanation(
        explanation=(
            f"{skill_name} may transfer from {current_context} to {target_context} "
            "depending on how it was applied in your previous role."
        ),
        confidence=FALLBACK_EXPLANATION_CONFIDENCE,
    )


class TransferableSkillsMatcher:
    """Finds transferable skills with an AI backend, falling back to name similarity.

    ``ai_client`` needs async ``analyze_transfers`` and ``explain_transfer``
    methods returning decoded JSON objects. Without one, every call takes the
    baseline path.
    """

    def __init__(
        self,
        ai_client: Any = None,
        cache: MatcherCache | None = None,
        timeout_seconds: float = 30.0,
        model_name: str = "",
        monitor: Any = None,
    ) -> None:
        self.ai_client = ai_client
        self.cache = cache if cache is not None else MatcherCache()
        self.timeout_seconds = timeout_seconds
        self.model_name = model_name
        self.monitor = monitor

    @property
    def ai_enabled(self) -> bool:
        return self.ai_client is not None

    async def find_transferable_skills(
        self,
        current_skills: Sequence[ResumeSkill],
        target_skills: Sequence[OccupationSkill],
        current_role: str,
        target_role: str,
    ) -> TransferableSkillsResult:
        key = build_cache_key(current_skills, target_skills, current_role, target_role)
        cached = self.cache.get(key)
        if self.monitor is not None:
            self.monitor.record_cache_access("ai", hit=cached is not None)
        if cached is not None:
            logger.info("Transferable skills cache hit for %s -> %s", current_role, target_role)
            return cached

        result = await self._match_with_ai(current_skills, target_skills, current_role, target_role)
        if result is None:
            result = baseline_result(current_skills, target_skills)
        self.cache.set(key, result)
        return result

    async def _match_with_ai(
        self,
        current_skills: Sequence[ResumeSkill],
        target_skills: Sequence[OccupationSkill],
        current_role: str,
        target_role: str,
    ) -> TransferableSkillsResult | None:
        if self.ai_client is None:
            logger.info("AI backend not configured; using baseline skill matching")
            return None

        started = time.perf_counter()
        outcome = await call_with_deadline(
            lambda: self.ai_client.analyze_transfers(current_skills, target_skills, current_role, target_role),
            self.timeout_seconds,
        )
        self._record("ai_transferable_skills", started, outcome.ok, outcome.timed_out)
        if not outcome.ok:
            logger.warning("AI transferable skills call failed (%s); falling back to baseline", describe(outcome))
            return None
        try:
            return validate_ai_response(outcome.value)
        except MalformedUpstreamResponseError as exc:
            logger.warning("AI transferable skills response rejected (%s); falling back to baseline", exc)
            return None

    def detect_baseline(
        self, current_skills: Sequence[ResumeSkill], target_skills: Sequence[OccupationSkill]
    ) -> list[TransferableSkill]:
        return detect_baseline(current_skills, target_skills)

    def calculate_transfer_confidence(self, skill: ResumeSkill, explanation: str, target_skill: OccupationSkill) -> float:
        return calculate_transfer_confidence(skill, explanation, target_skill)

    async def explain_transfer(self, skill_name: str, current_context: str, target_context: str) -> TransferExplanation:
        if self.ai_client is None:
            return fallback_explanation(skill_name, current_context, target_context)

        started = time.perf_counter()
        outcome = await call_with_deadline(
            lambda: self.ai_client.explain_transfer(skill_name, current_context, target_context),
            self.timeout_seconds,
        )
        self._record("ai_explain_transfer", started, outcome.ok, outcome.timed_out)
        payload = outcome.value if outcome.ok else None
        if not isinstance(payload, dict) or not _is_text(payload.get("explanation")):
            logger.warning("Transfer explanation unavailable (%s); using template", describe(outcome))
            return fallback_explanation(skill_name, current_context, target_context)

        confidence = payload.get("confidence")
        return TransferExplanation(
            explanation=payload["explanation"].strip(),
            confidence=clamp(float(confidence), 0.0, 1.0) if _is_number(confidence) else FALLBACK_EXPLANATION_CONFIDENCE,
        )

    def _record(self, operation: str, started: float, success: bool, timed_out: bool) -> None:
        if self.monitor is None:
            return
        self.monitor.record(operation, (time.perf_counter() - started) * 1000, success=success, timed_out=timed_out)
