# analysis_cache.py
from __future__ import annotations

import asyncio
import hashlib
import logging
import re
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Hashable, Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from skillgap.models.skill_gap_analysis import SkillGapAnalysis


logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_content(text: str | None) -> str:
    return _WHITESPACE.sub(" ", text or "").strip().lower()


def _skill_key(skill) -> str:
    if isinstance(skill, dict):
        name, level = skill.get("name") or skill.get("skill_name") or "", skill.get("level", "")
    else:
        name, level = getattr(skill, "name", None) or getattr(skill, "skill_name", ""), getattr(skill, "level", "")
    return f"{normalize_content(name)}:{normalize_content(str(level))}"


def generate_content_hash(
    title: str,
    content: str,
    file_path: str | None = None,
    skills: Iterable | None = None,
    current_role: str | None = None,
) -> str:
    """SHA-256 hex digest identifying a resume's analysable content.

    Whitespace and case changes in the body do not change the hash; title,
    file path, skill list and current role changes do. Skill order is ignored.
    """

    payload = f"title:{title}|content:{normalize_content(content)}"
    if file_path:
        payload += f"|filePath:{file_path}"
    if skills:
        payload += "|skills:" + ",".join(sorted(_skill_key(skill) for skill in skills))
    if current_role:
        payload += f"|currentRole:{normalize_content(current_role)}"
    return hashlib.sha256(payload.encode("utf-8")).hexdigest()


def content_hash_from_text(text: str) -> str:
    return hashlib.sha256(normalize_content(text).encode("utf-8")).hexdigest()


def analysis_fingerprint(
    resume_hash: str,
    current_skills: Iterable | None = None,
    current_role: str | None = None,
    target_skills: Iterable | None = None,
) -> str:
    """Cache key for one analysis request.

    Without request overrides this is the resume hash itself; overrides are
    folded in so a request with different inputs never reuses another's result.
    """

    parts = []
    if current_skills is not None:
        parts.append("skills:" + ",".join(sorted(_skill_key(skill) for skill in current_skills)))
    if current_role:
        parts.append(f"currentRole:{current_role}")
    if target_skills:
        parts.append(
            "targetSkills:"
            + ",".join(
                sorted(f"{_skill_key(skill)}:{getattr(skill, 'importance', '')}" for skill in target_skills)
            )
        )
    if not parts:
        return resume_hash
    return content_hash_from_text(f"resume:{resume_hash}|" + "|".join(parts))


@dataclass(frozen=True)
class CacheDecision:
    analysis: SkillGapAnalysis | None = None

    @property
    def reuse(self) -> bool:
        return self.analysis is not None

    @property
    def compute(self) -> bool:
        return self.analysis is None


def find_matching_analysis(db: Session, resume_id: int, target_role: str, content_hash: str) -> SkillGapAnalysis | None:
    return (
        db.query(SkillGapAnalysis)
        .filter(
            SkillGapAnalysis.resume_id == resume_id,
            SkillGapAnalysis.target_role == target_role,
            SkillGapAnalysis.content_hash == content_hash,
        )
        .order_by(SkillGapAnalysis.created_at.desc())
        .first()
    )


def resolve(db: Session, resume_id: int, target_role: str, content_hash: str) -> CacheDecision:
    existing = find_matching_analysis(db, resume_id, target_role, content_hash)
    if existing is not None:
        logger.info("Analysis cache hit resume_id=%s target_role=%s analysis_id=%s", resume_id, target_role, existing.id)
        return CacheDecision(analysis=existing)
    logger.info("Analysis cache miss resume_id=%s target_role=%s", resume_id, target_role)
    return CacheDecision()


def insert_if_absent(db: Session, record: SkillGapAnalysis) -> tuple[SkillGapAnalysis, bool]:
    """Persist ``record`` unless another writer stored the same fingerprint first.

    Returns the canonical record and whether it was created by this call.
    """

    db.add(record)
    try:
        db.commit()
    except IntegrityError:
        db.rollback()
        existing = find_matching_analysis(db, record.resume_id, record.target_role, record.content_hash)
        if existing is None:
            raise
        logger.info("Concurrent analysis for resume_id=%s already stored as %s", record.resume_id, existing.id)
        return existing, False
    db.refresh(record)
    return record, True


class KeyedLocks:
    """One asyncio lock per key, dropped once nobody holds or waits on it."""

    def __init__(self) -> None:
        self._locks: dict[Hashable, asyncio.Lock] = {}
        self._users: dict[Hashable, int] = {}

    @asynccontextmanager
    async def hold(self, key: Hashable) -> AsyncIterator[None]:
        lock = self._locks.setdefault(key, asyncio.Lock())
        self._users[key] = self._users.get(key, 0) + 1
        try:
            async with lock:
                yield
        finally:
            self._users[key] -= 1
            if self._users[key] == 0:
                del self._users[key]
                del self._locks[key]

    def __len__(self) -> int:
        return len(self._locks)
