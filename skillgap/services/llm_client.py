# llm_client.py
from __future__ import annotations

import json
import logging
from typing import Any, Sequence

import openai
from openai import AsyncOpenAI

from skillgap.errors import MalformedUpstreamResponseError, UpstreamTimeoutError, UpstreamUnavailableError
from skillgap.schemas.analysis import ResumeSkill
from skillgap.schemas.occupation import OccupationSkill


logger = logging.getLogger(__name__)


SYSTEM_PROMPT = "You are a career transition expert. Always answer with a single JSON object."


def build_transfer_prompt(
    current_skills: Sequence[ResumeSkill],
    target_skills: Sequence[OccupationSkill],
    current_role: str,
    target_role: str,
) -> str:
    current_lines = "\n".join(f"- {skill.name} ({skill.level})" for skill in current_skills)
    target_lines = "\n".join(
        f"- {skill.skill_name} (importance {skill.importance:g}/100, level {skill.level:g}/7)" for skill in target_skills
    )
    return f"""Identify which of the person's current skills transfer to the target role.

Current role: {current_role}
Current skills:
{current_lines}

Target role: {target_role}
Target role requirements:
{target_lines}

Consider direct overlap, adjacent skills, meta-skills such as leadership, and domain knowledge.
Only include skills with confidence of at least 0.4.

Respond with JSON shaped exactly like:
{{
  "transferableSkills": [
    {{
      "skillName": "string",
      "currentLevel": 0-100,
      "applicabilityToTarget": 0-100,
      "transferRationale": "string",
      "confidence": 0-1
    }}
  ],
  "transferPatterns": ["string"]
}}"""


def build_explanation_prompt(skill_name: str, current_context: str, target_context: str) -> str:
    return f"""Explain how the skill "{skill_name}" carries over from {current_context} to {target_context}.

Cover how it was likely used before, how it applies in the new context, and what still has to be learned.

Respond with JSON: {{"explanation": "string", "confidence": 0-1}}"""


class OpenAITransferClient:
    """Thin async wrapper over the OpenAI chat API returning parsed JSON payloads.

    SDK retries are disabled; the caller owns the deadline and the fallback.
    """

    def __init__(self, api_key: str, model: str, client: AsyncOpenAI | None = None) -> None:
        self.model = model
        self._client = client or AsyncOpenAI(api_key=api_key, max_retries=0)

    async def analyze_transfers(
        self,
        current_skills: Sequence[ResumeSkill],
        target_skills: Sequence[OccupationSkill],
        current_role: str,
        target_role: str,
    ) -> dict[str, Any]:
        prompt = build_transfer_prompt(current_skills, target_skills, current_role, target_role)
        return await self._complete_json(prompt)

    async def explain_transfer(self, skill_name: str, current_context: str, target_context: str) -> dict[str, Any]:
        prompt = build_explanation_prompt(skill_name, current_context, target_context)
        return await self._complete_json(prompt)

    async def _complete_json(self, prompt: str) -> dict[str, Any]:
        try:
            response = await self._client.chat.completions.create(
                model=self.model,
                messages=[
                    {"role": "system", "content": SYSTEM_PROMPT},
                    {"role": "user", "content": prompt},
                ],
                response_format={"type": "json_object"},
                temperature=0.2,
            )
        except openai.APITimeoutError as exc:
            raise UpstreamTimeoutError("AI request timed out") from exc
        except openai.APIStatusError as exc:
            raise UpstreamUnavailableError(f"AI request failed with status {exc.status_code}", exc.status_code) from exc
        except openai.APIConnectionError as exc:
            raise UpstreamUnavailableError(f"AI backend unreachable: {exc}") from exc

        content = (response.choices[0].message.content or "").strip() if response.choices else ""
        if not content:
            raise MalformedUpstreamResponseError("AI returned an empty response")
        try:
            payload = json.loads(content)
        except json.JSONDecodeError as exc:
            logger.warning("AI returned non-JSON content (%s chars)", len(content))
            raise MalformedUpstreamResponseError("AI returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise MalformedUpstreamResponseError("AI returned a non-object JSON payload")
        return payload
