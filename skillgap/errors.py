from __future__ import annotations


class SkillGapError(RuntimeError):
    pass


class UpstreamTimeoutError(SkillGapError):
    """An AI or partner call exceeded its time bound."""


class UpstreamUnavailableError(SkillGapError):
    """Network failure or non-success status from an AI or partner service."""

    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class MalformedUpstreamResponseError(SkillGapError):
    """An upstream response did not have the expected shape."""


class NotFoundError(SkillGapError):
    """A resume, analysis or occupation the request refers to does not exist."""


class InvalidAnalysisRequestError(SkillGapError):
    """The request is well-formed but cannot be analysed as given."""


# User-facing warnings attached to degraded-but-valid results.
WARNINGS: dict[str, dict[str, str]] = {
    "AI_BASELINE_FALLBACK": {
        "title": "Using baseline skill matching",
        "message": "Advanced AI analysis was unavailable, so we used rule-based skill matching instead.",
        "action": "Your analysis is still accurate, but may not include advanced skill transfer insights.",
    },
    "OCCUPATION_STALE_CACHE": {
        "title": "Using cached occupation data",
        "message": "We're using previously cached occupation data because the occupation service is temporarily unavailable.",
        "action": "Your analysis will continue with available information.",
    },
    "COURSES_UNAVAILABLE": {
        "title": "Course recommendations unavailable",
        "message": "We couldn't fetch course recommendations from our partners at this time.",
        "action": "You can search for courses manually or try again later.",
    },
}


def warning(key: str) -> dict[str, str]:
    return dict(WARNINGS[key])
