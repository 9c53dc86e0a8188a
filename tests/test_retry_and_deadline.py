from __future__ import annotations

import asyncio

import pytest
import requests

from skillgap.errors import (
    WARNINGS,
    InvalidAnalysisRequestError,
    MalformedUpstreamResponseError,
    NotFoundError,
    SkillGapError,
    UpstreamTimeoutError,
    UpstreamUnavailableError,
    warning,
)
from skillgap.utils.deadline import call_with_deadline, describe
from skillgap.utils.retry import is_retryable_error, retry_with_backoff


@pytest.mark.parametrize(
    ("error", "retryable"),
    [
        (UpstreamTimeoutError("slow"), True),
        (requests.ConnectionError("reset"), True),
        (UpstreamUnavailableError("throttled", status_code=429), True),
        (UpstreamUnavailableError("server", status_code=503), True),
        (UpstreamUnavailableError("network"), True),
        (UpstreamUnavailableError("bad key", status_code=401), False),
        (MalformedUpstreamResponseError("junk"), False),
        (ValueError("bug"), False),
    ],
)
def test_is_retryable_error(error: Exception, retryable: bool) -> None:
    assert is_retryable_error(error) is retryable


def test_retry_succeeds_after_transient_failures() -> None:
    attempts = []
    delays: list[float] = []

    def flaky() -> str:
        attempts.append(1)
        if len(attempts) < 3:
            raise UpstreamTimeoutError("slow")
        return "ok"

    assert retry_with_backoff(flaky, max_attempts=3, initial_delay=0.5, sleep=delays.append) == "ok"
    assert delays == [0.5, 1.0]


def test_retry_caps_delay_and_gives_up() -> None:
    delays: list[float] = []

    def always_down() -> None:
        raise UpstreamUnavailableError("down", status_code=500)

    with pytest.raises(UpstreamUnavailableError):
        retry_with_backoff(always_down, max_attempts=4, initial_delay=4, max_delay=6, sleep=delays.append)
    assert delays == [4, 6, 6]


def test_retry_raises_permanent_errors_immediately() -> None:
    calls = []

    def broken() -> None:
        calls.append(1)
        raise MalformedUpstreamResponseError("junk")

    with pytest.raises(MalformedUpstreamResponseError):
        retry_with_backoff(broken, sleep=lambda _: None)
    assert len(calls) == 1


def test_call_with_deadline_outcomes() -> None:
    async def fast() -> int:
        return 42

    async def slow() -> int:
        await asyncio.sleep(1)
        return 0

    async def failing() -> int:
        raise UpstreamUnavailableError("nope")

    ok = asyncio.run(call_with_deadline(fast, 1))
    assert ok.ok and ok.value == 42
    assert describe(ok) == "ok"

    timed_out = asyncio.run(call_with_deadline(slow, 0.01))
    assert timed_out.timed_out and timed_out.value is None
    assert describe(timed_out) == "timeout"

    error = asyncio.run(call_with_deadline(failing, 1))
    assert error.status == "error"
    assert isinstance(error.error, UpstreamUnavailableError)
    assert describe(error) == "error: nope"


def test_domain_errors_share_a_base_and_warnings_are_copies() -> None:
    for error in (
        UpstreamTimeoutError,
        UpstreamUnavailableError,
        MalformedUpstreamResponseError,
        NotFoundError,
        InvalidAnalysisRequestError,
    ):
        assert issubclass(error, SkillGapError)

    copy = warning("COURSES_UNAVAILABLE")
    copy["title"] = "changed"
    assert WARNINGS["COURSES_UNAVAILABLE"]["title"] == "Course recommendations unavailable"
