from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Generic, TypeVar


T = TypeVar("T")


@dataclass(frozen=True)
class DeadlineResult(Generic[T]):
    status: str  # "ok" | "timed_out" | "error"
    value: T | None = None
    error: BaseException | None = None

    @property
    def ok(self) -> bool:
        return self.status == "ok"

    @property
    def timed_out(self) -> bool:
        return self.status == "timed_out"


async def call_with_deadline(operation: Callable[[], Awaitable[T]], timeout: float) -> DeadlineResult[T]:
    """Run ``operation`` with a time bound and report the outcome as a tagged result.

    On timeout the pending coroutine is cancelled, so the underlying network call
    does not outlive the deadline. Errors raised by the operation are captured
    rather than propagated; cancellation of the caller still propagates.
    """

    try:
        value = await asyncio.wait_for(operation(), timeout=timeout)
    except asyncio.TimeoutError:
        return DeadlineResult(status="timed_out")
    except asyncio.CancelledError:
        raise
    except Exception as exc:
        return DeadlineResult(status="error", error=exc)
    return DeadlineResult(status="ok", value=value)


def describe(result: DeadlineResult[Any]) -> str:
    if result.ok:
        return "ok"
    if result.timed_out:
        return "timeout"
    return f"error: {result.error}"
