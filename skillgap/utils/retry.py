from __future__ import annotations

import logging
import time
from typing import Callable, TypeVar

import requests

from skillgap.errors import MalformedUpstreamResponseError, UpstreamTimeoutError, UpstreamUnavailableError


logger = logging.getLogger(__name__)

T = TypeVar("T")


def is_retryable_error(exc: BaseException) -> bool:
    # Timeouts and transport failures are transient.
    if isinstance(exc, (UpstreamTimeoutError, TimeoutError, requests.Timeout, requests.ConnectionError)):
        return True
    if isinstance(exc, MalformedUpstreamResponseError):
        return False
    if isinstance(exc, UpstreamUnavailableError):
        status = exc.status_code
        if status is None:
            return True
        return status == 429 or 500 <= status < 600
    if isinstance(exc, requests.HTTPError) and exc.response is not None:
        status = exc.response.status_code
        return status == 429 or 500 <= status < 600
    return False


def retry_with_backoff(
    operation: Callable[[], T],
    *,
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    multiplier: float = 2.0,
    should_retry: Callable[[BaseException], bool] = is_retryable_error,
    sleep: Callable[[float], None] = time.sleep,
) -> T:
    delay = initial_delay
    attempt = 1
    while True:
        try:
            return operation()
        except Exception as exc:
            if attempt >= max_attempts or not should_retry(exc):
                raise
            logger.warning("Attempt %s/%s failed (%s), retrying in %.2fs", attempt, max_attempts, exc, delay)
            sleep(delay)
            delay = min(delay * multiplier, max_delay)
            attempt += 1
