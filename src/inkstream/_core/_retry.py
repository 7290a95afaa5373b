"""Timeout and retry policy for non-streaming generation."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Awaitable, Callable

from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_result,
    stop_after_attempt,
    wait_incrementing,
)

from inkstream._core._errors import ErrorKind, is_retryable
from inkstream._core._logging import get_logger
from inkstream._core._models import GenerationResult

logger = get_logger(__name__)


@dataclass(frozen=True)
class RetryPolicy:
    """Bounded retry with linear backoff.

    Before attempt ``n + 1`` the caller waits ``backoff * n`` seconds. Each
    attempt is cut off after ``attempt_timeout`` seconds; ``overall_timeout``
    bounds all attempts together.
    """

    max_attempts: int = 3
    backoff: float = 1.0
    attempt_timeout: float | None = 300.0
    overall_timeout: float | None = None

    def __post_init__(self) -> None:
        if self.max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if self.backoff < 0:
            raise ValueError("backoff must be >= 0")


def should_retry(result: GenerationResult) -> bool:
    """Only transient failures are retried."""
    return not result.ok and is_retryable(result.error_kind, result.status)


def _log_retry(state: RetryCallState) -> None:
    result = state.outcome.result() if state.outcome else None
    logger.warning(
        "Retrying generation",
        attempt=state.attempt_number,
        error=result.error if result else None,
        error_kind=result.error_kind.value if result and result.error_kind else None,
        sleep=state.next_action.sleep if state.next_action else 0,
    )


def _last_result(state: RetryCallState) -> GenerationResult:
    # Attempts exhausted: surface the final failure as-is
    return state.outcome.result()  # type: ignore[union-attr]


async def run_with_retry(
    call: Callable[[], Awaitable[GenerationResult]],
    policy: RetryPolicy,
) -> GenerationResult:
    """Run ``call`` until it succeeds, fails permanently, or attempts run out."""
    attempts = 0

    async def attempt() -> GenerationResult:
        nonlocal attempts
        attempts += 1
        if policy.attempt_timeout is None:
            return await call()
        try:
            return await asyncio.wait_for(call(), timeout=policy.attempt_timeout)
        except asyncio.TimeoutError:
            return GenerationResult.failure(
                ErrorKind.UPSTREAM_TRANSPORT,
                f"Upstream call timed out after {policy.attempt_timeout:g}s",
            )

    retrying = AsyncRetrying(
        stop=stop_after_attempt(policy.max_attempts),
        wait=wait_incrementing(start=policy.backoff, increment=policy.backoff),
        retry=retry_if_result(should_retry),
        before_sleep=_log_retry,
        retry_error_callback=_last_result,
    )

    if policy.overall_timeout is None:
        result = await retrying(attempt)
    else:
        try:
            result = await asyncio.wait_for(retrying(attempt), timeout=policy.overall_timeout)
        except asyncio.TimeoutError:
            result = GenerationResult.failure(
                ErrorKind.UPSTREAM_TRANSPORT,
                f"Generation exceeded overall budget of {policy.overall_timeout:g}s",
            )

    result.attempts = attempts
    return result
