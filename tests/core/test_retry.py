"""Tests for the retry policy."""

import asyncio
from unittest.mock import patch

import pytest

from inkstream._core._errors import ErrorKind
from inkstream._core._models import GenerationResult
from inkstream._core._retry import RetryPolicy, run_with_retry, should_retry

FAST = RetryPolicy(max_attempts=3, backoff=0)


def _scripted(*results):
    calls = []

    async def call():
        calls.append(1)
        return results[min(len(calls), len(results)) - 1]

    return call, calls


def _http_failure(status, message="server busy"):
    return GenerationResult.failure(ErrorKind.UPSTREAM_HTTP, message, status=status)


def test_policy_validation():
    with pytest.raises(ValueError):
        RetryPolicy(max_attempts=0)
    with pytest.raises(ValueError):
        RetryPolicy(backoff=-1)


def test_should_retry():
    assert should_retry(_http_failure(500))
    assert should_retry(_http_failure(429))
    assert not should_retry(_http_failure(401))
    assert should_retry(GenerationResult.failure(ErrorKind.EMPTY_COMPLETION, "empty"))
    assert not should_retry(GenerationResult.failure(ErrorKind.MISSING_CREDENTIAL, "no key"))
    assert not should_retry(GenerationResult.success("ok"))


@pytest.mark.asyncio
async def test_success_first_attempt():
    call, calls = _scripted(GenerationResult.success("ok"))
    result = await run_with_retry(call, FAST)
    assert result.content == "ok"
    assert result.attempts == 1
    assert len(calls) == 1


@pytest.mark.asyncio
async def test_retries_until_success():
    call, calls = _scripted(_http_failure(503), _http_failure(503), GenerationResult.success("ok"))
    result = await run_with_retry(call, FAST)
    assert result.ok
    assert result.attempts == 3


@pytest.mark.asyncio
async def test_exhausted_attempts_return_last_failure():
    call, calls = _scripted(_http_failure(500, "first"), _http_failure(500, "server busy"))
    result = await run_with_retry(call, FAST)

    assert len(calls) == 3
    assert result.content is None
    assert result.error == "server busy"
    assert result.attempts == 3


@pytest.mark.asyncio
async def test_permanent_failure_not_retried():
    call, calls = _scripted(_http_failure(400, "bad request"))
    result = await run_with_retry(call, FAST)
    assert len(calls) == 1
    assert result.error == "bad request"


@pytest.mark.asyncio
async def test_attempt_timeout_is_transport_failure():
    async def slow():
        await asyncio.sleep(1)
        return GenerationResult.success("late")

    policy = RetryPolicy(max_attempts=2, backoff=0, attempt_timeout=0.01)
    result = await run_with_retry(slow, policy)

    assert result.error_kind is ErrorKind.UPSTREAM_TRANSPORT
    assert "timed out" in result.error
    assert result.attempts == 2


@pytest.mark.asyncio
async def test_overall_timeout():
    async def slow():
        await asyncio.sleep(1)
        return GenerationResult.success("late")

    policy = RetryPolicy(max_attempts=5, backoff=0, attempt_timeout=None, overall_timeout=0.01)
    result = await run_with_retry(slow, policy)

    assert result.error_kind is ErrorKind.UPSTREAM_TRANSPORT
    assert "overall budget" in result.error


@pytest.mark.asyncio
async def test_linear_backoff():
    call, _ = _scripted(_http_failure(500))

    with patch("inkstream._core._retry.logger") as mock_logger:
        await run_with_retry(call, RetryPolicy(max_attempts=3, backoff=0.01))

    sleeps = [c.kwargs["sleep"] for c in mock_logger.warning.call_args_list]
    assert sleeps == pytest.approx([0.01, 0.02])
