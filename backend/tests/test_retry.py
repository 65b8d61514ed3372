"""
Unit tests for the retry policy.
"""
import pytest
from unittest.mock import AsyncMock, patch

from collab.retry import exponential_backoff, with_retry


class Transient(Exception):
    pass


def is_transient(exc):
    return isinstance(exc, Transient)


def flaky(failures: int, result="done", exc_type=Transient):
    """Operation that fails `failures` times before returning `result`"""
    calls = {"count": 0}

    async def operation():
        calls["count"] += 1
        if calls["count"] <= failures:
            raise exc_type(f"failure {calls['count']}")
        return result

    return operation, calls


def test_exponential_backoff_doubles():
    backoff = exponential_backoff(0.1)
    assert [backoff(n) for n in range(3)] == pytest.approx([0.1, 0.2, 0.4])


@pytest.mark.asyncio
async def test_returns_first_success():
    operation, calls = flaky(0)
    assert await with_retry(operation, is_transient) == "done"
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_retries_retryable_failures_with_backoff():
    operation, calls = flaky(2)
    with patch("collab.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        result = await with_retry(operation, is_transient, max_attempts=3,
                                  backoff=exponential_backoff(0.1))

    assert result == "done"
    assert calls["count"] == 3
    delays = [call.args[0] for call in mock_sleep.call_args_list]
    assert delays == pytest.approx([0.1, 0.2])


@pytest.mark.asyncio
async def test_non_retryable_failure_propagates_immediately():
    operation, calls = flaky(1, exc_type=KeyError)
    with pytest.raises(KeyError):
        await with_retry(operation, is_transient, max_attempts=3, backoff=lambda n: 0)
    assert calls["count"] == 1


@pytest.mark.asyncio
async def test_exhausted_attempts_reraise_last_failure():
    operation, calls = flaky(10)
    with patch("collab.retry.asyncio.sleep", new=AsyncMock()) as mock_sleep:
        with pytest.raises(Transient, match="failure 3"):
            await with_retry(operation, is_transient, max_attempts=3)

    assert calls["count"] == 3
    # No sleep after the final attempt
    assert mock_sleep.call_count == 2


@pytest.mark.asyncio
async def test_rejects_zero_attempts():
    operation, _ = flaky(0)
    with pytest.raises(ValueError):
        await with_retry(operation, is_transient, max_attempts=0)
