"""Tests for the RetryExecutor."""

import asyncio

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.models.llm import RetryConfig
from src.models.rate_limit import RateLimitDecision
from src.observability.collector import MetricsCollector
from src.utils.exceptions import (
    ErrorKind,
    InvalidRequestError,
    NetworkError,
    RateLimitExceededError,
    SecretMissingError,
    ServiceUnavailableError,
)
from src.utils.rate_limiter import RateLimiter
from src.utils.retry import RetryExecutor


class SleepRecorder:
    """Async sleep replacement that records requested delays."""

    def __init__(self):
        self.delays = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


@pytest.fixture
def metrics():
    return MetricsCollector()


@pytest.fixture
def sleep():
    return SleepRecorder()


@pytest.fixture
def retry_config():
    return RetryConfig(
        max_retries=3,
        base_delay_seconds=0.01,
        max_delay_seconds=0.1,
        jitter_seconds=0.0,
    )


@pytest.fixture
def executor(metrics, sleep, retry_config):
    return RetryExecutor(RateLimiter(metrics=metrics), metrics, retry_config, sleep=sleep)


class TestBackoff:
    """Delay calculation."""

    def test_base_delay_grows_and_caps(self):
        config = RetryConfig(
            base_delay_seconds=1.0, max_delay_seconds=30.0, backoff_multiplier=2.0
        )
        delays = [RetryExecutor.base_delay(config, n) for n in range(1, 9)]

        assert delays[:5] == [1.0, 2.0, 4.0, 8.0, 16.0]
        assert all(a <= b for a, b in zip(delays, delays[1:]))
        assert max(delays) == 30.0

    def test_jitter_is_bounded(self, metrics):
        config = RetryConfig(base_delay_seconds=1.0, jitter_seconds=0.5)
        executor = RetryExecutor(RateLimiter(), metrics, config)

        for _ in range(50):
            delay = executor.calculate_delay(2)
            assert 2.0 <= delay <= 2.5


class TestExecuteWithRetry:
    """Retry loop behaviour."""

    @pytest.mark.asyncio
    async def test_success_first_attempt(self, executor, metrics, sleep):
        operation = AsyncMock(return_value="ok")

        result = await executor.execute_with_retry("claude", operation)

        assert result == "ok"
        assert operation.call_count == 1
        assert sleep.delays == []
        stats = metrics.get_metrics("claude")
        assert stats.successful_requests == 1
        assert stats.average_retry_attempts == 1

    @pytest.mark.asyncio
    async def test_two_service_unavailable_then_success(self, executor, metrics, sleep):
        """503, 503, then success: three invocations, one success metric."""
        operation = AsyncMock(
            side_effect=[
                ServiceUnavailableError("503", status_code=503),
                ServiceUnavailableError("503", status_code=503),
                "report",
            ]
        )

        result = await executor.execute_with_retry("openai", operation)

        assert result == "report"
        assert operation.call_count == 3
        assert sleep.delays == [0.01, 0.02]
        stats = metrics.get_metrics("openai")
        assert stats.successful_requests == 1
        assert stats.failed_requests == 0
        assert stats.average_retry_attempts == 3

    @pytest.mark.asyncio
    async def test_always_failing_runs_max_retries_plus_one(
        self, executor, metrics, sleep
    ):
        operation = AsyncMock(side_effect=NetworkError("connection reset"))

        with pytest.raises(NetworkError, match="connection reset"):
            await executor.execute_with_retry("grok", operation)

        assert operation.call_count == 4
        assert len(sleep.delays) == 3
        stats = metrics.get_metrics("grok")
        assert stats.failed_requests == 1
        assert stats.successful_requests == 0

    @pytest.mark.asyncio
    async def test_zero_retries_means_single_attempt(self, metrics, sleep):
        executor = RetryExecutor(
            RateLimiter(), metrics, RetryConfig(max_retries=0), sleep=sleep
        )
        operation = AsyncMock(side_effect=NetworkError("down"))

        with pytest.raises(NetworkError):
            await executor.execute_with_retry("claude", operation)

        assert operation.call_count == 1

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error",
        [InvalidRequestError("bad request", status_code=400), SecretMissingError("no key")],
    )
    async def test_non_retryable_raises_immediately(self, executor, metrics, error):
        operation = AsyncMock(side_effect=error)

        with pytest.raises(type(error)):
            await executor.execute_with_retry("claude", operation)

        assert operation.call_count == 1
        assert metrics.get_metrics("claude").failed_requests == 1

    @pytest.mark.asyncio
    async def test_unknown_errors_are_not_retried(self, executor):
        operation = AsyncMock(side_effect=ValueError("boom"))

        with pytest.raises(ValueError, match="boom"):
            await executor.execute_with_retry("claude", operation)

        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_per_call_config_override(self, executor, sleep):
        operation = AsyncMock(side_effect=NetworkError("down"))
        override = RetryConfig(max_retries=1, base_delay_seconds=0.5, jitter_seconds=0.0)

        with pytest.raises(NetworkError):
            await executor.execute_with_retry("claude", operation, override)

        assert operation.call_count == 2
        assert sleep.delays == [0.5]

    @pytest.mark.asyncio
    async def test_attempt_timeout_is_retried(self, metrics, sleep):
        config = RetryConfig(
            max_retries=1, base_delay_seconds=0.01, attempt_timeout_seconds=0.01
        )
        executor = RetryExecutor(RateLimiter(), metrics, config, sleep=sleep)
        calls = 0

        async def slow_then_fast():
            nonlocal calls
            calls += 1
            if calls == 1:
                await asyncio.sleep(1)
            return "done"

        assert await executor.execute_with_retry("claude", slow_then_fast) == "done"
        assert calls == 2


class TestRateLimitInteraction:
    """Rate limiter consulted before each attempt."""

    @pytest.mark.asyncio
    async def test_waits_when_blocked_then_proceeds(self, metrics, sleep, retry_config):
        limiter = MagicMock(spec=RateLimiter)
        limiter.check_rate_limit.side_effect = [
            RateLimitDecision(allowed=False, retry_after_seconds=2.5),
            RateLimitDecision(allowed=True, remaining_requests=5),
        ]
        executor = RetryExecutor(limiter, metrics, retry_config, sleep=sleep)
        operation = AsyncMock(return_value="ok")

        assert await executor.execute_with_retry("claude", operation) == "ok"
        assert sleep.delays == [2.5]
        assert operation.call_count == 1

    @pytest.mark.asyncio
    async def test_raises_when_blocked_on_every_attempt(self, metrics, sleep, retry_config):
        limiter = MagicMock(spec=RateLimiter)
        limiter.check_rate_limit.return_value = RateLimitDecision(
            allowed=False, retry_after_seconds=1.0
        )
        executor = RetryExecutor(limiter, metrics, retry_config, sleep=sleep)
        operation = AsyncMock(return_value="never")

        with pytest.raises(RateLimitExceededError) as exc_info:
            await executor.execute_with_retry("claude", operation)

        assert exc_info.value.kind == ErrorKind.RATE_LIMIT_EXCEEDED
        assert operation.call_count == 0
        assert limiter.check_rate_limit.call_count == 4
        assert sleep.delays == [1.0, 1.0, 1.0]
        assert metrics.get_metrics("claude").failed_requests == 1

    @pytest.mark.asyncio
    async def test_rate_limit_wait_is_capped(self, metrics, sleep, retry_config):
        limiter = MagicMock(spec=RateLimiter)
        limiter.check_rate_limit.side_effect = [
            RateLimitDecision(allowed=False, retry_after_seconds=120.0),
            RateLimitDecision(allowed=True),
        ]
        executor = RetryExecutor(
            limiter, metrics, retry_config, sleep=sleep, max_rate_limit_wait_seconds=5.0
        )

        await executor.execute_with_retry("claude", AsyncMock(return_value="ok"))

        assert sleep.delays == [5.0]


class TestWithRateLimit:
    """Decorator-style wrapper."""

    @pytest.mark.asyncio
    async def test_wraps_coroutine_function(self, executor):
        async def fetch(x, y=1):
            return x + y

        wrapped = executor.with_rate_limit("claude", fetch)

        assert await wrapped(2, y=3) == 5
