"""Retry executor with rate limiting, exponential backoff and jitter.

Wraps an arbitrary coroutine with bounded retries:
- The rate limiter is consulted before every attempt
- Each attempt is bounded by a per-attempt timeout
- Failures are classified structurally into an ErrorKind
- Retryable kinds back off: min(base * multiplier^(n-1), max) + U(0, jitter)
- Exactly one terminal success/failure metric is recorded per call
"""

import asyncio
import random
import time
from dataclasses import dataclass
from typing import Awaitable, Callable, List, Optional, TypeVar

import structlog

from src.models.llm import RetryConfig
from src.observability.collector import MetricsCollector
from src.utils.exceptions import ErrorKind, RateLimitExceededError, classify_error
from src.utils.rate_limiter import RateLimiter

logger = structlog.get_logger(__name__)


T = TypeVar("T")

# Used when the rate limiter blocks without telling us for how long
DEFAULT_RATE_LIMIT_WAIT_SECONDS = 60.0


@dataclass
class RetryAttempt:
    """One attempt within a single execute_with_retry call."""

    attempt: int
    delay_seconds: float
    error: Optional[ErrorKind] = None
    timestamp: float = 0.0


class RetryExecutor:
    """Async retry executor consulting the rate limiter before each attempt."""

    def __init__(
        self,
        rate_limiter: RateLimiter,
        metrics: MetricsCollector,
        config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        max_rate_limit_wait_seconds: Optional[float] = None,
    ) -> None:
        """Initialize retry executor.

        Args:
            rate_limiter: Limiter consulted before every attempt
            metrics: Collector receiving one terminal outcome per call
            config: Default retry configuration
            sleep: Awaitable sleep (injectable for tests)
            max_rate_limit_wait_seconds: Optional cap on a single rate-limit wait
        """
        self.rate_limiter = rate_limiter
        self.metrics = metrics
        self.config = config or RetryConfig()
        self._sleep = sleep
        self.max_rate_limit_wait_seconds = max_rate_limit_wait_seconds

    @staticmethod
    def base_delay(config: RetryConfig, attempt: int) -> float:
        """Backoff before jitter for a 1-indexed attempt; capped at max delay."""
        delay = config.base_delay_seconds * (config.backoff_multiplier ** (attempt - 1))
        return min(delay, config.max_delay_seconds)

    def calculate_delay(self, attempt: int, config: Optional[RetryConfig] = None) -> float:
        """Backoff delay including jitter for a 1-indexed attempt."""
        cfg = config or self.config
        return self.base_delay(cfg, attempt) + random.uniform(0, cfg.jitter_seconds)

    def _rate_limit_wait(self, retry_after: Optional[float]) -> float:
        wait = retry_after if retry_after else DEFAULT_RATE_LIMIT_WAIT_SECONDS
        if self.max_rate_limit_wait_seconds is not None:
            wait = min(wait, self.max_rate_limit_wait_seconds)
        return wait

    async def _run_attempt(
        self, operation: Callable[[], Awaitable[T]], config: RetryConfig
    ) -> T:
        if config.attempt_timeout_seconds is None:
            return await operation()
        return await asyncio.wait_for(
            operation(), timeout=config.attempt_timeout_seconds
        )

    async def execute_with_retry(
        self,
        provider: str,
        operation: Callable[[], Awaitable[T]],
        config: Optional[RetryConfig] = None,
    ) -> T:
        """Execute ``operation`` with rate limiting and retry logic.

        Args:
            provider: Provider name used for rate limiting and metrics
            operation: Zero-argument coroutine function to execute
            config: Optional per-call override of the retry configuration

        Returns:
            Result of the first successful attempt

        Raises:
            RateLimitExceededError: If the local limiter blocked the last attempt
            Exception: The original error of the last failed attempt
        """
        cfg = config or self.config
        max_attempts = cfg.max_retries + 1
        attempts: List[RetryAttempt] = []
        last_error: Optional[BaseException] = None
        call_started = time.monotonic()

        for attempt in range(1, max_attempts + 1):
            decision = self.rate_limiter.check_rate_limit(provider)
            if not decision.allowed:
                wait = self._rate_limit_wait(decision.retry_after_seconds)
                attempts.append(
                    RetryAttempt(
                        attempt=attempt,
                        delay_seconds=wait,
                        error=ErrorKind.RATE_LIMIT_EXCEEDED,
                        timestamp=time.time(),
                    )
                )
                if attempt < max_attempts:
                    logger.warning(
                        "rate_limit_wait",
                        provider=provider,
                        attempt=attempt,
                        max_retries=cfg.max_retries,
                        wait_seconds=round(wait, 3),
                    )
                    await self._sleep(wait)
                    continue

                last_error = RateLimitExceededError(
                    f"Rate limit exceeded for {provider} after "
                    f"{cfg.max_retries} retries",
                    retry_after=decision.retry_after_seconds,
                    provider=provider,
                )
                break

            attempt_started = time.monotonic()
            try:
                result = await self._run_attempt(operation, cfg)
            except Exception as e:
                last_error = e
                kind = classify_error(e)
                attempts.append(
                    RetryAttempt(
                        attempt=attempt,
                        delay_seconds=0.0,
                        error=kind,
                        timestamp=time.time(),
                    )
                )

                if not cfg.is_retryable(kind) or attempt >= max_attempts:
                    elapsed_ms = (time.monotonic() - call_started) * 1000
                    self.metrics.record_failure(provider, elapsed_ms, attempt)
                    logger.error(
                        "retry_exhausted" if cfg.is_retryable(kind) else "retry_aborted",
                        provider=provider,
                        attempts=attempt,
                        error_kind=kind.value,
                        error_message=str(e),
                    )
                    raise

                delay = self.calculate_delay(attempt, cfg)
                attempts[-1].delay_seconds = delay
                logger.warning(
                    "retry_attempt",
                    provider=provider,
                    attempt=attempt,
                    max_attempts=max_attempts,
                    error_kind=kind.value,
                    error_message=str(e),
                    delay_seconds=round(delay, 3),
                )
                await self._sleep(delay)
                continue

            latency_ms = (time.monotonic() - attempt_started) * 1000
            self.metrics.record_success(provider, latency_ms, attempt)
            if attempt > 1:
                logger.info(
                    "retry_succeeded",
                    provider=provider,
                    attempts=attempt,
                    history=[a.error.value for a in attempts if a.error],
                )
            return result

        elapsed_ms = (time.monotonic() - call_started) * 1000
        self.metrics.record_failure(provider, elapsed_ms, len(attempts))
        if last_error is not None:
            raise last_error
        raise RuntimeError(  # pragma: no cover
            "Retry loop completed without result or exception"
        )

    def with_rate_limit(
        self,
        provider: str,
        func: Callable[..., Awaitable[T]],
        config: Optional[RetryConfig] = None,
    ) -> Callable[..., Awaitable[T]]:
        """Wrap a coroutine function so every call goes through the executor."""

        async def wrapper(*args, **kwargs) -> T:
            return await self.execute_with_retry(
                provider, lambda: func(*args, **kwargs), config
            )

        return wrapper
