"""Per-provider request metrics.

Tracks, for every provider, how many calls succeeded, failed or were turned
away by the local rate limiter, together with running averages of response
time and attempts per call. Every event is mirrored into the Prometheus
metrics of this package.

Terminal outcomes (success/failure) come from the retry executor, one per
call. Rate-limited events come from the rate limiter and are counted
separately, so ``total_requests`` is not the sum of terminal outcomes.
"""

import threading
import time
from dataclasses import dataclass, replace
from typing import Dict, Optional

import structlog

from src.observability.metrics import (
    PROVIDER_REQUESTS_TOTAL,
    PROVIDER_REQUEST_DURATION,
    RATE_LIMITED_TOTAL,
    RETRY_ATTEMPTS,
)

logger = structlog.get_logger()


@dataclass
class RequestMetrics:
    """Request statistics for a single provider."""

    provider: str
    total_requests: int = 0
    successful_requests: int = 0
    failed_requests: int = 0
    rate_limited_requests: int = 0
    average_retry_attempts: float = 0.0
    average_response_time_ms: float = 0.0
    last_request_time: Optional[float] = None

    @property
    def terminal_requests(self) -> int:
        return self.successful_requests + self.failed_requests

    def record_terminal(self, response_time_ms: float, attempts: int) -> None:
        """Fold one terminal outcome into the running averages.

        Must be called after the success/failure counter was incremented.
        """
        n = self.terminal_requests
        self.average_response_time_ms += (
            response_time_ms - self.average_response_time_ms
        ) / n
        self.average_retry_attempts += (attempts - self.average_retry_attempts) / n

    def get_stats(self) -> dict:
        return {
            "provider": self.provider,
            "total_requests": self.total_requests,
            "successful_requests": self.successful_requests,
            "failed_requests": self.failed_requests,
            "rate_limited_requests": self.rate_limited_requests,
            "average_retry_attempts": round(self.average_retry_attempts, 3),
            "average_response_time_ms": round(self.average_response_time_ms, 2),
            "last_request_time": self.last_request_time,
        }


class MetricsCollector:
    """Thread-safe per-provider metrics store.

    One instance is created by the composition root and shared by the rate
    limiter and the retry executor.
    """

    def __init__(self) -> None:
        self._metrics: Dict[str, RequestMetrics] = {}
        self._lock = threading.Lock()

    def _get_or_create(self, provider: str) -> RequestMetrics:
        metrics = self._metrics.get(provider)
        if metrics is None:
            metrics = RequestMetrics(provider=provider)
            self._metrics[provider] = metrics
        return metrics

    def record_success(
        self, provider: str, response_time_ms: float, attempts: int
    ) -> None:
        """Record a terminal success after ``attempts`` attempts."""
        with self._lock:
            metrics = self._get_or_create(provider)
            metrics.total_requests += 1
            metrics.successful_requests += 1
            metrics.last_request_time = time.time()
            metrics.record_terminal(response_time_ms, attempts)

        PROVIDER_REQUESTS_TOTAL.labels(provider=provider, status="success").inc()
        PROVIDER_REQUEST_DURATION.labels(provider=provider).observe(
            response_time_ms / 1000
        )
        RETRY_ATTEMPTS.labels(provider=provider).observe(attempts)

    def record_failure(
        self, provider: str, response_time_ms: float, attempts: int
    ) -> None:
        """Record a terminal failure (non-retryable or retries exhausted)."""
        with self._lock:
            metrics = self._get_or_create(provider)
            metrics.total_requests += 1
            metrics.failed_requests += 1
            metrics.last_request_time = time.time()
            metrics.record_terminal(response_time_ms, attempts)

        PROVIDER_REQUESTS_TOTAL.labels(provider=provider, status="failed").inc()
        RETRY_ATTEMPTS.labels(provider=provider).observe(attempts)

    def record_rate_limited(self, provider: str) -> None:
        """Record a request turned away by the local rate limiter."""
        with self._lock:
            metrics = self._get_or_create(provider)
            metrics.total_requests += 1
            metrics.rate_limited_requests += 1
            metrics.last_request_time = time.time()

        RATE_LIMITED_TOTAL.labels(provider=provider).inc()
        logger.debug("rate_limited_request_recorded", provider=provider)

    def get_metrics(self, provider: str) -> Optional[RequestMetrics]:
        """Copy of the provider's metrics, or None if nothing was recorded."""
        with self._lock:
            metrics = self._metrics.get(provider)
            if metrics is None:
                return None
            return replace(metrics)

    def get_all_metrics(self) -> Dict[str, RequestMetrics]:
        with self._lock:
            return {
                name: replace(m) for name, m in self._metrics.items()
            }

    def get_summary(self) -> dict:
        return {name: m.get_stats() for name, m in self.get_all_metrics().items()}

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()
