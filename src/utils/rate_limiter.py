"""Sliding-window rate limiter for provider API governance.

Each ``(provider, window)`` key keeps the timestamps of admitted requests
inside the current window. When the window is full the key is blocked for
``retry_after_seconds`` (or the window length), regardless of how the
window drains in the meantime.

The prune/check/append sequence for one key runs under that key's own lock;
different keys never contend.
"""

import threading
import time
from typing import Any, Callable, Dict, Mapping, Optional, Tuple, Union

import structlog

from src.models.rate_limit import (
    RateLimitConfig,
    RateLimitDecision,
    RateLimitState,
    RateLimitStatus,
    default_rate_limit,
)
from src.observability.collector import MetricsCollector

logger = structlog.get_logger()

StateKey = Tuple[str, float]
ConfigOverride = Union[RateLimitConfig, Mapping[str, Any]]


class RateLimiter:
    """Per-provider sliding-window request counter."""

    def __init__(
        self,
        metrics: Optional[MetricsCollector] = None,
        configs: Optional[Dict[str, RateLimitConfig]] = None,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        """Initialize rate limiter.

        Args:
            metrics: Collector notified of every rate-limited request
            configs: Per-provider defaults overriding the built-in table
            clock: Monotonic time source in seconds (injectable for tests)
        """
        self.metrics = metrics
        self.configs: Dict[str, RateLimitConfig] = dict(configs or {})
        self.clock = clock

        self._states: Dict[StateKey, RateLimitState] = {}
        self._locks: Dict[StateKey, threading.Lock] = {}
        self._registry_lock = threading.Lock()

    def get_config(self, provider: str) -> RateLimitConfig:
        return self.configs.get(provider) or default_rate_limit(provider)

    def _resolve(
        self, provider: str, config: Optional[ConfigOverride]
    ) -> RateLimitConfig:
        """Merge a per-call override over the provider's configured limit.

        Only the fields the override sets replace the provider's values, so
        ``{"max_requests": 2}`` keeps the provider's window and block time.
        """
        base = self.get_config(provider)
        if config is None:
            return base
        if isinstance(config, RateLimitConfig):
            overrides = config.model_dump(exclude_unset=True)
        else:
            overrides = dict(config)
        return RateLimitConfig.model_validate(
            {**base.model_dump(), **overrides, "provider": provider}
        )

    def _state_for(self, key: StateKey) -> Tuple[RateLimitState, threading.Lock]:
        # Registry lock only guards dict membership, never the check itself
        with self._registry_lock:
            state = self._states.get(key)
            if state is None:
                state = RateLimitState()
                self._states[key] = state
                self._locks[key] = threading.Lock()
            return state, self._locks[key]

    def check_rate_limit(
        self, provider: str, config: Optional[ConfigOverride] = None
    ) -> RateLimitDecision:
        """Decide whether one more request for ``provider`` is admitted.

        Args:
            provider: Provider name
            config: Optional per-call override, full or partial, merged over
                the provider's limit

        Returns:
            RateLimitDecision; when allowed, the request is already counted
        """
        cfg = self._resolve(provider, config)
        state, lock = self._state_for(cfg.state_key)

        with lock:
            now = self.clock()

            if state.is_blocked and state.unblock_time is not None:
                if now < state.unblock_time:
                    return RateLimitDecision(
                        allowed=False, retry_after_seconds=state.unblock_time - now
                    )
                state.is_blocked = False
                state.unblock_time = None

            state.requests = [
                ts for ts in state.requests if now - ts < cfg.window_seconds
            ]

            if len(state.requests) >= cfg.max_requests:
                state.is_blocked = True
                state.unblock_time = now + cfg.block_seconds
                blocked = True
            else:
                state.requests.append(now)
                blocked = False
                remaining = cfg.max_requests - len(state.requests)

        if blocked:
            if self.metrics is not None:
                self.metrics.record_rate_limited(provider)
            logger.warning(
                "rate_limit_blocked",
                provider=provider,
                max_requests=cfg.max_requests,
                window_seconds=cfg.window_seconds,
                retry_after_seconds=cfg.block_seconds,
            )
            return RateLimitDecision(
                allowed=False, retry_after_seconds=cfg.block_seconds
            )

        return RateLimitDecision(allowed=True, remaining_requests=remaining)

    def get_rate_limit_status(
        self, provider: str, config: Optional[ConfigOverride] = None
    ) -> RateLimitStatus:
        """Read-only snapshot; never prunes, admits or unblocks."""
        cfg = self._resolve(provider, config)
        with self._registry_lock:
            state = self._states.get(cfg.state_key)
            lock = self._locks.get(cfg.state_key)

        if state is None or lock is None:
            return RateLimitStatus(
                provider=provider,
                is_blocked=False,
                remaining_requests=cfg.max_requests,
                window_seconds=cfg.window_seconds,
            )

        with lock:
            now = self.clock()
            valid = sum(1 for ts in state.requests if now - ts < cfg.window_seconds)
            is_blocked = (
                state.is_blocked
                and state.unblock_time is not None
                and now < state.unblock_time
            )
            return RateLimitStatus(
                provider=provider,
                is_blocked=is_blocked,
                remaining_requests=max(0, cfg.max_requests - valid),
                window_seconds=cfg.window_seconds,
                reset_time=state.unblock_time if is_blocked else None,
            )

    def estimate_wait_time(self, provider: str) -> float:
        """Seconds until the provider's next request could be admitted."""
        status = self.get_rate_limit_status(provider)
        if not status.is_blocked or status.reset_time is None:
            return 0.0
        return max(0.0, status.reset_time - self.clock())

    def reset_rate_limit(self, provider: str) -> None:
        """Drop every window state of one provider."""
        with self._registry_lock:
            for key in [k for k in self._states if k[0] == provider]:
                del self._states[key]
                del self._locks[key]
        logger.info("rate_limit_reset", provider=provider)

    def reset_all_rate_limits(self) -> None:
        with self._registry_lock:
            self._states.clear()
            self._locks.clear()
