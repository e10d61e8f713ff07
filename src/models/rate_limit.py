"""Rate limiting data models.

Defines the sliding-window configuration, the per-key mutable state and the
values returned to callers of the rate limiter.
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict, Field


class RateLimitConfig(BaseModel):
    """Sliding-window limit for one provider

    - max_requests admitted per rolling window_seconds
    - once exceeded, the key stays blocked for retry_after_seconds
      (or window_seconds when unset)
    """

    provider: str = Field(min_length=1)
    max_requests: int = Field(gt=0)
    window_seconds: float = Field(gt=0.0)
    retry_after_seconds: Optional[float] = Field(default=None, gt=0.0)

    model_config = ConfigDict(frozen=True)

    @property
    def block_seconds(self) -> float:
        return self.retry_after_seconds or self.window_seconds

    @property
    def state_key(self) -> Tuple[str, float]:
        return (self.provider, self.window_seconds)


DEFAULT_RATE_LIMITS: Dict[str, RateLimitConfig] = {
    "openai": RateLimitConfig(
        provider="openai", max_requests=50, window_seconds=60, retry_after_seconds=60
    ),
    "claude": RateLimitConfig(
        provider="claude", max_requests=40, window_seconds=60, retry_after_seconds=60
    ),
    "grok": RateLimitConfig(
        provider="grok", max_requests=30, window_seconds=60, retry_after_seconds=60
    ),
    # Conservative shared limit for whole parallel orchestrations
    "parallel": RateLimitConfig(
        provider="parallel",
        max_requests=30,
        window_seconds=60,
        retry_after_seconds=120,
    ),
}


def default_rate_limit(provider: str) -> RateLimitConfig:
    """Default config for a provider, with a generic fallback for unknown names."""
    config = DEFAULT_RATE_LIMITS.get(provider)
    if config is not None:
        return config
    return RateLimitConfig(provider=provider, max_requests=30, window_seconds=60)


@dataclass
class RateLimitState:
    """Mutable window state for one ``(provider, window)`` key."""

    requests: List[float] = field(default_factory=list)
    is_blocked: bool = False
    unblock_time: Optional[float] = None


@dataclass(frozen=True)
class RateLimitDecision:
    """Outcome of a single rate limit check."""

    allowed: bool
    retry_after_seconds: Optional[float] = None
    remaining_requests: Optional[int] = None


@dataclass(frozen=True)
class RateLimitStatus:
    """Read-only snapshot of a provider's window."""

    provider: str
    is_blocked: bool
    remaining_requests: int
    window_seconds: float
    reset_time: Optional[float] = None

    def to_dict(self) -> dict:
        return {
            "provider": self.provider,
            "is_blocked": self.is_blocked,
            "remaining_requests": self.remaining_requests,
            "window_seconds": self.window_seconds,
            "reset_time": self.reset_time,
        }
