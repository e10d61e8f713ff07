"""Provider call data models: retry policy, pricing and per-provider settings.

This module defines the data structures for:
- Retry configuration with exponential backoff and jitter
- Per-provider token pricing (USD per million tokens)
- Per-provider request settings (model, limits, timeout)
"""

from typing import FrozenSet, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from src.utils.exceptions import ErrorKind, RETRYABLE_ERROR_KINDS


class RetryConfig(BaseModel):
    """Configuration for retry logic with exponential backoff

    Controls retry behavior for transient failures:
    - Number of retries after the first attempt
    - Delay calculation parameters (base, cap, multiplier)
    - Additive jitter for request spreading
    - Which error kinds are worth retrying
    - Per-attempt timeout bounding a hung provider call
    """

    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries after the first attempt (total attempts = N + 1)",
    )
    base_delay_seconds: float = Field(
        default=1.0,
        gt=0.0,
        le=60.0,
        description="Base delay for exponential backoff",
    )
    max_delay_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=300.0,
        description="Maximum delay cap (before jitter)",
    )
    backoff_multiplier: float = Field(
        default=2.0,
        gt=1.0,
        le=10.0,
        description="Growth factor applied per attempt",
    )
    jitter_seconds: float = Field(
        default=0.5,
        ge=0.0,
        le=10.0,
        description="Upper bound of the random delay added to each backoff",
    )
    retryable_errors: FrozenSet[ErrorKind] = Field(
        default=RETRYABLE_ERROR_KINDS,
        description="Error kinds that trigger a retry",
    )
    attempt_timeout_seconds: Optional[float] = Field(
        default=120.0,
        gt=0.0,
        le=900.0,
        description="Timeout applied to each attempt (None disables it)",
    )

    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "max_retries": 3,
                "base_delay_seconds": 1.0,
                "max_delay_seconds": 30.0,
                "backoff_multiplier": 2.0,
                "jitter_seconds": 0.5,
            }
        },
    )

    @model_validator(mode="after")
    def validate_delay_bounds(self) -> "RetryConfig":
        """Ensure the delay cap is not below the base delay"""
        if self.max_delay_seconds < self.base_delay_seconds:
            raise ValueError(
                f"max_delay_seconds ({self.max_delay_seconds}) must be >= "
                f"base_delay_seconds ({self.base_delay_seconds})"
            )
        return self

    def is_retryable(self, kind: ErrorKind) -> bool:
        return kind in self.retryable_errors


class ProviderPricing(BaseModel):
    """Token pricing for one provider in USD per million tokens."""

    input_cost_per_mtok: float = Field(ge=0.0)
    output_cost_per_mtok: float = Field(ge=0.0)
    estimated: bool = Field(
        default=False, description="True when the figures are not published prices"
    )

    model_config = ConfigDict(frozen=True)

    def calculate(self, input_tokens: int, output_tokens: int) -> float:
        """Cost in USD for the given token usage."""
        input_cost = (input_tokens / 1_000_000) * self.input_cost_per_mtok
        output_cost = (output_tokens / 1_000_000) * self.output_cost_per_mtok
        return input_cost + output_cost


class ProviderSettings(BaseModel):
    """Per-provider request settings loaded from configuration.

    Any field left unset falls back to the provider class defaults.
    """

    enabled: bool = Field(default=True)
    model: Optional[str] = Field(default=None, min_length=1)
    max_tokens: int = Field(default=4000, gt=0, le=200000)
    temperature: float = Field(default=0.3, ge=0.0, le=2.0)
    timeout_seconds: float = Field(default=120.0, gt=0.0, le=900.0)
    pricing: Optional[ProviderPricing] = None
    max_requests: Optional[int] = Field(default=None, gt=0)
    window_seconds: Optional[float] = Field(default=None, gt=0.0)
    retry_after_seconds: Optional[float] = Field(default=None, gt=0.0)
