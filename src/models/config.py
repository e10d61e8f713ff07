"""Application configuration models.

ResearchSettings is the validated form of ``config/research_config.yaml``.
"""

from typing import Dict, List, Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from src.models.llm import ProviderSettings, RetryConfig
from src.models.rate_limit import RateLimitConfig, default_rate_limit

KNOWN_PROVIDERS = ("claude", "openai", "grok")


def _default_providers() -> Dict[str, ProviderSettings]:
    return {name: ProviderSettings() for name in KNOWN_PROVIDERS}


class ComparisonSettings(BaseModel):
    """Cross-provider comparison settings"""

    enabled: bool = True
    provider: str = Field(default="claude", description="Provider writing the comparison")


class BatchSettings(BaseModel):
    """Batch processing settings"""

    concurrency: int = Field(default=3, ge=1, le=50)
    inter_chunk_delay_seconds: float = Field(default=0.1, ge=0.0, le=60.0)


class LoggingSettings(BaseModel):
    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    json_output: bool = False


class ResearchSettings(BaseModel):
    """Top-level configuration for the research orchestrator"""

    providers: Dict[str, ProviderSettings] = Field(default_factory=_default_providers)
    default_providers: List[str] = Field(
        default_factory=lambda: ["claude", "openai"],
        description="Providers used when a request names none",
    )
    retry: RetryConfig = Field(default_factory=RetryConfig)
    comparison: ComparisonSettings = Field(default_factory=ComparisonSettings)
    batch: BatchSettings = Field(default_factory=BatchSettings)
    output_dir: str = Field(default="./output", min_length=1)
    logging: LoggingSettings = Field(default_factory=LoggingSettings)

    model_config = ConfigDict(extra="forbid")

    @field_validator("providers")
    @classmethod
    def validate_provider_names(
        cls, v: Dict[str, ProviderSettings]
    ) -> Dict[str, ProviderSettings]:
        unknown = sorted(set(v) - set(KNOWN_PROVIDERS))
        if unknown:
            raise ValueError(
                f"Unknown provider(s) {unknown}; expected {list(KNOWN_PROVIDERS)}"
            )
        return v

    @model_validator(mode="after")
    def validate_references(self) -> "ResearchSettings":
        enabled = set(self.enabled_providers())
        missing = [p for p in self.default_providers if p not in enabled]
        if missing:
            raise ValueError(f"default_providers not enabled: {missing}")
        if self.comparison.enabled and self.comparison.provider not in enabled:
            raise ValueError(
                f"comparison.provider '{self.comparison.provider}' is not enabled"
            )
        return self

    def enabled_providers(self) -> List[str]:
        return [name for name, cfg in self.providers.items() if cfg.enabled]

    def rate_limit_configs(self) -> Dict[str, RateLimitConfig]:
        """Built-in rate limits with any per-provider overrides applied."""
        configs: Dict[str, RateLimitConfig] = {}
        for name, settings in self.providers.items():
            base = default_rate_limit(name)
            overrides = {
                field: value
                for field, value in (
                    ("max_requests", settings.max_requests),
                    ("window_seconds", settings.window_seconds),
                    ("retry_after_seconds", settings.retry_after_seconds),
                )
                if value is not None
            }
            configs[name] = base.model_copy(update=overrides) if overrides else base
        return configs
