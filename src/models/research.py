"""Research request and result models.

ResearchRequest mirrors the inbound shape sent by the calling application.
ResearchExecutionResult is built once per orchestration, is immutable and
serialises to JSON with ``model_dump(mode="json")``.
"""

from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from src.utils.exceptions import ErrorKind


class ResearchType(str, Enum):
    MARKET_ANALYSIS = "market_analysis"
    COMPETITIVE_INTELLIGENCE = "competitive_intelligence"
    TREND_ANALYSIS = "trend_analysis"
    INVESTMENT_RESEARCH = "investment_research"
    CUSTOM = "custom"


class ResearchDepth(str, Enum):
    BASIC = "basic"
    COMPREHENSIVE = "comprehensive"
    EXPERT = "expert"


class OutputFormat(str, Enum):
    SUMMARY = "summary"
    DETAILED = "detailed"
    EXECUTIVE = "executive"
    TECHNICAL = "technical"


class TargetAudience(str, Enum):
    EXECUTIVES = "executives"
    ANALYSTS = "analysts"
    INVESTORS = "investors"
    GENERAL = "general"


class ResearchRequest(BaseModel):
    """Inbound research request.

    Accepts both the camelCase wire names (``sessionId``, ``researchType``)
    and the snake_case field names. Provider names are kept as plain strings here; the orchestrator checks
    them against its registered callers so an unknown name surfaces as an
    ``invalid_request`` error before any network call.
    """

    session_id: str = Field(min_length=1)
    topic: str = Field(min_length=1, max_length=2000)
    research_type: ResearchType = ResearchType.MARKET_ANALYSIS
    depth: ResearchDepth = ResearchDepth.COMPREHENSIVE
    focus_areas: List[str] = Field(default_factory=list)
    output_format: OutputFormat = OutputFormat.DETAILED
    target_audience: TargetAudience = TargetAudience.EXECUTIVES
    providers: List[str] = Field(default_factory=list)

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "example": {
                "session_id": "3f1c...",
                "topic": "European EV charging market",
                "research_type": "market_analysis",
                "depth": "comprehensive",
                "focus_areas": ["pricing", "regulation"],
                "output_format": "executive",
                "target_audience": "investors",
                "providers": ["claude", "openai", "grok"],
            }
        },
    )

    @field_validator("topic")
    @classmethod
    def validate_topic(cls, v: str) -> str:
        if not v.strip():
            raise ValueError("topic cannot be blank")
        return v.strip()

    @field_validator("focus_areas")
    @classmethod
    def drop_blank_focus_areas(cls, v: List[str]) -> List[str]:
        return [area.strip() for area in v if area and area.strip()]


class CostBreakdown(BaseModel):
    """Normalized token usage and cost for one provider call."""

    prompt_tokens: int = Field(default=0, ge=0)
    completion_tokens: int = Field(default=0, ge=0)
    total_cost_usd: float = Field(default=0.0, ge=0.0)

    model_config = ConfigDict(frozen=True)

    @property
    def total_tokens(self) -> int:
        return self.prompt_tokens + self.completion_tokens


class ProviderResult(BaseModel):
    """Outcome of one provider within an orchestration."""

    provider: str
    success: bool
    content: str = ""
    summary: str = ""
    model: Optional[str] = None
    cost: CostBreakdown = Field(default_factory=CostBreakdown)
    processing_time_ms: float = Field(default=0.0, ge=0.0)
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None

    model_config = ConfigDict(frozen=True)


class ResearchSummary(BaseModel):
    successful: int = Field(ge=0)
    failed: int = Field(ge=0)
    total_providers: int = Field(ge=0)

    model_config = ConfigDict(frozen=True)


class ResearchExecutionResult(BaseModel):
    """Aggregate result of a parallel research orchestration.

    ``success`` is True when at least one provider succeeded; callers tell
    partial success apart from full success through ``summary.failed``.
    """

    success: bool
    session_id: Optional[str] = None
    topic: str
    research_type: ResearchType
    results: List[ProviderResult]
    comparison: Optional[Dict[str, Any]] = None
    total_cost: float = Field(ge=0.0)
    total_processing_time_ms: float = Field(ge=0.0)
    summary: ResearchSummary

    model_config = ConfigDict(frozen=True)

    def get_result(self, provider: str) -> Optional[ProviderResult]:
        for result in self.results:
            if result.provider == provider:
                return result
        return None

    @property
    def successful_results(self) -> List[ProviderResult]:
        return [r for r in self.results if r.success]
