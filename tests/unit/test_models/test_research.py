"""Tests for research request and result models."""

import pytest
from pydantic import ValidationError

from src.models.research import (
    CostBreakdown,
    OutputFormat,
    ProviderResult,
    ResearchDepth,
    ResearchExecutionResult,
    ResearchRequest,
    ResearchSummary,
    ResearchType,
    TargetAudience,
)
from src.utils.exceptions import ErrorKind


class TestResearchRequest:
    def test_camel_case_wire_names(self):
        request = ResearchRequest.model_validate(
            {
                "sessionId": "abc",
                "topic": "  EV charging  ",
                "researchType": "trend_analysis",
                "focusAreas": ["pricing", " ", "regulation "],
                "outputFormat": "executive",
                "targetAudience": "investors",
                "providers": ["claude", "grok"],
            }
        )

        assert request.session_id == "abc"
        assert request.topic == "EV charging"
        assert request.research_type == ResearchType.TREND_ANALYSIS
        assert request.focus_areas == ["pricing", "regulation"]
        assert request.output_format == OutputFormat.EXECUTIVE
        assert request.target_audience == TargetAudience.INVESTORS

    def test_snake_case_names_accepted(self):
        request = ResearchRequest(session_id="abc", topic="t", depth="expert")
        assert request.depth == ResearchDepth.EXPERT

    def test_defaults(self):
        request = ResearchRequest(session_id="abc", topic="t")
        assert request.research_type == ResearchType.MARKET_ANALYSIS
        assert request.depth == ResearchDepth.COMPREHENSIVE
        assert request.output_format == OutputFormat.DETAILED
        assert request.target_audience == TargetAudience.EXECUTIVES
        assert request.providers == []

    @pytest.mark.parametrize("topic", ["", "   "])
    def test_blank_topic_rejected(self, topic):
        with pytest.raises(ValidationError):
            ResearchRequest(session_id="abc", topic=topic)

    def test_unknown_research_type_rejected(self):
        with pytest.raises(ValidationError):
            ResearchRequest(session_id="abc", topic="t", research_type="poetry")


class TestResults:
    def test_cost_breakdown_total_tokens(self):
        cost = CostBreakdown(prompt_tokens=10, completion_tokens=5, total_cost_usd=0.1)
        assert cost.total_tokens == 15

    def test_failed_result_defaults(self):
        result = ProviderResult(
            provider="grok",
            success=False,
            error="Missing API key",
            error_kind=ErrorKind.SECRET_MISSING,
        )
        assert result.content == ""
        assert result.cost.total_cost_usd == 0.0

    def test_execution_result_helpers_and_json(self):
        result = ResearchExecutionResult(
            success=True,
            session_id="s",
            topic="t",
            research_type=ResearchType.CUSTOM,
            results=[
                ProviderResult(provider="claude", success=True, content="a"),
                ProviderResult(
                    provider="openai",
                    success=False,
                    error="boom",
                    error_kind=ErrorKind.TIMEOUT,
                ),
            ],
            total_cost=0.0,
            total_processing_time_ms=10.0,
            summary=ResearchSummary(successful=1, failed=1, total_providers=2),
        )

        assert result.get_result("openai").error_kind == ErrorKind.TIMEOUT
        assert result.get_result("grok") is None
        assert [r.provider for r in result.successful_results] == ["claude"]
        data = result.model_dump(mode="json")
        assert data["research_type"] == "custom"
        assert data["results"][1]["error_kind"] == "timeout"
