"""Parallel research orchestration across providers.

Fans one research request out to every requested provider at once, each
call going through the retry executor (and so the rate limiter). Provider
failures never abort the request; they are recorded per provider in request
order. When two or more providers succeed a comparison is attached.
"""

import asyncio
import time
from typing import Dict, List, Optional, Sequence, Union

import structlog

from src.models.llm import RetryConfig
from src.models.research import (
    OutputFormat,
    ProviderResult,
    ResearchDepth,
    ResearchExecutionResult,
    ResearchRequest,
    ResearchSummary,
    ResearchType,
    TargetAudience,
)
from src.observability.metrics import ORCHESTRATIONS_TOTAL
from src.services.comparison_service import ComparisonGenerator
from src.services.llm.prompt_builder import PromptBuilder, PromptPair
from src.services.llm.providers.base import ProviderCallResult, ResearchProvider
from src.utils.exceptions import InvalidRequestError, classify_error
from src.utils.retry import RetryExecutor

logger = structlog.get_logger()


class ParallelOrchestrator:
    """Runs research across multiple providers concurrently."""

    def __init__(
        self,
        providers: Dict[str, ResearchProvider],
        retry_executor: RetryExecutor,
        comparison_generator: Optional[ComparisonGenerator] = None,
        prompt_builder: Optional[PromptBuilder] = None,
        retry_configs: Optional[Dict[str, RetryConfig]] = None,
    ) -> None:
        """Initialize orchestrator.

        Args:
            providers: Registered provider callers keyed by name
            retry_executor: Executor wrapping every provider call
            comparison_generator: Optional generator for >= 2 successes
            prompt_builder: Builds provider-specific prompts
            retry_configs: Per-provider retry overrides
        """
        self.providers = providers
        self.retry_executor = retry_executor
        self.comparison_generator = comparison_generator
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.retry_configs = retry_configs or {}

    def _validate_providers(self, providers: Sequence[str]) -> List[str]:
        if not providers:
            raise InvalidRequestError("At least one provider is required")
        unknown = [p for p in providers if p not in self.providers]
        if unknown:
            raise InvalidRequestError(
                f"Unknown provider(s): {', '.join(unknown)}. "
                f"Available: {', '.join(sorted(self.providers))}"
            )
        # Duplicates collapse to the first occurrence
        return list(dict.fromkeys(providers))

    @staticmethod
    def _coerce(enum_cls, value, field: str):
        try:
            return enum_cls(value)
        except ValueError:
            allowed = ", ".join(member.value for member in enum_cls)
            raise InvalidRequestError(
                f"Invalid {field} '{value}'. Expected one of: {allowed}"
            ) from None

    async def _call_provider(
        self,
        provider: ResearchProvider,
        prompt: PromptPair,
        max_tokens: int,
        temperature: float,
    ) -> ProviderCallResult:
        result = await provider.research(
            prompt.system, prompt.user, max_tokens=max_tokens, temperature=temperature
        )
        return result.unwrap()

    async def _run_provider(
        self,
        name: str,
        prompt: PromptPair,
        max_tokens: Optional[int],
        temperature: Optional[float],
    ) -> ProviderResult:
        provider = self.providers[name]
        tokens = max_tokens or provider.settings.max_tokens
        temp = temperature if temperature is not None else provider.settings.temperature
        started = time.monotonic()

        try:
            call = await self.retry_executor.execute_with_retry(
                name,
                lambda: self._call_provider(provider, prompt, tokens, temp),
                self.retry_configs.get(name),
            )
        except Exception as e:
            kind = classify_error(e)
            logger.warning(
                "provider_failed",
                provider=name,
                error_kind=kind.value,
                error=str(e),
            )
            return ProviderResult(
                provider=name,
                success=False,
                model=provider.model,
                processing_time_ms=(time.monotonic() - started) * 1000,
                error=str(e),
                error_kind=kind,
            )

        return ProviderResult(
            provider=name,
            success=True,
            content=call.content,
            summary=call.summary,
            model=call.model,
            cost=call.cost_breakdown(),
            processing_time_ms=call.processing_time_ms,
        )

    async def execute_parallel(
        self,
        topic: str,
        research_type: Union[ResearchType, str],
        depth: Union[ResearchDepth, str] = ResearchDepth.COMPREHENSIVE,
        focus_areas: Sequence[str] = (),
        providers: Sequence[str] = (),
        output_format: Union[OutputFormat, str] = OutputFormat.DETAILED,
        target_audience: Union[TargetAudience, str] = TargetAudience.EXECUTIVES,
        session_id: Optional[str] = None,
        max_tokens: Optional[int] = None,
        temperature: Optional[float] = None,
    ) -> ResearchExecutionResult:
        """Execute research on all providers in parallel.

        Args:
            topic: Research topic
            research_type: Research type (selects the prompt frame)
            depth: Research depth
            focus_areas: Optional focus areas
            providers: Provider names, in the order results are reported
            output_format: Desired output shape
            target_audience: Intended readers
            session_id: Optional session id echoed in the result
            max_tokens: Override of each provider's configured max_tokens
            temperature: Override of each provider's configured temperature

        Returns:
            ResearchExecutionResult with one entry per provider

        Raises:
            InvalidRequestError: If the request is invalid (before any call)
        """
        if not topic or not topic.strip():
            raise InvalidRequestError("Missing required field: topic")
        rtype = self._coerce(ResearchType, research_type, "research_type")
        rdepth = self._coerce(ResearchDepth, depth, "depth")
        fmt = self._coerce(OutputFormat, output_format, "output_format")
        audience = self._coerce(TargetAudience, target_audience, "target_audience")
        names = self._validate_providers(providers)
        topic = topic.strip()

        started = time.monotonic()
        logger.info(
            "parallel_research_started",
            topic=topic,
            research_type=rtype.value,
            providers=names,
        )

        prompts = {
            name: self.prompt_builder.build(
                name, topic, rtype, rdepth, focus_areas, fmt, audience
            )
            for name in names
        }

        results: List[ProviderResult] = list(
            await asyncio.gather(
                *[
                    self._run_provider(name, prompts[name], max_tokens, temperature)
                    for name in names
                ]
            )
        )

        successful = [r for r in results if r.success]
        total_cost = sum(r.cost.total_cost_usd for r in successful)

        comparison = None
        if len(successful) >= 2 and self.comparison_generator is not None:
            try:
                comparison = await self.comparison_generator.generate(results, topic)
            except Exception as e:
                logger.warning(
                    "comparison_failed",
                    error=str(e),
                    error_kind=classify_error(e).value,
                )

        summary = ResearchSummary(
            successful=len(successful),
            failed=len(results) - len(successful),
            total_providers=len(results),
        )
        elapsed_ms = (time.monotonic() - started) * 1000

        if summary.failed == 0:
            status = "success"
        elif summary.successful == 0:
            status = "failed"
        else:
            status = "partial"
        ORCHESTRATIONS_TOTAL.labels(status=status).inc()

        logger.info(
            "parallel_research_completed",
            status=status,
            successful=summary.successful,
            failed=summary.failed,
            total_cost_usd=round(total_cost, 6),
            total_processing_time_ms=round(elapsed_ms, 1),
            compared=comparison is not None,
        )

        return ResearchExecutionResult(
            success=summary.successful > 0,
            session_id=session_id,
            topic=topic,
            research_type=rtype,
            results=results,
            comparison=comparison,
            total_cost=total_cost,
            total_processing_time_ms=elapsed_ms,
            summary=summary,
        )

    async def run(self, request: ResearchRequest) -> ResearchExecutionResult:
        """Execute an inbound request.

        The request must name its providers; an empty list is rejected.
        """
        return await self.execute_parallel(
            topic=request.topic,
            research_type=request.research_type,
            depth=request.depth,
            focus_areas=request.focus_areas,
            providers=request.providers,
            output_format=request.output_format,
            target_audience=request.target_audience,
            session_id=request.session_id,
        )
