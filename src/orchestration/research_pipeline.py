"""Research pipeline composition root.

Builds every service from ResearchSettings and injects them explicitly, so
the CLI, the health server and tests share one wiring.

Usage:
    pipeline = ResearchPipeline.from_config_manager(ConfigManager())
    result = await pipeline.run(request)
"""

from pathlib import Path
from typing import Any, Awaitable, Callable, Dict, List, Optional, Sequence

import structlog

from src.models.config import ResearchSettings
from src.models.research import ResearchExecutionResult, ResearchRequest
from src.observability.collector import MetricsCollector
from src.observability.context import correlation_id_context
from src.orchestration.batch_processor import BatchItemResult, BatchProcessor
from src.orchestration.parallel_orchestrator import ParallelOrchestrator
from src.services.comparison_service import ComparisonGenerator
from src.services.config_manager import ConfigManager
from src.services.llm.providers import ResearchProvider, create_provider
from src.services.result_repository import (
    JsonFileResultRepository,
    ResultRepository,
)
from src.utils.exceptions import RateLimitExceededError
from src.utils.rate_limiter import RateLimiter
from src.utils.retry import RetryExecutor
from src.utils.secrets import SecretResolver

logger = structlog.get_logger()

# Rate-limit key guarding whole orchestrations
PARALLEL_RATE_LIMIT_KEY = "parallel"


class ResearchPipeline:
    """Wires the orchestration services together.

    Attributes:
        settings: Validated configuration
        metrics: Per-provider request metrics
        rate_limiter: Shared sliding-window limiter
        retry_executor: Executor wrapping every provider call
        providers: Enabled provider callers keyed by name
        orchestrator: Parallel orchestrator
        batch_processor: Chunked batch processor
        repository: Result persistence collaborator
    """

    def __init__(
        self,
        settings: ResearchSettings,
        repository: Optional[ResultRepository] = None,
        secrets: Optional[SecretResolver] = None,
        metrics: Optional[MetricsCollector] = None,
        rate_limiter: Optional[RateLimiter] = None,
        providers: Optional[Dict[str, ResearchProvider]] = None,
    ) -> None:
        self.settings = settings
        self.secrets = secrets or SecretResolver()
        self.metrics = metrics or MetricsCollector()
        self.rate_limiter = rate_limiter or RateLimiter(
            metrics=self.metrics, configs=settings.rate_limit_configs()
        )
        self.retry_executor = RetryExecutor(
            self.rate_limiter, self.metrics, config=settings.retry
        )

        self.providers = providers or {
            name: create_provider(name, self.secrets, settings.providers[name])
            for name in settings.enabled_providers()
        }

        comparison_generator = None
        comparison_provider = self.providers.get(settings.comparison.provider)
        if settings.comparison.enabled and comparison_provider is not None:
            comparison_generator = ComparisonGenerator(comparison_provider)

        self.orchestrator = ParallelOrchestrator(
            self.providers,
            self.retry_executor,
            comparison_generator=comparison_generator,
        )
        self.batch_processor = BatchProcessor(
            self.retry_executor,
            inter_chunk_delay_seconds=settings.batch.inter_chunk_delay_seconds,
        )
        self.repository: ResultRepository = repository or JsonFileResultRepository(
            Path(settings.output_dir)
        )

        logger.info(
            "research_pipeline_initialized",
            providers=list(self.providers),
            comparison=comparison_generator is not None,
        )

    @classmethod
    def from_config_manager(
        cls, config_manager: ConfigManager, **kwargs: Any
    ) -> "ResearchPipeline":
        return cls(config_manager.load_config(), **kwargs)

    async def run(self, request: ResearchRequest) -> ResearchExecutionResult:
        """Run one research request end to end and persist the result.

        Raises:
            RateLimitExceededError: If too many orchestrations ran recently
            InvalidRequestError: If the request is invalid
        """
        with correlation_id_context(request.session_id):
            decision = self.rate_limiter.check_rate_limit(PARALLEL_RATE_LIMIT_KEY)
            if not decision.allowed:
                raise RateLimitExceededError(
                    "Too many parallel research requests",
                    retry_after=decision.retry_after_seconds,
                    provider=PARALLEL_RATE_LIMIT_KEY,
                )

            result = await self.orchestrator.run(request)

            try:
                self.repository.save(result)
            except Exception as e:
                # Result is returned even when persisting it fails
                logger.error(
                    "result_persist_failed",
                    session_id=request.session_id,
                    error=str(e),
                )
            return result

    async def process_batch(
        self,
        provider: str,
        items: Sequence[Any],
        processor: Callable[[Any], Awaitable[Any]],
        concurrency: Optional[int] = None,
    ) -> List[BatchItemResult]:
        return await self.batch_processor.process_batch(
            provider,
            items,
            processor,
            concurrency=concurrency or self.settings.batch.concurrency,
        )

    def rate_limit_status(self) -> Dict[str, dict]:
        names = list(self.providers) + [PARALLEL_RATE_LIMIT_KEY]
        return {
            name: self.rate_limiter.get_rate_limit_status(name).to_dict()
            for name in names
        }

    def secret_diagnostics(self) -> Dict[str, dict]:
        return {
            name: self.secrets.diagnostics(provider.SECRET_NAME)
            for name, provider in self.providers.items()
        }
