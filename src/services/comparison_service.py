"""Cross-provider comparison of research outputs.

A designated provider (Claude by default) reads the successful outputs and
scores them 1-10 on accuracy, depth, relevance, clarity and innovation.
"""

from typing import Any, Dict, Optional, Sequence

import structlog
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from src.models.research import ProviderResult
from src.services.llm.prompt_builder import PromptBuilder
from src.services.llm.providers.base import ResearchProvider
from src.services.llm.response_parser import ResponseParser
from src.utils.exceptions import (
    InvalidRequestError,
    NetworkError,
    ProviderTimeoutError,
    RateLimitExceededError,
    ServiceUnavailableError,
    TemporaryFailureError,
)

logger = structlog.get_logger()

COMPARISON_MAX_TOKENS = 2000
COMPARISON_TEMPERATURE = 0.2

TRANSIENT_ERRORS = (
    RateLimitExceededError,
    ProviderTimeoutError,
    NetworkError,
    ServiceUnavailableError,
    TemporaryFailureError,
)


class ComparisonGenerator:
    """Generates a structured comparison of two or more research outputs."""

    def __init__(
        self,
        provider: ResearchProvider,
        prompt_builder: Optional[PromptBuilder] = None,
        parser: Optional[ResponseParser] = None,
    ) -> None:
        self.provider = provider
        self.prompt_builder = prompt_builder or PromptBuilder()
        self.parser = parser or ResponseParser()

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=1, max=8),
        retry=retry_if_exception_type(TRANSIENT_ERRORS),
        reraise=True,
    )
    async def _generate_text(self, system_prompt: str, user_prompt: str) -> str:
        result = await self.provider.research(
            system_prompt,
            user_prompt,
            max_tokens=COMPARISON_MAX_TOKENS,
            temperature=COMPARISON_TEMPERATURE,
        )
        return result.unwrap().content

    async def generate(
        self, results: Sequence[ProviderResult], topic: str
    ) -> Dict[str, Any]:
        """Compare the successful results.

        Args:
            results: Provider results in request order (failures are ignored)
            topic: Research topic

        Returns:
            Parsed comparison JSON, or ``{"raw_comparison": text}``

        Raises:
            InvalidRequestError: If fewer than two results succeeded
            ResearchError: If the comparison provider call fails
        """
        successful = [r for r in results if r.success and r.content]
        if len(successful) < 2:
            raise InvalidRequestError(
                f"Comparison needs at least 2 successful results, got {len(successful)}"
            )

        prompt = self.prompt_builder.build_comparison(
            topic, [(r.provider, r.content) for r in successful]
        )
        text = await self._generate_text(prompt.system, prompt.user)
        comparison = self.parser.parse_comparison(text)

        logger.info(
            "comparison_generated",
            comparison_provider=self.provider.name,
            compared=[r.provider for r in successful],
            parsed="raw_comparison" not in comparison,
        )
        return comparison
