"""Anthropic (Claude) research provider.

Talks to the Messages API directly over aiohttp.

Pricing (claude-3-5-sonnet): $3/MTok input, $15/MTok output
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from src.models.llm import ProviderPricing
from src.services.llm.providers.base import ResearchProvider


class ClaudeContentBlock(BaseModel):
    model_config = ConfigDict(extra="ignore")

    type: str = "text"
    text: Optional[str] = None


class ClaudeUsage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    input_tokens: int = 0
    output_tokens: int = 0


class ClaudeMessageResponse(BaseModel):
    """Subset of the Messages API response we rely on."""

    model_config = ConfigDict(extra="ignore")

    content: List[ClaudeContentBlock]
    usage: ClaudeUsage = ClaudeUsage()
    stop_reason: Optional[str] = None


class ClaudeProvider(ResearchProvider):
    """Anthropic Claude provider."""

    NAME = "claude"
    DISPLAY_NAME = "Claude"
    API_URL = "https://api.anthropic.com/v1/messages"
    API_VERSION = "2023-06-01"
    DEFAULT_MODEL = "claude-3-5-sonnet-20241022"
    CONTEXT_LIMIT = 8192
    SECRET_NAME = "CLAUDE_API_KEY"
    PRICING = ProviderPricing(input_cost_per_mtok=3.00, output_cost_per_mtok=15.00)

    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "x-api-key": api_key,
            "anthropic-version": self.API_VERSION,
            "Content-Type": "application/json",
        }

    def build_payload(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> Dict[str, Any]:
        return {
            "model": self.model,
            "max_tokens": max_tokens,
            "temperature": temperature,
            "system": system_prompt,
            "messages": [{"role": "user", "content": user_prompt}],
        }

    def parse_payload(self, data: Any) -> Tuple[str, int, int]:
        response = ClaudeMessageResponse.model_validate(data)
        # First text block carries the answer; tool/thinking blocks are skipped
        text = next(
            (b.text for b in response.content if b.type == "text" and b.text), ""
        )
        return text, response.usage.input_tokens, response.usage.output_tokens
