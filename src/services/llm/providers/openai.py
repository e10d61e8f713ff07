"""OpenAI research provider.

Also hosts ChatCompletionsProvider, the shared base for any endpoint that
speaks the OpenAI Chat Completions wire format (Grok included).

Pricing (gpt-4-turbo): $10/MTok input, $30/MTok output
"""

from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, ConfigDict

from src.models.llm import ProviderPricing
from src.services.llm.providers.base import ResearchProvider


class ChatMessage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    role: str = "assistant"
    content: Optional[str] = None


class ChatChoice(BaseModel):
    model_config = ConfigDict(extra="ignore")

    message: ChatMessage
    finish_reason: Optional[str] = None


class ChatUsage(BaseModel):
    model_config = ConfigDict(extra="ignore")

    prompt_tokens: int = 0
    completion_tokens: int = 0


class ChatCompletionResponse(BaseModel):
    """Subset of the Chat Completions response we rely on."""

    model_config = ConfigDict(extra="ignore")

    choices: List[ChatChoice]
    usage: ChatUsage = ChatUsage()


class ChatCompletionsProvider(ResearchProvider):
    """Base for OpenAI-compatible chat completion endpoints."""

    def build_headers(self, api_key: str) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {api_key}",
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
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "max_tokens": max_tokens,
            "temperature": temperature,
        }

    def parse_payload(self, data: Any) -> Tuple[str, int, int]:
        response = ChatCompletionResponse.model_validate(data)
        if not response.choices:
            return "", response.usage.prompt_tokens, response.usage.completion_tokens
        content = response.choices[0].message.content or ""
        return content, response.usage.prompt_tokens, response.usage.completion_tokens


class OpenAIProvider(ChatCompletionsProvider):
    """OpenAI GPT provider."""

    NAME = "openai"
    DISPLAY_NAME = "OpenAI"
    API_URL = "https://api.openai.com/v1/chat/completions"
    DEFAULT_MODEL = "gpt-4-turbo"
    CONTEXT_LIMIT = 4096
    SECRET_NAME = "OPENAI_API_KEY"
    PRICING = ProviderPricing(input_cost_per_mtok=10.00, output_cost_per_mtok=30.00)
