"""xAI Grok research provider (OpenAI-compatible endpoint).

xAI does not publish per-token pricing for grok-4 in a stable form, so the
pricing table below is an estimate and flagged as such.
"""

from src.models.llm import ProviderPricing
from src.services.llm.providers.openai import ChatCompletionsProvider


class GrokProvider(ChatCompletionsProvider):
    """xAI Grok provider."""

    NAME = "grok"
    DISPLAY_NAME = "Grok"
    API_URL = "https://api.x.ai/v1/chat/completions"
    DEFAULT_MODEL = "grok-4-0709"
    CONTEXT_LIMIT = 128000
    SECRET_NAME = "GROK_API_KEY"
    PRICING = ProviderPricing(
        input_cost_per_mtok=5.00, output_cost_per_mtok=15.00, estimated=True
    )
