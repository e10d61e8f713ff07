"""LLM service package.

This package provides:
- Provider callers (Claude, OpenAI, Grok) over raw HTTP
- Prompt building per research type and provider
- Response parsing for comparison output

Usage:
    from src.services.llm import PromptBuilder, create_provider
"""

from src.services.llm.prompt_builder import PromptBuilder, PromptPair
from src.services.llm.response_parser import ResponseParser, extract_json_object
from src.services.llm.providers import (
    ChatCompletionsProvider,
    ClaudeProvider,
    GrokProvider,
    OpenAIProvider,
    ProviderCallResult,
    ResearchProvider,
    create_provider,
)

__all__ = [
    "PromptBuilder",
    "PromptPair",
    "ResponseParser",
    "extract_json_object",
    "ResearchProvider",
    "ProviderCallResult",
    "ChatCompletionsProvider",
    "ClaudeProvider",
    "OpenAIProvider",
    "GrokProvider",
    "create_provider",
]
