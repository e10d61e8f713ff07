"""Research provider implementations

This module provides the abstract provider interface and concrete implementations:
- ResearchProvider: Abstract base class defining the provider contract
- ProviderCallResult: Normalized outcome from any provider
- ClaudeProvider: Anthropic Messages API
- OpenAIProvider: OpenAI Chat Completions API
- GrokProvider: xAI Chat Completions API
"""

from typing import Dict, Optional, Type

from src.models.llm import ProviderSettings
from src.services.llm.providers.base import (
    ProviderCallResult,
    ResearchProvider,
    summarize,
)
from src.services.llm.providers.claude import ClaudeProvider
from src.services.llm.providers.grok import GrokProvider
from src.services.llm.providers.openai import ChatCompletionsProvider, OpenAIProvider
from src.utils.secrets import SecretResolver

PROVIDER_CLASSES: Dict[str, Type[ResearchProvider]] = {
    ClaudeProvider.NAME: ClaudeProvider,
    OpenAIProvider.NAME: OpenAIProvider,
    GrokProvider.NAME: GrokProvider,
}


def create_provider(
    name: str,
    secrets: Optional[SecretResolver] = None,
    settings: Optional[ProviderSettings] = None,
) -> ResearchProvider:
    """Instantiate a provider by name.

    Raises:
        ValueError: If the provider name is unknown
    """
    try:
        provider_cls = PROVIDER_CLASSES[name]
    except KeyError:
        raise ValueError(
            f"Unknown provider '{name}'. Available: {sorted(PROVIDER_CLASSES)}"
        ) from None
    return provider_cls(secrets=secrets, settings=settings)


__all__ = [
    "ResearchProvider",
    "ProviderCallResult",
    "ChatCompletionsProvider",
    "ClaudeProvider",
    "OpenAIProvider",
    "GrokProvider",
    "PROVIDER_CLASSES",
    "create_provider",
    "summarize",
]
