"""Abstract research provider interface.

This module defines:
- ProviderCallResult: normalized success-or-failure outcome of one call
- ResearchProvider: base class holding everything the provider adapters
  share (credentials, clamping, the HTTP exchange, status mapping, summary
  and cost); subclasses only translate to and from their wire format

Provider callers never raise for expected failures. Missing credentials,
non-2xx statuses, transport errors and malformed payloads come back as a
failed ProviderCallResult whose ``error_kind`` tells the retry executor how
to treat it once ``unwrap()`` turns it into a typed exception.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

import aiohttp
import structlog

from src.models.llm import ProviderPricing, ProviderSettings
from src.models.research import CostBreakdown
from src.observability.metrics import (
    ACTIVE_PROVIDER_CALLS,
    COST_USD_TOTAL,
    TOKENS_TOTAL,
)
from src.utils.exceptions import (
    ERROR_TYPES,
    ErrorKind,
    RateLimitExceededError,
    ResearchError,
    SecretMissingError,
)
from src.utils.secrets import SecretResolver

logger = structlog.get_logger()

MIN_TEMPERATURE = 0.1
MAX_TEMPERATURE = 1.0
SUMMARY_MAX_CHARS = 500


@dataclass
class ProviderCallResult:
    """Normalized outcome of one provider call.

    Attributes:
        provider: Provider name (claude, openai, grok)
        success: True when usable content was returned
        content: Primary text content (empty on failure)
        summary: First paragraph, capped at SUMMARY_MAX_CHARS
        model: Model identifier used for the call
        prompt_tokens: Input tokens reported by the provider
        completion_tokens: Output tokens reported by the provider
        cost_usd: Cost computed from the pricing table
        processing_time_ms: Wall-clock duration of the call
        error_kind: Failure tag (None on success)
        error: Human readable failure message
        status_code: HTTP status of a non-2xx response
        retry_after: Seconds from a Retry-After header
        checked_names: Secret names looked up when credentials were missing
    """

    provider: str
    success: bool
    content: str = ""
    summary: str = ""
    model: Optional[str] = None
    prompt_tokens: int = 0
    completion_tokens: int = 0
    cost_usd: float = 0.0
    processing_time_ms: float = 0.0
    error_kind: Optional[ErrorKind] = None
    error: Optional[str] = None
    status_code: Optional[int] = None
    retry_after: Optional[float] = None
    checked_names: List[str] = field(default_factory=list)

    @property
    def tokens_used(self) -> int:
        return self.prompt_tokens + self.completion_tokens

    def cost_breakdown(self) -> CostBreakdown:
        return CostBreakdown(
            prompt_tokens=self.prompt_tokens,
            completion_tokens=self.completion_tokens,
            total_cost_usd=self.cost_usd,
        )

    def to_error(self) -> ResearchError:
        """Typed exception matching this failure."""
        kind = self.error_kind or ErrorKind.UNKNOWN_ERROR
        message = self.error or f"{self.provider} call failed"
        if kind == ErrorKind.RATE_LIMIT_EXCEEDED:
            return RateLimitExceededError(
                message,
                retry_after=self.retry_after,
                provider=self.provider,
                status_code=self.status_code,
            )
        if kind == ErrorKind.SECRET_MISSING:
            return SecretMissingError(
                message, provider=self.provider, checked_names=self.checked_names
            )
        return ERROR_TYPES[kind](
            message, provider=self.provider, status_code=self.status_code
        )

    def unwrap(self) -> "ProviderCallResult":
        """Return self on success, raise the typed error otherwise."""
        if not self.success:
            raise self.to_error()
        return self

    def get_stats(self) -> dict:
        return {
            "provider": self.provider,
            "success": self.success,
            "model": self.model,
            "tokens_used": self.tokens_used,
            "cost_usd": round(self.cost_usd, 6),
            "processing_time_ms": round(self.processing_time_ms, 1),
            "error_kind": self.error_kind.value if self.error_kind else None,
            "error": self.error,
        }


def summarize(content: str, max_chars: int = SUMMARY_MAX_CHARS) -> str:
    """First paragraph of ``content``, truncated to ``max_chars`` with '...'."""
    text = content.strip()
    first_paragraph = text.split("\n\n", 1)[0].strip()
    if len(first_paragraph) > max_chars:
        return first_paragraph[:max_chars].rstrip() + "..."
    return first_paragraph


class ResearchProvider(ABC):
    """Base class for research provider adapters.

    Subclasses set the class constants and implement the three wire
    translation hooks. Implementations:
        - ClaudeProvider: Anthropic Messages API
        - OpenAIProvider: OpenAI Chat Completions API
        - GrokProvider: xAI (OpenAI-compatible Chat Completions)
    """

    NAME: str = ""
    DISPLAY_NAME: str = ""
    API_URL: str = ""
    DEFAULT_MODEL: str = ""
    CONTEXT_LIMIT: int = 4096
    SECRET_NAME: str = ""
    PRICING: ProviderPricing = ProviderPricing(
        input_cost_per_mtok=0.0, output_cost_per_mtok=0.0
    )

    def __init__(
        self,
        secrets: Optional[SecretResolver] = None,
        settings: Optional[ProviderSettings] = None,
    ) -> None:
        """Initialize provider.

        Args:
            secrets: Credential resolver (environment-backed by default)
            settings: Optional overrides for model, timeout and pricing
        """
        self.secrets = secrets or SecretResolver()
        self.settings = settings or ProviderSettings()
        self._model = self.settings.model or self.DEFAULT_MODEL
        self.pricing = self.settings.pricing or self.PRICING
        self.timeout_seconds = self.settings.timeout_seconds

    @property
    def name(self) -> str:
        return self.NAME

    @property
    def model(self) -> str:
        return self._model

    def clamp_max_tokens(self, max_tokens: int) -> int:
        return max(1, min(int(max_tokens), self.CONTEXT_LIMIT))

    @staticmethod
    def clamp_temperature(temperature: float) -> float:
        return max(MIN_TEMPERATURE, min(float(temperature), MAX_TEMPERATURE))

    def calculate_cost(self, input_tokens: int, output_tokens: int) -> float:
        """Cost in USD for the given token usage."""
        return self.pricing.calculate(input_tokens, output_tokens)

    @abstractmethod
    def build_headers(self, api_key: str) -> Dict[str, str]:
        """HTTP headers carrying the credentials."""
        pass  # pragma: no cover - abstract method, always overridden

    @abstractmethod
    def build_payload(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int,
        temperature: float,
    ) -> Dict[str, Any]:
        """JSON request body in the provider's wire format."""
        pass  # pragma: no cover - abstract method, always overridden

    @abstractmethod
    def parse_payload(self, data: Any) -> Tuple[str, int, int]:
        """Extract (content, prompt_tokens, completion_tokens).

        Raises:
            ValueError: If the payload does not match the wire model
                (pydantic.ValidationError is a ValueError)
        """
        pass  # pragma: no cover - abstract method, always overridden

    def _failure(
        self,
        kind: ErrorKind,
        message: str,
        started: float,
        **extra: Any,
    ) -> ProviderCallResult:
        result = ProviderCallResult(
            provider=self.name,
            success=False,
            model=self._model,
            error_kind=kind,
            error=message,
            processing_time_ms=(time.monotonic() - started) * 1000,
            **extra,
        )
        logger.warning(
            "provider_research_failed",
            provider=self.name,
            error_kind=kind.value,
            error=message,
            status_code=result.status_code,
        )
        return result

    async def research(
        self,
        system_prompt: str,
        user_prompt: str,
        max_tokens: int = 4000,
        temperature: float = 0.3,
    ) -> ProviderCallResult:
        """Run one research call against the provider.

        Args:
            system_prompt: Provider-specific system framing
            user_prompt: The research request itself
            max_tokens: Requested completion budget (clamped to CONTEXT_LIMIT)
            temperature: Sampling temperature (clamped to [0.1, 1.0])

        Returns:
            ProviderCallResult; never raises for expected failures
        """
        started = time.monotonic()

        if not system_prompt or not system_prompt.strip():
            return self._failure(
                ErrorKind.INVALID_REQUEST, "Missing required field: system_prompt", started
            )
        if not user_prompt or not user_prompt.strip():
            return self._failure(
                ErrorKind.INVALID_REQUEST, "Missing required field: user_prompt", started
            )

        lookup = self.secrets.resolve(self.SECRET_NAME)
        api_key = lookup.value
        if api_key is None:
            return self._failure(
                ErrorKind.SECRET_MISSING,
                f"{self.DISPLAY_NAME} API key not configured "
                f"(checked: {', '.join(lookup.checked_names)})",
                started,
                checked_names=lookup.checked_names,
            )

        payload = self.build_payload(
            system_prompt,
            user_prompt,
            self.clamp_max_tokens(max_tokens),
            self.clamp_temperature(temperature),
        )

        logger.debug(
            "provider_research_started",
            provider=self.name,
            model=self._model,
            max_tokens=payload.get("max_tokens"),
        )

        ACTIVE_PROVIDER_CALLS.labels(provider=self.name).inc()
        try:
            async with aiohttp.ClientSession() as session:
                async with session.post(
                    self.API_URL,
                    json=payload,
                    headers=self.build_headers(api_key),
                    timeout=aiohttp.ClientTimeout(total=self.timeout_seconds),
                ) as response:
                    if not 200 <= response.status < 300:
                        body = await response.text()
                        return self._status_failure(response, body, started)

                    try:
                        data = await response.json(content_type=None)
                    except (aiohttp.ContentTypeError, ValueError) as e:
                        return self._failure(
                            ErrorKind.EMPTY_RESPONSE,
                            f"{self.DISPLAY_NAME} returned a non-JSON body: {e}",
                            started,
                        )
        except asyncio.TimeoutError:
            return self._failure(
                ErrorKind.TIMEOUT,
                f"{self.DISPLAY_NAME} request timed out after {self.timeout_seconds}s",
                started,
            )
        except aiohttp.ClientError as e:
            return self._failure(
                ErrorKind.NETWORK_ERROR,
                f"{self.DISPLAY_NAME} network error: {e}",
                started,
            )
        finally:
            ACTIVE_PROVIDER_CALLS.labels(provider=self.name).dec()

        return self._build_success(data, started)

    def _status_failure(
        self, response: Any, body: str, started: float
    ) -> ProviderCallResult:
        """Map a non-2xx response onto an error kind."""
        status = response.status
        message = f"{self.DISPLAY_NAME} API error: {status} {body[:500]}".strip()

        if status == 429:
            return self._failure(
                ErrorKind.RATE_LIMIT_EXCEEDED,
                message,
                started,
                status_code=status,
                retry_after=self._parse_retry_after(response),
            )
        if status >= 500:
            kind = ErrorKind.SERVICE_UNAVAILABLE
        elif status == 408:
            kind = ErrorKind.TIMEOUT
        else:
            kind = ErrorKind.INVALID_REQUEST
        return self._failure(kind, message, started, status_code=status)

    @staticmethod
    def _parse_retry_after(response: Any) -> Optional[float]:
        headers = getattr(response, "headers", None) or {}
        value = headers.get("Retry-After") or headers.get("retry-after")
        if not value:
            return None
        try:
            return float(value)
        except (TypeError, ValueError):
            return None

    def _build_success(self, data: Any, started: float) -> ProviderCallResult:
        try:
            content, prompt_tokens, completion_tokens = self.parse_payload(data)
        except ValueError as e:
            return self._failure(
                ErrorKind.EMPTY_RESPONSE,
                f"Malformed response from {self.DISPLAY_NAME} API: {e}",
                started,
            )

        if not content or not content.strip():
            return self._failure(
                ErrorKind.EMPTY_RESPONSE,
                f"Empty response from {self.DISPLAY_NAME} API",
                started,
            )

        cost = self.calculate_cost(prompt_tokens, completion_tokens)
        processing_time_ms = (time.monotonic() - started) * 1000

        TOKENS_TOTAL.labels(provider=self.name, type="prompt").inc(prompt_tokens)
        TOKENS_TOTAL.labels(provider=self.name, type="completion").inc(
            completion_tokens
        )
        COST_USD_TOTAL.labels(provider=self.name).inc(cost)

        logger.info(
            "provider_research_completed",
            provider=self.name,
            model=self._model,
            tokens=prompt_tokens + completion_tokens,
            cost_usd=round(cost, 6),
            processing_time_ms=round(processing_time_ms, 1),
        )

        return ProviderCallResult(
            provider=self.name,
            success=True,
            content=content,
            summary=summarize(content),
            model=self._model,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost_usd=cost,
            processing_time_ms=processing_time_ms,
        )
