"""Tests for the research provider callers (Claude, OpenAI, Grok)."""

import asyncio

import aiohttp
import pytest
from unittest.mock import AsyncMock, patch

from src.models.llm import ProviderPricing, ProviderSettings
from src.observability.metrics import REGISTRY
from src.services.llm.providers import (
    ClaudeProvider,
    GrokProvider,
    OpenAIProvider,
    create_provider,
    summarize,
)
from src.utils.exceptions import (
    EmptyResponseError,
    ErrorKind,
    RateLimitExceededError,
    SecretMissingError,
    ServiceUnavailableError,
)
from src.utils.secrets import SecretResolver

KEYS = {
    "CLAUDE_API_KEY": "claude-key",
    "OPENAI_API_KEY": "openai-key",
    "GROK_API_KEY": "grok-key",
}


def claude_payload(text="Claude findings.\n\nMore detail.", input_tokens=1000, output_tokens=500):
    return {
        "id": "msg_1",
        "type": "message",
        "content": [{"type": "text", "text": text}],
        "usage": {"input_tokens": input_tokens, "output_tokens": output_tokens},
        "stop_reason": "end_turn",
    }


def chat_payload(text="Chat findings.\n\nMore detail.", prompt_tokens=1000, completion_tokens=500):
    return {
        "id": "chatcmpl-1",
        "choices": [
            {
                "index": 0,
                "message": {"role": "assistant", "content": text},
                "finish_reason": "stop",
            }
        ],
        "usage": {"prompt_tokens": prompt_tokens, "completion_tokens": completion_tokens},
    }


PROVIDERS = [
    (ClaudeProvider, claude_payload),
    (OpenAIProvider, chat_payload),
    (GrokProvider, chat_payload),
]


def make_response(status=200, json_data=None, text="", headers=None):
    response = AsyncMock()
    response.status = status
    response.json.return_value = json_data
    response.text.return_value = text
    response.headers = headers or {}
    return response


@pytest.fixture
def secrets():
    return SecretResolver(dict(KEYS))


class TestSuccess:
    """Successful calls."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider_cls, payload", PROVIDERS)
    async def test_returns_content_tokens_and_cost(self, provider_cls, payload, secrets):
        provider = provider_cls(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                json_data=payload()
            )
            result = await provider.research("system", "user")

        assert result.success
        assert result.provider == provider_cls.NAME
        assert result.content.endswith("More detail.")
        assert result.summary in ("Claude findings.", "Chat findings.")
        assert result.prompt_tokens == 1000
        assert result.completion_tokens == 500
        assert result.tokens_used == 1500
        assert result.cost_usd == pytest.approx(
            provider_cls.PRICING.calculate(1000, 500)
        )
        assert result.model == provider_cls.DEFAULT_MODEL
        assert result.unwrap() is result
        assert mock_post.call_args.args[0] == provider_cls.API_URL

    @pytest.mark.asyncio
    async def test_records_token_metrics(self, secrets):
        provider = OpenAIProvider(secrets=secrets)
        before = REGISTRY.get_sample_value(
            "research_tokens_total", {"provider": "openai", "type": "prompt"}
        ) or 0.0

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                json_data=chat_payload(prompt_tokens=42)
            )
            await provider.research("system", "user")

        after = REGISTRY.get_sample_value(
            "research_tokens_total", {"provider": "openai", "type": "prompt"}
        )
        assert after == before + 42


class TestWireFormat:
    """Request shape per provider."""

    @pytest.mark.asyncio
    async def test_claude_request(self, secrets):
        provider = ClaudeProvider(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                json_data=claude_payload()
            )
            await provider.research("be precise", "analyze EVs", max_tokens=99999, temperature=5)

        kwargs = mock_post.call_args.kwargs
        assert kwargs["headers"]["x-api-key"] == "claude-key"
        assert kwargs["headers"]["anthropic-version"] == "2023-06-01"
        body = kwargs["json"]
        assert body["system"] == "be precise"
        assert body["messages"] == [{"role": "user", "content": "analyze EVs"}]
        assert body["max_tokens"] == 8192
        assert body["temperature"] == 1.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "provider_cls, key, limit",
        [(OpenAIProvider, "openai-key", 4096), (GrokProvider, "grok-key", 128000)],
    )
    async def test_chat_completions_request(self, provider_cls, key, limit, secrets):
        provider = provider_cls(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                json_data=chat_payload()
            )
            await provider.research("sys", "usr", max_tokens=500000, temperature=0.0)

        kwargs = mock_post.call_args.kwargs
        assert kwargs["headers"]["Authorization"] == f"Bearer {key}"
        body = kwargs["json"]
        assert body["messages"][0] == {"role": "system", "content": "sys"}
        assert body["messages"][1] == {"role": "user", "content": "usr"}
        assert body["max_tokens"] == limit
        assert body["temperature"] == 0.1

    @pytest.mark.asyncio
    async def test_settings_override_model_and_pricing(self, secrets):
        settings = ProviderSettings(
            model="gpt-4o",
            pricing=ProviderPricing(input_cost_per_mtok=1.0, output_cost_per_mtok=2.0),
        )
        provider = OpenAIProvider(secrets=secrets, settings=settings)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                json_data=chat_payload(prompt_tokens=1_000_000, completion_tokens=1_000_000)
            )
            result = await provider.research("s", "u")

        assert mock_post.call_args.kwargs["json"]["model"] == "gpt-4o"
        assert result.cost_usd == pytest.approx(3.0)


class TestFailures:
    """Structured failures; nothing is raised."""

    @pytest.mark.asyncio
    @pytest.mark.parametrize("provider_cls, _", PROVIDERS)
    async def test_missing_secret(self, provider_cls, _):
        provider = provider_cls(secrets=SecretResolver({}))

        with patch("aiohttp.ClientSession.post") as mock_post:
            result = await provider.research("system", "user")

        mock_post.assert_not_called()
        assert not result.success
        assert result.error_kind == ErrorKind.SECRET_MISSING
        assert provider_cls.SECRET_NAME in result.checked_names
        assert provider_cls.SECRET_NAME in result.error
        with pytest.raises(SecretMissingError):
            result.unwrap()

    @pytest.mark.asyncio
    async def test_placeholder_secret_is_missing(self):
        provider = GrokProvider(secrets=SecretResolver({"GROK_API_KEY": "changeme"}))

        with patch("aiohttp.ClientSession.post") as mock_post:
            result = await provider.research("system", "user")

        mock_post.assert_not_called()
        assert result.error_kind == ErrorKind.SECRET_MISSING

    @pytest.mark.asyncio
    async def test_alternative_secret_name_used_for_auth(self):
        provider = GrokProvider(secrets=SecretResolver({"XAI_API_KEY": "xai-key"}))

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                json_data=chat_payload()
            )
            result = await provider.research("system", "user")

        assert result.success
        headers = mock_post.call_args.kwargs["headers"]
        assert headers["Authorization"] == "Bearer xai-key"

    @pytest.mark.asyncio
    async def test_rate_limited_status_carries_retry_after(self, secrets):
        provider = ClaudeProvider(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                status=429, text="slow down", headers={"Retry-After": "30"}
            )
            result = await provider.research("system", "user")

        assert result.error_kind == ErrorKind.RATE_LIMIT_EXCEEDED
        assert result.status_code == 429
        assert result.retry_after == 30.0
        with pytest.raises(RateLimitExceededError) as exc_info:
            result.unwrap()
        assert exc_info.value.retry_after == 30.0

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "status, kind",
        [
            (500, ErrorKind.SERVICE_UNAVAILABLE),
            (503, ErrorKind.SERVICE_UNAVAILABLE),
            (408, ErrorKind.TIMEOUT),
            (400, ErrorKind.INVALID_REQUEST),
            (401, ErrorKind.INVALID_REQUEST),
        ],
    )
    async def test_status_mapping(self, status, kind, secrets):
        provider = OpenAIProvider(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                status=status, text="error body"
            )
            result = await provider.research("system", "user")

        assert result.error_kind == kind
        assert result.status_code == status
        assert "error body" in result.error

    @pytest.mark.asyncio
    async def test_server_error_unwraps_to_service_unavailable(self, secrets):
        provider = GrokProvider(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(status=502)
            result = await provider.research("system", "user")

        with pytest.raises(ServiceUnavailableError):
            result.unwrap()

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "error, kind",
        [
            (aiohttp.ClientConnectionError("refused"), ErrorKind.NETWORK_ERROR),
            (asyncio.TimeoutError(), ErrorKind.TIMEOUT),
        ],
    )
    async def test_transport_errors(self, error, kind, secrets):
        provider = ClaudeProvider(secrets=secrets)

        with patch("aiohttp.ClientSession.post", side_effect=error):
            result = await provider.research("system", "user")

        assert result.error_kind == kind

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        "payload",
        [
            {"unexpected": True},
            {"content": []},
            {"content": [{"type": "text", "text": "   "}]},
            {"content": "not-a-list"},
        ],
    )
    async def test_malformed_or_empty_claude_payload(self, payload, secrets):
        provider = ClaudeProvider(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                json_data=payload
            )
            result = await provider.research("system", "user")

        assert result.error_kind == ErrorKind.EMPTY_RESPONSE
        with pytest.raises(EmptyResponseError):
            result.unwrap()

    @pytest.mark.asyncio
    async def test_chat_payload_without_choices(self, secrets):
        provider = OpenAIProvider(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = make_response(
                json_data={"choices": [], "usage": {}}
            )
            result = await provider.research("system", "user")

        assert result.error_kind == ErrorKind.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_non_json_body(self, secrets):
        provider = OpenAIProvider(secrets=secrets)
        response = make_response()
        response.json.side_effect = ValueError("Expecting value")

        with patch("aiohttp.ClientSession.post") as mock_post:
            mock_post.return_value.__aenter__.return_value = response
            result = await provider.research("system", "user")

        assert result.error_kind == ErrorKind.EMPTY_RESPONSE

    @pytest.mark.asyncio
    async def test_blank_prompt_is_invalid(self, secrets):
        provider = ClaudeProvider(secrets=secrets)

        with patch("aiohttp.ClientSession.post") as mock_post:
            result = await provider.research("system", "  ")

        mock_post.assert_not_called()
        assert result.error_kind == ErrorKind.INVALID_REQUEST


class TestSummaryAndRegistry:
    """Helpers around the providers."""

    def test_summary_uses_first_paragraph(self):
        assert summarize("First para.\n\nSecond para.") == "First para."

    def test_summary_truncates_long_paragraph(self):
        summary = summarize("x" * 600)
        assert summary == "x" * 500 + "..."

    def test_create_provider(self, secrets):
        assert isinstance(create_provider("grok", secrets), GrokProvider)
        with pytest.raises(ValueError, match="Unknown provider"):
            create_provider("gemini")

    def test_calculate_cost(self):
        provider = ClaudeProvider(secrets=SecretResolver({}))
        assert provider.calculate_cost(1_000_000, 1_000_000) == pytest.approx(18.0)
        assert GrokProvider.PRICING.estimated
