"""Tests for the ResearchPipeline composition root."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from src.models.config import ResearchSettings
from src.models.llm import ProviderSettings
from src.models.rate_limit import RateLimitConfig
from src.models.research import ResearchRequest
from src.observability.collector import MetricsCollector
from src.observability.context import get_correlation_id
from src.orchestration.research_pipeline import PARALLEL_RATE_LIMIT_KEY, ResearchPipeline
from src.services.config_manager import ConfigManager
from src.services.llm.providers import (
    ClaudeProvider,
    GrokProvider,
    OpenAIProvider,
    ProviderCallResult,
    ResearchProvider,
)
from src.services.result_repository import (
    InMemoryResultRepository,
    JsonFileResultRepository,
)
from src.utils.exceptions import InvalidRequestError, RateLimitExceededError
from src.utils.rate_limiter import RateLimiter
from src.utils.secrets import SecretResolver


def fake_provider(name, seen_correlation_ids=None):
    async def respond(*args, **kwargs):
        if seen_correlation_ids is not None:
            seen_correlation_ids.append(get_correlation_id())
        return ProviderCallResult(
            provider=name,
            success=True,
            content=f"{name} findings",
            model=f"{name}-model",
            cost_usd=0.01,
        )

    provider = MagicMock(spec=ResearchProvider)
    provider.name = name
    provider.model = f"{name}-model"
    provider.settings = ProviderSettings()
    provider.research = AsyncMock(side_effect=respond)
    return provider


@pytest.fixture
def settings(tmp_path):
    return ResearchSettings(output_dir=str(tmp_path / "results"))


@pytest.fixture
def repository():
    return InMemoryResultRepository()


@pytest.fixture
def providers():
    return {name: fake_provider(name) for name in ("claude", "openai", "grok")}


@pytest.fixture
def pipeline(settings, repository, providers):
    return ResearchPipeline(settings, repository=repository, providers=providers)


def request(**kwargs):
    kwargs.setdefault("sessionId", "session-1")
    kwargs.setdefault("topic", "EV charging")
    kwargs.setdefault("providers", ["claude", "openai"])
    return ResearchRequest(**kwargs)


class TestWiring:
    def test_builds_enabled_providers(self, settings):
        pipeline = ResearchPipeline(settings, secrets=SecretResolver(environ={}))

        assert isinstance(pipeline.providers["claude"], ClaudeProvider)
        assert isinstance(pipeline.providers["openai"], OpenAIProvider)
        assert isinstance(pipeline.providers["grok"], GrokProvider)
        assert isinstance(pipeline.repository, JsonFileResultRepository)
        assert pipeline.orchestrator.comparison_generator is not None

    def test_disabled_provider_skipped(self, tmp_path):
        settings = ResearchSettings(
            providers={"claude": {}, "openai": {}, "grok": {"enabled": False}},
            output_dir=str(tmp_path),
        )
        pipeline = ResearchPipeline(settings, secrets=SecretResolver(environ={}))
        assert list(pipeline.providers) == ["claude", "openai"]

    def test_comparison_can_be_disabled(self, tmp_path, providers):
        settings = ResearchSettings(
            comparison={"enabled": False}, output_dir=str(tmp_path)
        )
        pipeline = ResearchPipeline(settings, providers=providers)
        assert pipeline.orchestrator.comparison_generator is None

    def test_provider_settings_applied(self, tmp_path):
        settings = ResearchSettings(
            providers={"claude": {"model": "claude-3-opus", "timeout_seconds": 30}},
            default_providers=["claude"],
            output_dir=str(tmp_path),
        )
        pipeline = ResearchPipeline(settings, secrets=SecretResolver(environ={}))

        claude = pipeline.providers["claude"]
        assert claude.model == "claude-3-opus"
        assert claude.timeout_seconds == 30

    def test_from_config_manager(self, tmp_path):
        config_path = tmp_path / "config.yaml"
        config_path.write_text(f"output_dir: {tmp_path / 'out'}\n")
        manager = ConfigManager(config_path=str(config_path), load_env_file=False)

        pipeline = ResearchPipeline.from_config_manager(
            manager, repository=InMemoryResultRepository()
        )

        assert pipeline.settings.output_dir == str(tmp_path / "out")


class TestRun:
    @pytest.mark.asyncio
    async def test_runs_and_persists(self, pipeline, repository):
        result = await pipeline.run(request())

        assert result.success is True
        assert [r.provider for r in result.results] == ["claude", "openai"]
        assert result.comparison == {"raw_comparison": "claude findings"}
        assert repository.get("session-1") == result

    @pytest.mark.asyncio
    async def test_correlation_id_bound_during_run(self, settings, repository):
        seen = []
        providers = {"claude": fake_provider("claude", seen)}
        settings = ResearchSettings(
            providers={"claude": {}},
            default_providers=["claude"],
            output_dir=settings.output_dir,
        )
        pipeline = ResearchPipeline(settings, repository=repository, providers=providers)

        await pipeline.run(request(sessionId="abc-123", providers=["claude"]))

        assert seen == ["abc-123"]
        assert get_correlation_id() is None

    @pytest.mark.asyncio
    async def test_empty_providers_rejected(self, pipeline, repository, providers):
        with pytest.raises(InvalidRequestError):
            await pipeline.run(request(providers=[]))

        assert repository.get("session-1") is None
        for provider in providers.values():
            provider.research.assert_not_called()

    @pytest.mark.asyncio
    async def test_persist_failure_still_returns_result(self, pipeline, repository):
        repository.save = MagicMock(side_effect=OSError("disk full"))

        result = await pipeline.run(request())

        assert result.success is True
        repository.save.assert_called_once()

    @pytest.mark.asyncio
    async def test_parallel_rate_limit(self, settings, repository, providers):
        metrics = MetricsCollector()
        limiter = RateLimiter(
            metrics=metrics,
            configs={
                PARALLEL_RATE_LIMIT_KEY: RateLimitConfig(
                    provider=PARALLEL_RATE_LIMIT_KEY, max_requests=1, window_seconds=60
                )
            },
        )
        pipeline = ResearchPipeline(
            settings,
            repository=repository,
            metrics=metrics,
            rate_limiter=limiter,
            providers=providers,
        )

        await pipeline.run(request(sessionId="first"))
        with pytest.raises(RateLimitExceededError) as exc_info:
            await pipeline.run(request(sessionId="second"))

        assert exc_info.value.retry_after == pytest.approx(60, abs=1)
        assert repository.get("second") is None


class TestBatchAndStatus:
    @pytest.mark.asyncio
    async def test_process_batch_uses_configured_concurrency(self, pipeline):
        async def echo(item):
            return item

        results = await pipeline.process_batch("claude", [1, 2, 3, 4], echo)

        assert [r.result for r in results] == [1, 2, 3, 4]

    @pytest.mark.asyncio
    async def test_rate_limit_status(self, pipeline):
        await pipeline.run(request())

        status = pipeline.rate_limit_status()

        assert set(status) == {"claude", "openai", "grok", PARALLEL_RATE_LIMIT_KEY}
        assert status["claude"]["remaining_requests"] == 39
        assert status["openai"]["remaining_requests"] == 49
        assert status[PARALLEL_RATE_LIMIT_KEY]["remaining_requests"] == 29
        assert status["grok"]["is_blocked"] is False

    def test_secret_diagnostics(self, settings):
        pipeline = ResearchPipeline(
            settings,
            secrets=SecretResolver(environ={"ANTHROPIC_API_KEY": "sk-ant-123"}),
        )

        diagnostics = pipeline.secret_diagnostics()

        assert diagnostics["claude"]["primary_secret_exists"] is False
        assert diagnostics["claude"]["found_alternatives"] == ["ANTHROPIC_API_KEY"]
        assert diagnostics["grok"]["found_alternatives"] == []
        assert "sk-ant-123" not in str(diagnostics)
