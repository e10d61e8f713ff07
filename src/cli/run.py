"""Run command for parallel research.

Executes one research request across providers and prints the result JSON.
"""

import asyncio
import uuid
from pathlib import Path
from typing import List, Optional

import typer

from src.cli.utils import (
    load_config,
    handle_errors,
    display_success,
    display_warning,
    display_info,
    display_error,
)
from src.models.research import (
    OutputFormat,
    ResearchDepth,
    ResearchExecutionResult,
    ResearchRequest,
    ResearchType,
    TargetAudience,
)


@handle_errors
def run_command(
    topic: str = typer.Argument(..., help="Research topic"),
    research_type: ResearchType = typer.Option(
        ResearchType.MARKET_ANALYSIS, "--type", "-t", help="Research type"
    ),
    depth: ResearchDepth = typer.Option(
        ResearchDepth.COMPREHENSIVE, "--depth", "-d", help="Research depth"
    ),
    focus: Optional[List[str]] = typer.Option(
        None, "--focus", "-f", help="Focus area (repeatable)"
    ),
    providers: Optional[List[str]] = typer.Option(
        None, "--provider", "-p", help="Provider to query (repeatable)"
    ),
    output_format: OutputFormat = typer.Option(
        OutputFormat.DETAILED, "--format", help="Output format"
    ),
    audience: TargetAudience = typer.Option(
        TargetAudience.EXECUTIVES, "--audience", help="Target audience"
    ),
    session_id: Optional[str] = typer.Option(
        None, "--session-id", help="Session id (generated when omitted)"
    ),
    config_path: Path = typer.Option(
        "config/research_config.yaml",
        "--config",
        "-c",
        help="Path to research config YAML",
    ),
    allow_defaults: bool = typer.Option(
        False, "--allow-defaults", help="Use built-in defaults if config is missing"
    ),
    dry_run: bool = typer.Option(
        False, "--dry-run", help="Validate and plan without calling providers"
    ),
):
    """Run research on multiple providers in parallel."""
    settings = load_config(config_path, allow_defaults=allow_defaults)

    request = ResearchRequest(
        session_id=session_id or str(uuid.uuid4()),
        topic=topic,
        research_type=research_type,
        depth=depth,
        focus_areas=focus or [],
        output_format=output_format,
        target_audience=audience,
        providers=providers or settings.default_providers,
    )

    if dry_run:
        _display_dry_run(request)
        return

    from src.orchestration import ResearchPipeline

    display_info(
        f"Researching '{request.topic}' with {', '.join(request.providers)}..."
    )
    pipeline = ResearchPipeline(settings)
    result = asyncio.run(pipeline.run(request))

    typer.echo(result.model_dump_json(indent=2))
    _display_results(result)

    if not result.success:
        raise typer.Exit(code=1)


def _display_dry_run(request: ResearchRequest) -> None:
    display_info("Dry run - no providers will be called")
    typer.echo(f"  Session:   {request.session_id}")
    typer.echo(f"  Topic:     {request.topic}")
    typer.echo(f"  Type:      {request.research_type.value}")
    typer.echo(f"  Depth:     {request.depth.value}")
    typer.echo(f"  Providers: {', '.join(request.providers)}")
    if request.focus_areas:
        typer.echo(f"  Focus:     {', '.join(request.focus_areas)}")


def _display_results(result: ResearchExecutionResult) -> None:
    summary = result.summary
    if summary.failed == 0:
        display_success(
            f"All {summary.total_providers} providers succeeded "
            f"(cost ${result.total_cost:.4f})"
        )
    elif summary.successful > 0:
        display_warning(
            f"{summary.successful}/{summary.total_providers} providers succeeded "
            f"(cost ${result.total_cost:.4f})"
        )
    else:
        display_error("All providers failed")

    for provider_result in result.results:
        if not provider_result.success:
            kind = provider_result.error_kind.value if provider_result.error_kind else "error"
            display_warning(f"  {provider_result.provider}: {kind}: {provider_result.error}")
