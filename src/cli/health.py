"""Health command for health server management."""

from pathlib import Path

import typer

from src.cli.utils import load_config, handle_errors, display_info


@handle_errors
def health_command(
    host: str = typer.Option("localhost", "--host", "-h", help="Health server host"),
    port: int = typer.Option(8000, "--port", "-p", help="Health server port"),
    config_path: Path = typer.Option(
        "config/research_config.yaml",
        "--config",
        "-c",
        help="Path to research config YAML",
    ),
):
    """Start the health server for a research pipeline."""
    from src.health.server import run_health_server
    from src.orchestration import ResearchPipeline

    settings = load_config(config_path, allow_defaults=True)
    pipeline = ResearchPipeline(settings)

    display_info(f"Starting health server at http://{host}:{port}")
    run_health_server(pipeline, host=host, port=port)
