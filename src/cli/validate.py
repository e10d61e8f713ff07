"""Validate command for configuration files.

Validates configuration file syntax and semantics.
"""

from pathlib import Path

import typer

from src.services.config_manager import ConfigManager
from src.cli.utils import handle_errors, display_success, display_error, display_info


@handle_errors
def validate_command(
    config_path: Path = typer.Argument(..., help="Config file to validate"),
):
    """Validate configuration file syntax and semantics."""
    try:
        manager = ConfigManager(config_path=str(config_path))
        settings = manager.load_config()
    except Exception as e:
        display_error(f"Validation failed: {e}")
        raise typer.Exit(code=1)

    display_success("Configuration is valid! ✅")
    display_info(f"Enabled providers: {', '.join(settings.enabled_providers())}")
    display_info(f"Default providers: {', '.join(settings.default_providers)}")
