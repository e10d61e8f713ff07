"""Status command.

Shows the configured rate limits and which provider credentials are present.
"""

from pathlib import Path

import typer

from src.cli.utils import (
    load_config,
    handle_errors,
    display_info,
    display_success,
    display_warning,
)
from src.services.llm.providers import PROVIDER_CLASSES
from src.utils.rate_limiter import RateLimiter
from src.utils.secrets import SecretResolver


@handle_errors
def status_command(
    config_path: Path = typer.Option(
        "config/research_config.yaml",
        "--config",
        "-c",
        help="Path to research config YAML",
    ),
    allow_defaults: bool = typer.Option(
        False, "--allow-defaults", help="Use built-in defaults if config is missing"
    ),
):
    """Show rate limits and credential status per provider."""
    settings = load_config(config_path, allow_defaults=allow_defaults)
    limiter = RateLimiter(configs=settings.rate_limit_configs())
    secrets = SecretResolver()

    display_info("Provider status:")
    for name in settings.enabled_providers():
        cfg = limiter.get_config(name)
        status = limiter.get_rate_limit_status(name)
        lookup = secrets.resolve(PROVIDER_CLASSES[name].SECRET_NAME)

        typer.echo(
            f"  {name}: {status.remaining_requests}/{cfg.max_requests} requests "
            f"per {cfg.window_seconds:g}s, block {cfg.block_seconds:g}s"
        )
        if lookup.found:
            display_success(f"    credentials: found ({lookup.found_name})")
        else:
            display_warning(
                f"    credentials: missing (checked {', '.join(lookup.checked_names)})"
            )
