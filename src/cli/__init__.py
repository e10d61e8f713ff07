"""Research orchestrator CLI package.

Usage:
    python -m src.cli run "European EV charging market" --provider claude --provider openai
    python -m src.cli validate config/research_config.yaml
    python -m src.cli status
    python -m src.cli health
"""

import typer

from src.cli.run import run_command
from src.cli.validate import validate_command
from src.cli.status import status_command
from src.cli.health import health_command

# Create main app
app = typer.Typer(help="Multi-provider AI research orchestrator")

app.command(name="run")(run_command)
app.command(name="validate")(validate_command)
app.command(name="status")(status_command)
app.command(name="health")(health_command)

__all__ = [
    "app",
    "run_command",
    "validate_command",
    "status_command",
    "health_command",
]
