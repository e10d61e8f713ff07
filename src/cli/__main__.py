"""CLI entry point.

Allows running the CLI as a module: python -m src.cli
"""

from src.cli import app

if __name__ == "__main__":
    app()
