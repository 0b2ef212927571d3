"""A module for cat-prep's command-line interface."""

from catprep.cli.main import app

__all__ = ["app", "main"]


def main() -> None:
    """Entry point for the CLI."""
    app()
