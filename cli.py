#!/usr/bin/env python3
"""
Notes CLI.

Command-line client for the notes engine.
Built with Typer for type-safe commands and Rich for formatted output.

Usage:
    python cli.py --help                                  # Show help

    # Notes
    python cli.py notes list                              # Newest first
    python cli.py notes list --search grocery             # Filter and highlight
    python cli.py notes create -t "Title" -c "Body"       # Create a note
    python cli.py notes create -t "Trip" -m clip.mp4      # Create with attachment
    python cli.py notes edit <id> -c "New body"           # Edit a note
    python cli.py notes delete <id> <id>                  # Batch delete

    # System info
    python cli.py system info                             # Show app info
    python cli.py system config                           # Show configuration

Options:
    --verbose, -v     Enable verbose output
    --debug, -d       Enable debug mode (detailed logging)
    --help            Show help message
"""

import sys
from pathlib import Path

import typer
from rich.console import Console

# Add project root to path for absolute imports
project_root = Path(__file__).resolve().parent
if str(project_root) not in sys.path:
    sys.path.insert(0, str(project_root))

from modules.cli.commands import notes_app, system_app

app = typer.Typer(
    name="cli",
    help="Notes CLI - browse, search, create and delete notes.",
    no_args_is_help=True,
    rich_markup_mode="rich",
)

console = Console()

app.add_typer(notes_app, name="notes")
app.add_typer(system_app, name="system")


@app.callback()
def main(
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Enable verbose output (INFO level logging)",
    ),
    debug: bool = typer.Option(
        False,
        "--debug",
        "-d",
        help="Enable debug mode (DEBUG level logging)",
    ),
) -> None:
    """
    Notes CLI.

    Browse, search, create, edit and delete notes stored on the hosted backend.
    """
    from modules.client.core.config import validate_project_root
    from modules.client.core.logging import setup_logging

    validate_project_root()

    if debug:
        setup_logging(level="DEBUG", format_type="console")
        console.print("[dim]Debug mode enabled[/dim]")
    elif verbose:
        setup_logging(level="INFO", format_type="console")
    else:
        setup_logging(level="WARNING")


if __name__ == "__main__":
    app()
