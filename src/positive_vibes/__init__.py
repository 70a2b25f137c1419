"""
positive-vibes - a package manager for AI coding assistant resources.

Installs skills, instructions and agents from the bundled registry or git
registries into the directories VS Code Copilot, Cursor and opencode read.

Usage:
    positive-vibes init
    positive-vibes install skills code-review
    positive-vibes apply
"""

from __future__ import annotations

from pathlib import Path

import typer

from positive_vibes.cli.commands import register_commands
from positive_vibes.cli.resources import CliState
from positive_vibes.logging_config import setup_logging

__version__ = "0.4.0"

app = typer.Typer(
    name="positive-vibes",
    help="Install skills, instructions and agents into your AI coding tools",
    add_completion=False,
    no_args_is_help=True,
)


def _version_callback(value: bool) -> None:
    if value:
        print(f"positive-vibes {__version__}")
        raise typer.Exit()


@app.callback()
def callback(
    ctx: typer.Context,
    project_dir: Path = typer.Option(
        Path("."),
        "--project-dir",
        "-p",
        help="Project directory (default: current directory)",
        file_okay=False,
    ),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Show debug logging"),
    version: bool = typer.Option(
        False,
        "--version",
        callback=_version_callback,
        is_eager=True,
        help="Show the version and exit",
    ),
) -> None:
    """Install skills, instructions and agents into your AI coding tools."""
    setup_logging(verbose)
    ctx.obj = CliState(project_dir=project_dir.resolve(), verbose=verbose)


register_commands(app)


def main():
    app()


if __name__ == "__main__":
    main()
