"""CLI command modules for positive-vibes."""

from __future__ import annotations

import typer

from .apply import apply
from .config_cmd import app as config_app
from .init_cmd import init
from .install import install
from .list_cmd import list_resources
from .refresh import refresh
from .remove import remove
from .show import show


def register_commands(app: typer.Typer) -> None:
    """Attach every command to the root Typer application."""
    app.command()(install)
    app.command()(remove)
    app.command(name="list")(list_resources)
    app.command()(show)
    app.command()(refresh)
    app.command()(apply)
    app.command()(init)
    app.add_typer(config_app, name="config")


__all__ = ["register_commands"]
