"""Shared utilities for CLI command modules.

Provides the Rich console instance and engine construction.
"""

from __future__ import annotations

from pathlib import Path

import click
from rich.console import Console

from ..engine import VaultSync
from ..storage.models import SaveStatus

console = Console()

EXIT_FAILED = 1
EXIT_CONFLICT = 2


def get_engine(ctx: click.Context) -> VaultSync:
    """Build the engine for the ``--home`` chosen on the main group."""
    return VaultSync(Path(ctx.obj["HOME"]))


def outcome_label(status: SaveStatus) -> str:
    """Map a save status to Rich markup.

    Args:
        status: Terminal save state.

    Returns:
        str: Rich markup string for the status.
    """
    return {
        SaveStatus.SAVED: "[bold green]SAVED[/]",
        SaveStatus.CONFLICT: "[bold yellow]CONFLICT[/]",
        SaveStatus.FAILED: "[bold red]FAILED[/]",
    }.get(status, "[dim]UNKNOWN[/]")
