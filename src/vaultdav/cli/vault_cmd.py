"""Vault commands: connect, pull, push, stat, status."""

from __future__ import annotations

import sys
from pathlib import Path

import click
from rich.panel import Panel
from rich.table import Table

from ..engine import ConnectionConfigError, UnknownConnectionError
from ..models import OPEN_CONFIG_FIELDS, FieldType, needs_open_config
from ..storage.classifier import StorageError
from ._common import EXIT_CONFLICT, EXIT_FAILED, console, get_engine, outcome_label


def _require_connection(engine, name: str) -> None:
    try:
        engine.credentials(name)
    except UnknownConnectionError:
        console.print(f"[bold red]No connection named {name}.[/] Run vaultdav connect first.")
        sys.exit(EXIT_FAILED)
    except ConnectionConfigError as exc:
        console.print(f"[bold red]Connection {name} is misconfigured:[/] {exc}")
        sys.exit(EXIT_FAILED)


def register_vault_commands(main: click.Group) -> None:
    """Register the vault commands."""

    @main.command("connect")
    @click.argument("name")
    @click.option("--path", "path_", default=None, help="URL of the vault file.")
    @click.option("--user", default=None, help="WebDAV user.")
    @click.option("--password", default=None, help="WebDAV password.")
    @click.option("--file-id", default=None, help="Vault uuid (obfuscation key).")
    @click.pass_context
    def connect(ctx, name, path_, user, password, file_id):
        """Save a WebDAV connection under NAME."""
        values = {"path": path_, "user": user, "password": password}
        fields = OPEN_CONFIG_FIELDS if needs_open_config() else []
        for field in fields:
            if values[field.id] is not None:
                continue
            if field.required:
                values[field.id] = click.prompt(field.title)
            elif field.type == FieldType.PASSWORD and values["user"]:
                values[field.id] = click.prompt(
                    field.title, hide_input=True, default="", show_default=False
                )

        engine = get_engine(ctx)
        try:
            profile = engine.connect(
                name,
                values["path"],
                user=values["user"],
                password=values["password"],
                file_id=file_id,
            )
        except ConnectionConfigError as exc:
            console.print(f"[bold red]Not saved:[/] {exc}")
            sys.exit(EXIT_FAILED)
        console.print(f"\n  Connection [cyan]{name}[/] -> {profile.path}")
        if profile.encpass:
            console.print("  [dim]Password stored obfuscated (not encrypted).[/]\n")
        else:
            console.print()

    @main.command("pull")
    @click.argument("name")
    @click.argument("dest", type=click.Path())
    @click.pass_context
    def pull(ctx, name, dest):
        """Download the vault of NAME to DEST."""
        engine = get_engine(ctx)
        _require_connection(engine, name)

        console.print(f"\n  Pulling [cyan]{name}[/]...", end=" ")
        try:
            result = engine.pull(name, Path(dest))
        except StorageError as exc:
            console.print(f"[red]failed[/] ({exc.kind.value}: {exc})\n")
            sys.exit(EXIT_FAILED)

        console.print("[green]done[/]")
        console.print(f"  [dim]{len(result.body)} bytes, revision {result.revision}[/]\n")

    @main.command("push")
    @click.argument("name")
    @click.argument("src", type=click.Path(exists=True, dir_okay=False))
    @click.option("--force", is_flag=True, help="Overwrite even if the remote changed.")
    @click.pass_context
    def push(ctx, name, src, force):
        """Upload SRC as the vault of NAME."""
        engine = get_engine(ctx)
        _require_connection(engine, name)

        console.print(f"\n  Pushing [cyan]{name}[/]...", end=" ")
        outcome = engine.push(name, Path(src), force=force)
        console.print(outcome_label(outcome.status))

        if outcome.saved:
            console.print(f"  [dim]New revision {outcome.revision}[/]\n")
            return
        if outcome.error_kind == "revision_conflict":
            console.print(
                f"  [yellow]Remote changed (revision {outcome.revision}).[/] "
                "Pull, merge, and push again.\n"
            )
            sys.exit(EXIT_CONFLICT)
        console.print(f"  [red]{outcome.error_kind}: {outcome.error}[/]\n")
        sys.exit(EXIT_FAILED)

    @main.command("stat")
    @click.argument("name")
    @click.pass_context
    def stat(ctx, name):
        """Show the remote revision of NAME."""
        engine = get_engine(ctx)
        _require_connection(engine, name)
        try:
            result = engine.stat(name)
        except StorageError as exc:
            console.print(f"[red]{exc.kind.value}[/]: {exc}")
            sys.exit(EXIT_FAILED)
        console.print(result.revision or "[dim]no revision[/]")

    @main.command("status")
    @click.pass_context
    def status(ctx):
        """Show saved connections and what we last saw of them."""
        engine = get_engine(ctx)
        connections = engine.status()
        if not connections:
            console.print("\n  [dim]No connections. Run vaultdav connect.[/]\n")
            return

        table = Table(show_header=True, header_style="bold")
        table.add_column("Name", style="cyan")
        table.add_column("URL")
        table.add_column("Revision")
        table.add_column("Push/Pull/Conflict")
        table.add_column("Last error")
        for name, info in connections.items():
            table.add_row(
                name,
                info["path"],
                info["last_revision"] or "[dim]never pulled[/]",
                f"{info['push_count']}/{info['pull_count']}/{info['conflict_count']}",
                info["last_error"] or "",
            )

        console.print()
        console.print(Panel(table, title="vaultdav", border_style="magenta"))
        console.print()
