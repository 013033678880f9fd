"""Saved connection commands."""

import asyncio
import typer
from typing_extensions import Annotated
from rich.console import Console
from rich.prompt import Confirm
from rich.table import Table

from ..config import read_encryption_key, resolve_config_paths
from ..connections import delete_connection, get_connection_config, list_connections, load_connection
from ..database import get_adapter, get_engine_display_name
from ..errors import Db2SnowError
from ..ui import print_error

app = typer.Typer(help="Manage saved source connections")
console = Console()


@app.command("list")
def list_saved_connections():
    """List saved connections."""
    paths = resolve_config_paths()
    names = list_connections(paths)
    if not names:
        console.print("[yellow]No saved connections found.[/yellow]")
        console.print("[dim]Save one with: db2snow map ... --save-connection <name>[/dim]")
        return

    table = Table(title="Saved Connections")
    table.add_column("Name", style="cyan")
    table.add_column("Engine", style="green")
    table.add_column("Host")
    table.add_column("Database")
    table.add_column("User")
    table.add_column("SSL")

    for name in names:
        try:
            saved = load_connection(name, paths)
        except Db2SnowError:
            table.add_row(name, "[red]invalid[/red]", "-", "-", "-", "-")
            continue
        table.add_row(
            name,
            get_engine_display_name(saved.engine),
            f"{saved.host}:{saved.port}",
            saved.database,
            saved.user,
            "Yes" if saved.ssl else "No",
        )

    console.print(table)


@app.command("delete")
def delete_saved_connection(
    name: Annotated[str, typer.Argument(help="Connection name")],
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Skip confirmation")] = False,
):
    """Delete a saved connection."""
    if not yes and not Confirm.ask(f"Delete connection '{name}'?"):
        console.print("[dim]Aborted.[/dim]")
        return
    try:
        delete_connection(name)
    except Db2SnowError as e:
        print_error(e)
        raise typer.Exit(1)
    console.print(f"[green]Deleted connection {name}[/green]")


@app.command("test")
def test_saved_connection(
    name: Annotated[str, typer.Argument(help="Connection name")],
):
    """Check that a saved connection can be opened."""
    try:
        config = get_connection_config(load_connection(name), read_encryption_key())
    except Db2SnowError as e:
        print_error(e)
        raise typer.Exit(1)

    display_name = get_engine_display_name(config.engine)
    with console.status(f"Testing {display_name} at {config.describe()}..."):
        ok = asyncio.run(get_adapter(config.engine).test_connection(config))

    if ok:
        console.print(f"[green]Connected to {display_name} at {config.describe()}[/green]")
    else:
        console.print(f"[red]Cannot connect to {display_name} at {config.describe()}[/red]")
        raise typer.Exit(1)
