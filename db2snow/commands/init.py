"""Configuration initialization command."""

import typer
from typing import Optional
from rich.console import Console
from rich.panel import Panel
from rich.prompt import Confirm

from ..config import init_config, is_initialized, resolve_config_paths
from ..errors import Db2SnowError
from ..ui import print_error

console = Console()


def init(
    passphrase: Optional[str] = typer.Option(
        None,
        "--passphrase",
        "-p",
        help="Derive the encryption key from a passphrase instead of generating a random key",
    ),
    local: bool = typer.Option(
        False,
        "--local",
        "-l",
        help="Create the configuration in ./.db2snow instead of ~/.db2snow",
    ),
    force: bool = typer.Option(
        False,
        "--force",
        "-f",
        help="Replace an existing encryption key",
    ),
):
    """Create the configuration directory and encryption key."""
    paths = resolve_config_paths(local=local)

    if is_initialized(paths) and not force:
        console.print(f"[yellow]Already initialized at {paths.root}[/yellow]")
        console.print("[dim]Use --force to replace the encryption key.[/dim]")
        return

    if is_initialized(paths) and force:
        console.print(
            "[yellow]Replacing the key makes passwords in existing mappings and "
            "connections unreadable.[/yellow]"
        )
        if not Confirm.ask("Replace the encryption key?"):
            console.print("[dim]Aborted.[/dim]")
            return

    try:
        paths = init_config(passphrase=passphrase, local=local, force=force)
    except (Db2SnowError, OSError) as e:
        print_error(e)
        raise typer.Exit(1)

    key_source = "derived from passphrase" if passphrase else "randomly generated"
    console.print(Panel(
        f"[green]Initialized db2snow[/green]\n\n"
        f"  Config directory: {paths.root}\n"
        f"  Mappings: {paths.mappings_dir}\n"
        f"  Logs: {paths.logs_dir}\n"
        f"  Encryption key: {paths.key_file} ({key_source})",
        title="db2snow init",
    ))
