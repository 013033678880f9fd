"""Mapping listing command."""

import typer
from typing import Optional
from typing_extensions import Annotated
from rich.console import Console
from rich.table import Table

from ..config import resolve_config_paths
from ..database import get_engine_display_name
from ..errors import Db2SnowError
from ..mapping import get_mapping_engine, list_mappings, load_mapping, open_mapping
from ..ui import print_error, tables_table

console = Console()


def mappings(
    name: Annotated[Optional[str], typer.Argument(
        help="Show the tables of this mapping (name or path) instead of listing mappings"
    )] = None,
):
    """List saved mappings, or show the tables of one mapping."""
    if name:
        try:
            mapping_file = open_mapping(name)
        except Db2SnowError as e:
            print_error(e)
            raise typer.Exit(1)

        connection = mapping_file.source.connection
        console.print(f"[bold]Mapping: {mapping_file.name}[/bold]")
        console.print(f"  Engine: {get_engine_display_name(get_mapping_engine(mapping_file))}")
        console.print(f"  Connection: {connection.host}:{connection.port}/{connection.database}")
        console.print(f"  Schemas: {', '.join(mapping_file.selected_schemas) or '-'}")
        console.print(f"  Export: {mapping_file.export_options.format} to {mapping_file.export_options.output_dir}")
        console.print(f"  Created: {mapping_file.created_at.isoformat()}")
        console.print(tables_table(mapping_file.tables))
        return

    paths = resolve_config_paths()
    names = list_mappings(paths)
    if not names:
        console.print(f"[yellow]No mappings found in {paths.mappings_dir}[/yellow]")
        return

    table = Table(title="Saved Mappings")
    table.add_column("Name", style="cyan")
    table.add_column("Engine", style="green")
    table.add_column("Database")
    table.add_column("Tables", justify="right")
    table.add_column("Created")

    for mapping_name in names:
        try:
            mapping_file = load_mapping(mapping_name, paths)
        except Db2SnowError:
            table.add_row(mapping_name, "[red]invalid[/red]", "-", "-", "-")
            continue
        table.add_row(
            mapping_name,
            get_engine_display_name(get_mapping_engine(mapping_file)),
            mapping_file.source.connection.database,
            str(len(mapping_file.tables)),
            mapping_file.created_at.strftime("%Y-%m-%d %H:%M"),
        )

    console.print(table)
