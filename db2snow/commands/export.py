"""Data export command."""

import asyncio
import typer
from typing import List, Optional
from typing_extensions import Annotated
from rich.console import Console
from rich.panel import Panel
from rich.progress import Progress, SpinnerColumn, TextColumn

from ..config import read_encryption_key
from ..constants import EXPORT_FORMATS
from ..database import get_adapter, get_engine_display_name
from ..errors import Db2SnowError
from ..export import ExportSummary
from ..logging import get_run_logger
from ..mapping import decrypt_password, get_connection_from_mapping, open_mapping, select_tables
from ..ui import export_summary_table, format_duration, print_error

console = Console()


def export_data(
    mapping: Annotated[str, typer.Argument(help="Mapping name or path to a mapping file")],
    tables: Annotated[Optional[List[str]], typer.Option(
        "--table", "-t", help="Export only this table, as schema.table or table (repeatable)"
    )] = None,
    export_format: Annotated[Optional[str], typer.Option(
        "--format", "-f", help="parquet or csv (default: the mapping's export format)"
    )] = None,
    output_dir: Annotated[Optional[str], typer.Option(
        "--output-dir", "-o", help="Output directory (default: the mapping's output directory)"
    )] = None,
):
    """
    Export the tables of a mapping to Parquet or CSV files.

    Files are written as <output-dir>/<schema>.<table>.<format>. A table that
    fails to export is reported in the summary and the remaining tables are
    still exported.

    Examples:
        db2snow export shop
        db2snow export shop --format csv --output-dir ./data
        db2snow export shop --table public.orders
    """
    try:
        mapping_file = open_mapping(mapping)
        key = read_encryption_key()
        password = decrypt_password(mapping_file.source.connection, key)
        selected = select_tables(mapping_file.tables, tables)
    except Db2SnowError as e:
        print_error(e)
        raise typer.Exit(1)

    fmt = (export_format or mapping_file.export_options.format).lower()
    if fmt not in EXPORT_FORMATS:
        console.print(f"[red]Unsupported export format: {fmt}. Use one of: {', '.join(EXPORT_FORMATS)}[/red]")
        raise typer.Exit(1)
    destination = output_dir or mapping_file.export_options.output_dir

    if not selected:
        console.print("[yellow]Mapping has no tables to export.[/yellow]")
        return

    config = get_connection_from_mapping(mapping_file, password)
    console.print(Panel(
        f"[bold blue]Exporting {len(selected)} table(s)[/bold blue]\n"
        f"Source: {get_engine_display_name(config.engine)} at {config.describe()}\n"
        f"Format: {fmt}\n"
        f"Output: {destination}",
        title=f"db2snow export {mapping_file.name}",
    ))

    run_logger = get_run_logger()
    try:
        with run_logger.log_run(
            command="export",
            engine=config.engine.value,
            mapping_name=mapping_file.name,
            arguments={"tables": tables, "format": fmt, "output_dir": destination},
        ) as ctx:
            with Progress(
                SpinnerColumn(),
                TextColumn("[progress.description]{task.description}"),
                console=console,
            ) as progress:
                task = progress.add_task("Starting export...", total=None)

                def on_progress(table_name: str, index: int, total: int) -> None:
                    progress.update(task, description=f"Exporting {table_name} ({index + 1}/{total})...")

                results = asyncio.run(
                    get_adapter(config.engine).export_tables(config, selected, fmt, destination, on_progress)
                )
                progress.update(task, description="Export finished")

            summary = ExportSummary.from_results(results)
            ctx.tables_count = summary.total_tables
            ctx.rows_exported = summary.total_rows
            ctx.errors_count = summary.error_count
            ctx.output_path = destination
    except Db2SnowError as e:
        print_error(e)
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error exporting data: {e}[/red]")
        raise typer.Exit(1)

    console.print(export_summary_table(summary))
    console.print(
        f"\n[bold]{summary.success_count}/{summary.total_tables} tables exported, "
        f"{summary.total_rows:,} rows in {format_duration(summary.total_duration)}[/bold]"
    )
    if summary.error_count:
        console.print(f"[red]{summary.error_count} table(s) failed to export[/red]")
        raise typer.Exit(1)
