"""db2snow - Main entry point."""

import typer
from rich.console import Console
from .commands import connections, ddl, export, init, map_source, mappings
from .config import is_initialized, resolve_config_paths, settings
from .constants import APP_VERSION
from .logging import configure_console_logging

app = typer.Typer(
    name="db2snow",
    help="Migrate PostgreSQL, MySQL and SQL Server schemas and data to Snowflake",
    add_completion=False,
)

# Add commands
app.command("init")(init.init)
app.command("map")(map_source.map_source)
app.command("export")(export.export_data)
app.command("generate-ddl")(ddl.generate_ddl_command)
app.command("mappings")(mappings.mappings)
app.add_typer(connections.app, name="connections")

console = Console()


@app.command()
def config():
    """Show current configuration."""
    paths = resolve_config_paths()
    console.print("[bold]Current Configuration[/bold]")
    console.print(f"  Version: {APP_VERSION}")
    console.print(f"  Config directory: {paths.root}")
    console.print(f"  Initialized: {'Yes' if is_initialized(paths) else 'No'}")
    console.print(f"  Default export format: {settings.default_export_format}")
    console.print(f"  Default output directory: {settings.default_output_dir}")
    console.print(f"  Export batch size: {settings.export_batch_size}")
    console.print(f"  Connect timeout: {settings.connect_timeout}s (SQL Server login: {settings.mssql_login_timeout}s)")
    console.print(f"  Log level: {settings.log_level}")
    console.print(f"  Log files kept: {settings.max_log_files}")


@app.callback()
def main(
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Print log messages to stderr"),
):
    """
    db2snow - Move PostgreSQL, MySQL and SQL Server databases to Snowflake.

    Use 'db2snow map' to introspect a source, then generate DDL and export data.

    Examples:

        db2snow init

        db2snow map --engine postgresql --host localhost --database shop --all

        db2snow generate-ddl shop --preview

        db2snow export shop --format parquet --output-dir ./export
    """
    configure_console_logging(verbose)


if __name__ == "__main__":
    app()
