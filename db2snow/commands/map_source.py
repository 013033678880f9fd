"""Source mapping command - connects, introspects and saves a mapping."""

import asyncio
import typer
from typing import Dict, List, Optional, Sequence, Set, Tuple
from typing_extensions import Annotated
from rich.console import Console
from rich.panel import Panel
from rich.prompt import IntPrompt, Prompt

from ..config import read_encryption_key, settings
from ..connections import get_connection_config, load_connection, save_connection
from ..constants import EXPORT_FORMATS
from ..database import (
    SourceConnectionConfig,
    SourceEngine,
    SourceTableMetadata,
    get_adapter,
    get_default_port,
    get_default_user,
    get_engine_display_name,
    list_engines,
)
from ..errors import Db2SnowError, MappingError
from ..logging import get_run_logger
from ..mapping import build_mapping, save_mapping
from ..ui import choose_items, print_error, tables_table
from ..validation import (
    is_valid_database_name,
    is_valid_host,
    is_valid_mapping_name,
    is_valid_port,
)

console = Console()


def prompt_connection_config(
    engine: Optional[SourceEngine],
    host: Optional[str],
    port: Optional[int],
    database: Optional[str],
    user: Optional[str],
    password: Optional[str],
    ssl: bool,
    instance_name: Optional[str],
    trust_server_certificate: Optional[bool],
) -> SourceConnectionConfig:
    """Fill in missing connection options with prompts, using engine defaults."""
    if engine is None:
        engine = SourceEngine(Prompt.ask(
            "Source engine",
            choices=[e.value for e in list_engines()],
            default=SourceEngine.POSTGRESQL.value,
        ))

    host = host or Prompt.ask("Host", default="localhost")
    if port is None:
        port = IntPrompt.ask("Port", default=get_default_port(engine))
    database = database or Prompt.ask("Database")
    user = user or Prompt.ask("User", default=get_default_user(engine))
    if password is None:
        password = Prompt.ask("Password", password=True, default="", show_default=False)

    return SourceConnectionConfig(
        engine=engine,
        host=host,
        port=port,
        database=database,
        user=user,
        password=password,
        ssl=ssl,
        instance_name=instance_name if engine == SourceEngine.MSSQL else None,
        trust_server_certificate=trust_server_certificate if engine == SourceEngine.MSSQL else None,
    )


def validate_connection_config(config: SourceConnectionConfig) -> List[str]:
    """Return a list of problems with the connection options."""
    problems = []
    if not is_valid_host(config.host):
        problems.append(f"Invalid host: {config.host}")
    if not is_valid_port(config.port):
        problems.append(f"Invalid port: {config.port} (expected 1-65535)")
    if not is_valid_database_name(config.database):
        problems.append(f"Invalid database name: {config.database}")
    if not config.user:
        problems.append("A user is required")
    return problems


def split_table_names(names: Optional[Sequence[str]]) -> Tuple[Dict[str, List[str]], List[str]]:
    """Split ``--table`` values into qualified (per schema) and bare names."""
    qualified: Dict[str, List[str]] = {}
    bare: List[str] = []
    for name in names or []:
        if "." in name:
            schema_name, table_name = name.split(".", 1)
            qualified.setdefault(schema_name, []).append(table_name)
        else:
            bare.append(name)
    return qualified, bare


def _select(available: List[str], requested: Optional[Sequence[str]], label: str, select_all: bool) -> List[str]:
    if requested:
        unknown = [name for name in requested if name not in available]
        if unknown:
            raise MappingError(f"Unknown {label}: {', '.join(unknown)}")
        return [name for name in available if name in requested]
    if select_all or len(available) == 1:
        return list(available)
    return choose_items(available, label)


async def introspect_source(
    config: SourceConnectionConfig,
    schemas: Optional[Sequence[str]] = None,
    tables: Optional[Sequence[str]] = None,
    select_all: bool = False,
) -> Tuple[List[str], List[SourceTableMetadata]]:
    """Connect, let the user pick schemas and tables, and introspect them.

    Returns:
        Tuple of (selected schema names, introspected tables)
    """
    display_name = get_engine_display_name(config.engine)
    qualified, bare = split_table_names(tables)
    matched_bare: Set[str] = set()

    async with get_adapter(config.engine) as adapter:
        with console.status(f"Connecting to {display_name} at {config.describe()}..."):
            await adapter.connect(config)
        console.print(f"[green]Connected to {display_name} at {config.describe()}[/green]")

        available_schemas = [s.schema_name for s in await adapter.get_schemas()]
        if not available_schemas:
            raise MappingError(f"No user schemas found in {config.database}")

        requested_schemas = list(schemas or [])
        if tables and not requested_schemas:
            unknown = [s for s in qualified if s not in available_schemas]
            if unknown:
                raise MappingError(f"Unknown schemas: {', '.join(unknown)}")
            if bare:
                requested_schemas = list(available_schemas)
            else:
                requested_schemas = [s for s in available_schemas if s in qualified]
        selected_schemas = _select(available_schemas, requested_schemas, "schemas", select_all)

        results: List[SourceTableMetadata] = []
        for schema_name in selected_schemas:
            available_tables = [t.table_name for t in await adapter.get_tables(schema_name)]
            if not available_tables:
                console.print(f"[yellow]No tables found in schema {schema_name}[/yellow]")
                continue

            requested_tables = None
            if tables:
                requested_tables = list(qualified.get(schema_name, []))
                for name in bare:
                    if name in available_tables:
                        requested_tables.append(name)
                        matched_bare.add(name)
                if not requested_tables:
                    continue

            selected_tables = _select(
                available_tables, requested_tables, f"tables in {schema_name}", select_all
            )
            with console.status(f"Introspecting {len(selected_tables)} table(s) in {schema_name}..."):
                results.extend(await adapter.introspect_schema(schema_name, selected_tables))

    missing = [name for name in bare if name not in matched_bare]
    if missing:
        raise MappingError(f"Tables not found in the selected schemas: {', '.join(missing)}")
    if not results:
        raise MappingError("No tables selected")
    return selected_schemas, results


def map_source(
    name: Annotated[Optional[str], typer.Option("--name", "-n", help="Mapping name")] = None,
    engine: Annotated[Optional[SourceEngine], typer.Option(
        "--engine", "-e", case_sensitive=False, help="Source engine"
    )] = None,
    host: Annotated[Optional[str], typer.Option("--host", help="Database host")] = None,
    port: Annotated[Optional[int], typer.Option("--port", help="Database port (default depends on engine)")] = None,
    database: Annotated[Optional[str], typer.Option("--database", "-d", help="Database name")] = None,
    user: Annotated[Optional[str], typer.Option("--user", "-u", help="Database user")] = None,
    password: Annotated[Optional[str], typer.Option(
        "--password", envvar="DB2SNOW_SOURCE_PASSWORD", help="Database password (prompted when omitted)"
    )] = None,
    ssl: Annotated[bool, typer.Option("--ssl/--no-ssl", help="Require an encrypted connection")] = False,
    instance_name: Annotated[Optional[str], typer.Option(
        "--instance", help="SQL Server named instance"
    )] = None,
    trust_server_certificate: Annotated[Optional[bool], typer.Option(
        "--trust-server-certificate/--verify-server-certificate",
        help="SQL Server only: trust the server certificate",
    )] = None,
    connection: Annotated[Optional[str], typer.Option(
        "--connection", "-c", help="Use a saved connection instead of connection options"
    )] = None,
    save_connection_as: Annotated[Optional[str], typer.Option(
        "--save-connection", help="Save the connection under this name"
    )] = None,
    schemas: Annotated[Optional[List[str]], typer.Option(
        "--schema", "-s", help="Schema to map (repeatable; prompted when omitted)"
    )] = None,
    tables: Annotated[Optional[List[str]], typer.Option(
        "--table", "-t", help="Table to map as schema.table or table (repeatable)"
    )] = None,
    select_all: Annotated[bool, typer.Option(
        "--all", "-a", help="Map every table of the selected schemas without prompting"
    )] = False,
    export_format: Annotated[str, typer.Option(
        "--format", "-f", help="Default export format stored in the mapping (parquet or csv)"
    )] = settings.default_export_format,
    output_dir: Annotated[str, typer.Option(
        "--output-dir", "-o", help="Default export directory stored in the mapping"
    )] = settings.default_output_dir,
):
    """
    Introspect a source database and save a mapping.

    Examples:
        db2snow map --engine postgresql --host localhost --database shop --all
        db2snow map -e mysql --database shop --table orders --table customers
        db2snow map --connection prod-sqlserver --schema dbo --name prod
    """
    try:
        key = read_encryption_key()
    except Db2SnowError as e:
        print_error(e)
        raise typer.Exit(1)

    if export_format not in EXPORT_FORMATS:
        console.print(f"[red]Unsupported export format: {export_format}. Use one of: {', '.join(EXPORT_FORMATS)}[/red]")
        raise typer.Exit(1)

    if connection:
        try:
            config = get_connection_config(load_connection(connection), key)
        except Db2SnowError as e:
            print_error(e)
            raise typer.Exit(1)
    else:
        config = prompt_connection_config(
            engine, host, port, database, user, password, ssl, instance_name, trust_server_certificate
        )

    problems = validate_connection_config(config)
    if problems:
        for problem in problems:
            console.print(f"[red]{problem}[/red]")
        raise typer.Exit(1)

    name = name or Prompt.ask("Mapping name", default=config.database)
    if not is_valid_mapping_name(name):
        console.print(f'[red]Invalid mapping name "{name}". Use letters, digits, "-" and "_" only.[/red]')
        raise typer.Exit(1)

    console.print(Panel(
        f"[bold blue]Mapping {get_engine_display_name(config.engine)} source[/bold blue]\n"
        f"Connection: {config.describe()}\n"
        f"Mapping: {name}",
        title="db2snow map",
    ))

    run_logger = get_run_logger()
    try:
        with run_logger.log_run(
            command="map",
            engine=config.engine.value,
            mapping_name=name,
            arguments={"connection": config.describe(), "schemas": schemas, "tables": tables},
        ) as ctx:
            selected_schemas, metadata = asyncio.run(
                introspect_source(config, schemas, tables, select_all)
            )
            mapping = build_mapping(
                name, config, key, selected_schemas, metadata, export_format, output_dir
            )
            path = save_mapping(mapping)

            ctx.schemas_count = len(selected_schemas)
            ctx.tables_count = len(metadata)
            ctx.columns_count = sum(len(t.columns) for t in metadata)
            ctx.foreign_key_count = sum(len(t.foreign_keys) for t in metadata)
            ctx.output_path = str(path)

        if save_connection_as:
            saved_path = save_connection(save_connection_as, config, key)
            console.print(f"[dim]Saved connection {save_connection_as} to {saved_path}[/dim]")
    except Db2SnowError as e:
        print_error(e)
        raise typer.Exit(1)
    except Exception as e:
        console.print(f"[red]Error mapping source: {e}[/red]")
        raise typer.Exit(1)

    console.print(tables_table(metadata))
    console.print(f"\n[green]Mapping saved to {path}[/green]")
    console.print(f"[dim]Next: db2snow generate-ddl {name}  |  db2snow export {name}[/dim]")
