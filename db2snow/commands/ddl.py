"""Snowflake DDL generation command."""

import typer
from pathlib import Path
from typing import Optional
from typing_extensions import Annotated
from rich.console import Console
from rich.syntax import Syntax

from ..ddl import generate_ddl
from ..errors import Db2SnowError
from ..logging import get_run_logger
from ..mapping import get_mapping_engine, open_mapping
from ..ui import print_error
from ..validation import sanitize_file_name

console = Console()


def generate_ddl_command(
    mapping: Annotated[str, typer.Argument(help="Mapping name or path to a mapping file")],
    output: Annotated[Optional[Path], typer.Option(
        "--output", "-o", help="Output .sql file (default: <mapping>.sql)"
    )] = None,
    preview: Annotated[bool, typer.Option(
        "--preview", "-p", help="Print the DDL instead of writing a file"
    )] = False,
):
    """
    Generate Snowflake DDL for the tables of a mapping.

    Examples:
        db2snow generate-ddl shop
        db2snow generate-ddl shop --output ./ddl/shop.sql
        db2snow generate-ddl shop --preview
    """
    try:
        mapping_file = open_mapping(mapping)
    except Db2SnowError as e:
        print_error(e)
        raise typer.Exit(1)

    engine = get_mapping_engine(mapping_file)
    target = output or Path(f"{sanitize_file_name(mapping_file.name)}.sql")

    run_logger = get_run_logger()
    try:
        with run_logger.log_run(
            command="generate-ddl",
            engine=engine.value,
            mapping_name=mapping_file.name,
            arguments={"output": str(target), "preview": preview},
        ) as ctx:
            result = generate_ddl(mapping_file.tables, engine)
            ctx.schemas_count = result.schema_count
            ctx.tables_count = result.table_count
            ctx.foreign_key_count = result.foreign_key_count

            if not preview:
                target.parent.mkdir(parents=True, exist_ok=True)
                target.write_text(result.sql, encoding="utf-8")
                ctx.output_path = str(target)
    except Db2SnowError as e:
        print_error(e)
        raise typer.Exit(1)
    except OSError as e:
        console.print(f"[red]Error writing {target}: {e}[/red]")
        raise typer.Exit(1)

    if preview:
        console.print(Syntax(result.sql, "sql", theme="monokai", line_numbers=False))
        return

    console.print(f"[green]DDL written to {target}[/green]")
    console.print(
        f"  {result.schema_count} schema(s), {result.table_count} table(s), "
        f"{result.foreign_key_count} foreign key(s)"
    )
